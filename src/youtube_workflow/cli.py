#!/usr/bin/env python3
"""
Command-line interface for the YouTube workflow core.

Usage:
  ywf fetch "https://youtube.com/watch?v=xxx" --json
  ywf transcript xxx --methods alternative-libs,description --whisper
  ywf metadata show VID-0001
  ywf metadata reliable VID-0001
  ywf metadata update VID-0001 --set script_generated=true
  ywf metadata report
  ywf health

API keys and transcript defaults come from the environment
(YOUTUBE_API_KEY, OPENAI_API_KEY, ENABLE_WHISPER_FALLBACK, ...).
"""

import argparse
import asyncio
import dataclasses
import json
import sys

from . import __version__
from .collector import VideoCollector
from .config import Settings
from .config.settings import STRATEGY_YOUTUBE
from .errors import WorkflowError
from .logging_utils import setup_logging
from .models.video import transcript_text
from .storage import MetadataStore
from .storage.validation import generate_validation_report


def print_banner():
    """Print the CLI banner."""
    print("=" * 60)
    print(f"  YouTube Workflow v{__version__}")
    print("=" * 60)


def print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def load_settings(args) -> Settings:
    """Environment settings with per-command transcript overrides."""
    settings = Settings.from_file(args.config) if args.config else Settings.from_env()
    transcript = settings.transcript
    if getattr(args, 'methods', None):
        methods = [m.strip() for m in args.methods.split(',') if m.strip()]
        transcript = dataclasses.replace(
            transcript,
            strategy_order=[STRATEGY_YOUTUBE] + [m for m in methods if m != STRATEGY_YOUTUBE],
        )
    if getattr(args, 'whisper', False):
        transcript = dataclasses.replace(transcript, enable_whisper_fallback=True)
    if getattr(args, 'comments', False):
        transcript = dataclasses.replace(transcript, enable_comments_analysis=True)
    return dataclasses.replace(settings, transcript=transcript)


async def cmd_fetch(args) -> int:
    """Handle the fetch command."""
    collector = VideoCollector(load_settings(args))
    data = await collector.get_complete_video_data(args.url)

    if args.json:
        print_json(data.to_dict())
        return 0

    print_banner()
    status = data.transcript_status
    print(f"  Title: {data.metadata.title}")
    print(f"  Channel: {data.metadata.channel_title}")
    print(f"  Duration: {data.metadata.duration}")
    print(f"  Views: {data.metadata.view_count:,} / Likes: {data.metadata.like_count:,}")
    print(f"  Transcript: {'available' if status.available else 'not available'}")
    if status.available:
        print(f"    Source: {status.source} / Quality: {status.quality}")
        print(f"    {status.segment_count} segments / {status.length} chars")
    return 0


async def cmd_transcript(args) -> int:
    """Handle the transcript command."""
    collector = VideoCollector(load_settings(args))
    segments = await collector.get_transcript(args.url)
    if segments is None:
        print("  No transcript available.")
        return 1

    if args.json:
        print_json([s.to_dict() for s in segments])
    else:
        print(transcript_text(segments))
    return 0


def _parse_updates(pairs: list[str]) -> dict:
    updates = {}
    for pair in pairs:
        key, sep, raw = pair.partition('=')
        if not sep:
            raise ValueError(f"Expected key=value, got {pair!r}")
        try:
            updates[key] = json.loads(raw)
        except ValueError:
            updates[key] = raw
    return updates


async def cmd_metadata(args) -> int:
    """Handle the metadata subcommands."""
    settings = load_settings(args)
    store = MetadataStore(settings.metadata_dir)

    if args.action == 'show':
        record = await store.read(args.video_id)
        if record is None:
            print(f"  No record for {args.video_id}")
            return 1
        print_json(record.to_dict())
        print(f"\n  Integrity: {'valid' if store.validate(record) else 'INVALID'}")
        return 0

    if args.action == 'reliable':
        print_json(await store.get_reliable(args.video_id))
        return 0

    if args.action == 'update':
        record = await store.update_workflow_fields(args.video_id, _parse_updates(args.set or []))
        print_json(record.workflow_metadata)
        return 0

    # report
    report = generate_validation_report(await store.load_all())
    print_json(report)
    return 0 if report['invalid_videos'] == 0 else 1


async def cmd_health(args) -> int:
    """Handle the health command."""
    settings = load_settings(args)
    store_status = await MetadataStore(settings.metadata_dir).health_check()
    print(f"  Metadata store: {store_status['status']}")

    try:
        await VideoCollector(settings).health_check()
        print("  YouTube Data API: healthy")
        youtube_ok = True
    except WorkflowError as e:
        print(f"  YouTube Data API: unhealthy ({e})")
        youtube_ok = False

    return 0 if youtube_ok and store_status['status'] == 'healthy' else 1


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog='ywf',
        description='YouTube workflow core - metadata, transcripts and reliable storage',
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--config', help='Settings file (YAML or JSON) instead of environment')
    parser.add_argument('--log-level', default=None, help='Logging level (default: LOG_LEVEL or INFO)')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # fetch command
    fetch_parser = subparsers.add_parser('fetch', help='Fetch complete video data')
    fetch_parser.add_argument('url', help='YouTube video URL or id')
    fetch_parser.add_argument('--json', action='store_true', help='Print the full payload as JSON')
    fetch_parser.set_defaults(func=cmd_fetch)

    # transcript command
    transcript_parser = subparsers.add_parser('transcript', help='Resolve a transcript')
    transcript_parser.add_argument('url', help='YouTube video URL or id')
    transcript_parser.add_argument('--methods',
                                   help='Comma-separated fallback order (primary captions always first)')
    transcript_parser.add_argument('--json', action='store_true', help='Print segments as JSON')

    for sub in (fetch_parser, transcript_parser):
        sub.add_argument('--whisper', action='store_true', help='Enable the speech-to-text fallback')
        sub.add_argument('--comments', action='store_true', help='Enable comment mining')
    transcript_parser.set_defaults(func=cmd_transcript)

    # metadata command
    metadata_parser = subparsers.add_parser('metadata', help='Inspect stored metadata records')
    metadata_parser.add_argument('action', choices=['show', 'reliable', 'update', 'report'])
    metadata_parser.add_argument('video_id', nargs='?', help='Record id (not needed for report)')
    metadata_parser.add_argument('--set', action='append', metavar='KEY=VALUE',
                                 help='Workflow field to update (repeatable)')
    metadata_parser.set_defaults(func=cmd_metadata)

    # health command
    health_parser = subparsers.add_parser('health', help='Check the store and the Data API')
    health_parser.set_defaults(func=cmd_health)

    # Parse arguments
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == 'metadata' and args.action != 'report' and not args.video_id:
        parser.error(f"metadata {args.action} requires a video id")

    setup_logging(args.log_level)

    try:
        return asyncio.run(args.func(args))
    except (WorkflowError, ValueError) as e:
        print(f"  Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
