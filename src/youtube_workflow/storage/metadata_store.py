"""
Immutable metadata storage with integrity checking.

Each video gets one JSON record under the metadata directory. The record's
``original_metadata`` is a write-once snapshot of what YouTube returned,
sealed with a SHA-256 checksum; ``workflow_metadata`` is the only part the
pipeline updates afterwards. The master sheet is treated as a view layer
and never as a source of truth.

Reliable reads go through three tiers:

1. the record on disk, if its checksum validates;
2. the master sheet row for the video, to find the source URL;
3. a fresh fetch from YouTube using that URL, persisted for next time.

Layout::

    <metadata_dir>/<video_id>.json
    <metadata_dir>/backups/<video_id>_<timestamp>.json

Within one store, writes to the same record are serialized by a per-video
lock. Writes are not locked across processes. The first write uses exclusive
file creation, so two writers racing on a missing record cannot both win.
Replacing an existing *invalid* record is still last-writer-wins.
"""

import asyncio
import hashlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..errors import NoReliableSourceError, NotFoundError
from ..models.record import MetadataRecord, default_workflow_metadata
from .validation import Discrepancy, compare_metadata
from .view import SheetView

logger = logging.getLogger(__name__)

SEAL_FIELDS = ('checksum', 'fetched_at')
RECONCILE_FIELDS = ['youtube_url', 'title', 'video_id', 'channel_title', 'duration']
HEALTH_CHECK_ID = "HEALTH_CHECK_TEST"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass
class ReconcileResult:
    is_valid: bool
    discrepancies: list[Discrepancy] = field(default_factory=list)
    note: str = ""

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "discrepancies": [d.to_dict() for d in self.discrepancies],
            "note": self.note,
        }


class MetadataStore:
    """Store original YouTube metadata as immutable, checksummed JSON records."""

    def __init__(
        self,
        metadata_dir: str = "data/metadata",
        sheet_view: Optional[SheetView] = None,
        video_source: Any = None,
    ):
        """
        Initialize the metadata store.

        Args:
            metadata_dir: Directory for primary records. Backups go to
                          ``<metadata_dir>/backups``.
            sheet_view: Master sheet lookup used for recovery and reconciliation.
            video_source: Object with ``get_complete_video_data(url)``
                          (normally a VideoCollector) used to re-fetch.
        """
        self.metadata_dir = Path(metadata_dir)
        self.backup_dir = self.metadata_dir / "backups"
        self.sheet_view = sheet_view
        self.video_source = video_source
        self._locks: dict[str, asyncio.Lock] = {}
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        for directory in (self.metadata_dir, self.backup_dir):
            if not directory.exists():
                directory.mkdir(parents=True, exist_ok=True)
                logger.info("Created metadata directory: %s", directory)

    def _lock(self, video_id: str) -> asyncio.Lock:
        """Serializes read-modify-write of one record within this process."""
        return self._locks.setdefault(video_id, asyncio.Lock())

    def metadata_path(self, video_id: str) -> Path:
        return self.metadata_dir / f"{video_id}.json"

    def backup_path(self, video_id: str, timestamp: Optional[str] = None) -> Path:
        ts = (timestamp or _utc_now()).replace(':', '-').replace('.', '-')
        return self.backup_dir / f"{video_id}_{ts}.json"

    @staticmethod
    def calculate_checksum(metadata: dict) -> str:
        """
        SHA-256 over compact JSON of the metadata with top-level keys sorted.

        Nested objects and lists are serialized in their stored order.
        """
        canonical = {key: metadata[key] for key in sorted(metadata)}
        data = json.dumps(canonical, ensure_ascii=False, separators=(',', ':'))
        return hashlib.sha256(data.encode('utf-8')).hexdigest()

    # -- file helpers (run in worker threads) --

    @staticmethod
    def _read_json(path: Path):
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)

    @staticmethod
    def _dump_to_temp(path: Path, data: dict) -> str:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}-", suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
        except BaseException:
            os.unlink(tmp_name)
            raise
        return tmp_name

    @classmethod
    def _write_json(cls, path: Path, data: dict) -> None:
        tmp_name = cls._dump_to_temp(path, data)
        try:
            os.replace(tmp_name, path)
        finally:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)

    @classmethod
    def _create_exclusive(cls, path: Path, data: dict) -> None:
        """Publish a complete file at ``path``; FileExistsError if one is already there."""
        tmp_name = cls._dump_to_temp(path, data)
        try:
            os.link(tmp_name, path)
        except FileExistsError:
            raise
        except OSError as e:
            # No hard links here; a reader may briefly see a partial file
            logger.debug("Hard link unavailable for %s (%s), using exclusive open", path, e)
            with open(path, 'x', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
        finally:
            os.unlink(tmp_name)

    # -- record operations --

    async def read(self, video_id: str) -> Optional[MetadataRecord]:
        """Load a record as stored, without validating it."""
        try:
            data = await asyncio.to_thread(self._read_json, self.metadata_path(video_id))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.error("Failed to load metadata for %s: %s", video_id, e)
            return None

        if not isinstance(data, dict):
            logger.error("Metadata file for %s does not hold a record object", video_id)
            return None
        return MetadataRecord.from_dict(data)

    def validate(self, record: Optional[MetadataRecord]) -> bool:
        """Recompute the checksum of the original metadata and compare."""
        if record is None:
            return False
        original = record.original_metadata
        if not isinstance(original, dict) or not original.get('checksum'):
            return False

        data = {k: v for k, v in original.items() if k not in SEAL_FIELDS}
        try:
            return self.calculate_checksum(data) == original['checksum']
        except (TypeError, ValueError):
            return False

    def _has_valid_original(self, record: Optional[MetadataRecord]) -> bool:
        return record is not None and bool(record.original_metadata) and self.validate(record)

    async def write(self, video_id: str, metadata: dict) -> MetadataRecord:
        """
        Save original YouTube metadata as an immutable record.

        Returns the existing record untouched when a valid one is already
        stored. Otherwise seals the metadata, writes the primary file, a
        timestamped backup, and the primary again with the backup flag set.
        """
        async with self._lock(video_id):
            return await self._write(video_id, metadata)

    async def _write(self, video_id: str, metadata: dict) -> MetadataRecord:
        existing = await self.read(video_id)
        if self._has_valid_original(existing):
            logger.info("Original metadata already exists for %s, skipping overwrite", video_id)
            return existing

        payload = {k: v for k, v in metadata.items() if k not in SEAL_FIELDS}
        checksum = self.calculate_checksum(payload)
        now = _utc_now()
        record = MetadataRecord(
            video_id=video_id,
            created_at=now,
            original_metadata={**payload, 'fetched_at': now, 'checksum': checksum},
            workflow_metadata=default_workflow_metadata(),
            system_integrity={
                'last_validated': now,
                'validation_status': 'verified',
                'backup_created': False,
            },
        )

        path = self.metadata_path(video_id)
        if existing is None:
            try:
                await asyncio.to_thread(self._create_exclusive, path, record.to_dict())
            except FileExistsError:
                winner = await self.read(video_id)
                if self._has_valid_original(winner):
                    logger.info("Metadata for %s was written concurrently, keeping it", video_id)
                    return winner
                await asyncio.to_thread(self._write_json, path, record.to_dict())
        else:
            logger.warning("Replacing invalid metadata record for %s", video_id)
            await asyncio.to_thread(self._write_json, path, record.to_dict())

        await asyncio.to_thread(self._write_json, self.backup_path(video_id), record.to_dict())
        record.system_integrity['backup_created'] = True
        await asyncio.to_thread(self._write_json, path, record.to_dict())

        logger.info("Saved immutable metadata for %s: %s", video_id, payload.get('title'))
        return record

    async def get_reliable(self, video_id: str) -> dict:
        """
        Get original metadata through the file, sheet, re-fetch tiers.

        Raises:
            NoReliableSourceError: no tier could produce metadata.
        """
        record = await self.read(video_id)
        if record is not None:
            if self.validate(record):
                logger.debug("Using validated metadata from file for %s", video_id)
                return record.original_metadata
            logger.warning("Metadata file corrupted for %s, attempting recovery", video_id)

        if self.sheet_view is not None and self.video_source is not None:
            try:
                fresh = await self._recover_from_sheet(video_id)
            except Exception as e:
                logger.warning("Failed to recover metadata from sheet for %s: %s", video_id, e)
                raise NoReliableSourceError(
                    f"No reliable metadata source available for {video_id}"
                ) from e
            if fresh is not None:
                return fresh

        raise NoReliableSourceError(f"No reliable metadata source available for {video_id}")

    async def _recover_from_sheet(self, video_id: str) -> Optional[dict]:
        row = await self.sheet_view.find_video_row(video_id)
        youtube_url = (row or {}).get(self.sheet_view.columns.youtube_url)
        if not youtube_url:
            logger.warning("No source URL in sheet for %s", video_id)
            return None

        logger.info("Re-fetching metadata from YouTube for %s", video_id)
        complete = await self.video_source.get_complete_video_data(youtube_url)
        fresh = complete.to_dict()
        await self.write(video_id, fresh)
        return fresh

    async def update_workflow_fields(self, video_id: str, updates: dict) -> MetadataRecord:
        """Merge updates into workflow metadata. Original metadata is left as stored."""
        async with self._lock(video_id):
            record = await self.read(video_id)
            if record is None:
                raise NotFoundError(f"No metadata file exists for {video_id}")

            record.workflow_metadata = {
                **record.workflow_metadata,
                **updates,
                'last_updated': _utc_now(),
            }
            await asyncio.to_thread(self._write_json, self.metadata_path(video_id), record.to_dict())

        logger.info("Updated workflow metadata for %s", video_id)
        return record

    async def reconcile_with_view(self, video_id: str) -> ReconcileResult:
        """Compare immutable fields between the stored record and the sheet row."""
        if self.sheet_view is None:
            return ReconcileResult(True, note="No sheet view configured")

        record = await self.read(video_id)
        if record is None:
            return ReconcileResult(True, note="No file metadata to compare")

        row = await self.sheet_view.find_video_row(video_id)
        if not row:
            return ReconcileResult(
                False,
                [Discrepancy('sheet_missing', video_id, None, 'critical')],
                note="Video not found in sheet",
            )

        columns = self.sheet_view.columns
        sheet_values = {
            'youtube_url': row.get(columns.youtube_url),
            'title': row.get(columns.title),
            'video_id': row.get(columns.youtube_video_id),
            'channel_title': row.get(columns.channel),
            'duration': row.get(columns.duration),
        }
        original = record.original_metadata if isinstance(record.original_metadata, dict) else {}
        discrepancies = compare_metadata(original, sheet_values, RECONCILE_FIELDS)

        if discrepancies:
            return ReconcileResult(False, discrepancies, "Sheet data differs from original metadata")
        return ReconcileResult(True, note="Sheet data matches original metadata")

    # -- maintenance --

    async def list_video_ids(self) -> list[str]:
        """Ids of all primary records (backups excluded)."""
        paths = await asyncio.to_thread(lambda: sorted(self.metadata_dir.glob('*.json')))
        return [p.stem for p in paths]

    async def load_all(self) -> list[dict]:
        """Raw dicts of every primary record that can be decoded."""
        records = []
        for video_id in await self.list_video_ids():
            record = await self.read(video_id)
            if record is not None:
                records.append(record.to_dict())
        return records

    def _remove_health_record(self) -> None:
        self.metadata_path(HEALTH_CHECK_ID).unlink(missing_ok=True)
        for backup in self.backup_dir.glob(f"{HEALTH_CHECK_ID}_*.json"):
            backup.unlink(missing_ok=True)

    async def health_check(self) -> dict:
        """Write, read and validate a throwaway record, then remove it."""
        sample = {
            'title': 'Health Check Test Video',
            'youtube_url': 'https://www.youtube.com/watch?v=dQw4w9WgXcQ',
            'video_id': 'dQw4w9WgXcQ',
        }
        try:
            await asyncio.to_thread(self._remove_health_record)
            await self.write(HEALTH_CHECK_ID, sample)
            loaded = await self.read(HEALTH_CHECK_ID)
            is_valid = self.validate(loaded)
            await asyncio.to_thread(self._remove_health_record)
        except OSError as e:
            logger.error("Metadata store health check failed: %s", e)
            return {
                "status": "unhealthy",
                "service": "MetadataStore",
                "error": str(e),
                "metadata_dir": str(self.metadata_dir),
            }

        return {
            "status": "healthy" if is_valid else "unhealthy",
            "service": "MetadataStore",
            "can_write": True,
            "can_read": loaded is not None,
            "integrity_validation": is_valid,
            "metadata_dir": str(self.metadata_dir),
        }
