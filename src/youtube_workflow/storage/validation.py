"""
Validation helpers for stored metadata.

These check completeness and format of a record's original metadata and
compare metadata between two sources. Checksum integrity lives in the store.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from ..extractor.duration import UNKNOWN_DURATION

REQUIRED_FIELDS = ['youtube_url', 'title', 'video_id', 'channel_title', 'duration']
RECORD_FIELDS = [
    'video_id',
    'version',
    'created_at',
    'original_metadata',
    'workflow_metadata',
    'system_integrity',
]
DEFAULT_COMPARE_FIELDS = ['youtube_url', 'title', 'video_id', 'channel_title', 'duration', 'view_count']

CRITICAL_FIELDS = {'youtube_url', 'video_id'}
WARNING_FIELDS = {'title', 'channel_title', 'duration'}

_YOUTUBE_URL_RE = re.compile(r'^https://(www\.)?(youtube\.com/watch\?v=|youtu\.be/)[A-Za-z0-9_-]+')
_VIDEO_ID_RE = re.compile(r'^[A-Za-z0-9_-]{11}$')
_DISPLAY_DURATION_RE = re.compile(r'^(\d+:)?\d{1,2}:\d{2}$')


@dataclass
class CheckResult:
    is_valid: bool
    message: str


@dataclass
class MetadataValidation:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        return f"{len(self.errors)} errors, {len(self.warnings)} warnings"


@dataclass
class Discrepancy:
    field: str
    original: Any
    current: Any
    severity: str

    def to_dict(self) -> dict:
        return {
            "field": self.field,
            "original": self.original,
            "current": self.current,
            "severity": self.severity,
        }


def field_severity(name: str) -> str:
    """Severity of a mismatch on a field: critical, warning or info."""
    if name in CRITICAL_FIELDS:
        return "critical"
    if name in WARNING_FIELDS:
        return "warning"
    return "info"


def validate_required_fields(metadata: dict) -> CheckResult:
    missing = [name for name in REQUIRED_FIELDS if not metadata.get(name)]
    if missing:
        return CheckResult(False, f"Missing required fields: {', '.join(missing)}")
    return CheckResult(True, "All required fields present")


def validate_youtube_url(url: Optional[str]) -> CheckResult:
    if not url:
        return CheckResult(False, "YouTube URL is empty")
    if _YOUTUBE_URL_RE.match(url):
        return CheckResult(True, "Valid YouTube URL")
    return CheckResult(False, "Invalid YouTube URL format")


def validate_video_id(video_id: Optional[str]) -> CheckResult:
    if not video_id:
        return CheckResult(False, "Video ID is empty")
    if _VIDEO_ID_RE.match(video_id):
        return CheckResult(True, "Valid video ID format")
    return CheckResult(False, "Invalid video ID format (expected 11 characters)")


def validate_duration(duration: Optional[str]) -> CheckResult:
    if not duration or duration == UNKNOWN_DURATION:
        return CheckResult(False, "Duration is missing")
    if _DISPLAY_DURATION_RE.match(duration):
        return CheckResult(True, "Valid duration")
    return CheckResult(False, "Invalid duration format (expected M:SS or H:MM:SS)")


def validate_metadata(metadata: dict) -> MetadataValidation:
    """Completeness and format checks over original metadata."""
    checks = {
        "required_fields": validate_required_fields(metadata),
        "youtube_url": validate_youtube_url(metadata.get('youtube_url')),
        "video_id": validate_video_id(metadata.get('video_id')),
        "duration": validate_duration(metadata.get('duration')),
    }
    errors = [f"{name}: {check.message}" for name, check in checks.items() if not check.is_valid]

    # Optional but important fields
    warnings = []
    if not metadata.get('description'):
        warnings.append("Description is missing")
    if not metadata.get('thumbnails'):
        warnings.append("Thumbnails are missing")
    if not metadata.get('transcript'):
        warnings.append("Transcript is missing")
    if not metadata.get('view_count'):
        warnings.append("View count is missing")

    return MetadataValidation(is_valid=not errors, errors=errors, warnings=warnings)


def validate_record_structure(record: Optional[dict]) -> MetadataValidation:
    """Check a raw record dict has every section and valid original metadata."""
    if not record:
        return MetadataValidation(False, errors=["Metadata record is empty"])

    missing = [name for name in RECORD_FIELDS if not record.get(name)]
    if missing:
        return MetadataValidation(
            False, errors=[f"Invalid metadata record structure. Missing: {', '.join(missing)}"]
        )
    original = record['original_metadata']
    if not isinstance(original, dict):
        return MetadataValidation(False, errors=["original_metadata is not an object"])
    return validate_metadata(original)


def compare_metadata(
    original: dict,
    current: dict,
    fields: Optional[list[str]] = None,
) -> list[Discrepancy]:
    """Per-field differences between two metadata mappings."""
    discrepancies = []
    for name in fields or DEFAULT_COMPARE_FIELDS:
        original_value = original.get(name)
        current_value = current.get(name)
        if original_value != current_value:
            discrepancies.append(Discrepancy(
                field=name,
                original=original_value,
                current=current_value,
                severity=field_severity(name),
            ))
    return discrepancies


def generate_validation_report(records: list[dict]) -> dict:
    """Validation summary across many raw record dicts."""
    valid = 0
    errors = []
    for index, record in enumerate(records):
        result = validate_record_structure(record)
        if result.is_valid:
            valid += 1
        else:
            errors.append({
                "index": index,
                "video_id": (record or {}).get('video_id') or f"Record {index}",
                "errors": result.errors,
            })

    total = len(records)
    invalid = total - valid
    return {
        "total_videos": total,
        "valid_videos": valid,
        "invalid_videos": invalid,
        "errors": errors,
        "summary": {
            "validation_rate": f"{(valid / total * 100) if total else 0:.1f}%",
            "error_rate": f"{(invalid / total * 100) if total else 0:.1f}%",
        },
    }
