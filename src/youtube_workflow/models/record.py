"""
Persisted metadata record.

A record has three sections. ``original_metadata`` is the immutable
snapshot taken from YouTube plus ``fetched_at`` and ``checksum``.
``workflow_metadata`` is the only section the pipeline mutates after
creation. ``system_integrity`` tracks validation and backup state.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


RECORD_VERSION = "1.0"
WORKFLOW_VERSION = "1.0"


def default_workflow_metadata() -> dict:
    return {
        "processed_at": None,
        "workflow_version": WORKFLOW_VERSION,
        "ai_enhanced_title": None,
        "script_generated": False,
        "cost_tracking": {},
        "processing_attempts": 0,
    }


@dataclass
class MetadataRecord:
    video_id: str
    created_at: str
    original_metadata: dict[str, Any]
    workflow_metadata: dict[str, Any] = field(default_factory=default_workflow_metadata)
    system_integrity: dict[str, Any] = field(default_factory=dict)
    version: str = RECORD_VERSION

    @property
    def checksum(self) -> Optional[str]:
        if isinstance(self.original_metadata, dict):
            return self.original_metadata.get('checksum')
        return None

    def to_dict(self) -> dict:
        return {
            "video_id": self.video_id,
            "version": self.version,
            "created_at": self.created_at,
            "original_metadata": self.original_metadata,
            "workflow_metadata": self.workflow_metadata,
            "system_integrity": self.system_integrity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MetadataRecord":
        # Kept as stored; the store decides whether the content is valid
        return cls(
            video_id=data.get('video_id', ''),
            version=data.get('version', RECORD_VERSION),
            created_at=data.get('created_at', ''),
            original_metadata=data.get('original_metadata'),
            workflow_metadata=data.get('workflow_metadata') or {},
            system_integrity=data.get('system_integrity') or {},
        )
