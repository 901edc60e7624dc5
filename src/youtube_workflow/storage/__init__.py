"""Storage for original video metadata."""

from .metadata_store import MetadataStore, ReconcileResult
from .view import MasterColumns, SheetView

__all__ = ["MasterColumns", "MetadataStore", "ReconcileResult", "SheetView"]
