"""Core data models and snapshot persistence."""

from dependsight.core.models import (
    AnalysisSnapshot,
    ChangelogEntry,
    ChangeType,
    Dependency,
    ImportKind,
    UpdateImpact,
    UsageRecord,
)
from dependsight.core.snapshot import (
    DEFAULT_SNAPSHOT_FILE,
    load_snapshot,
    save_snapshot,
)

__all__ = [
    # Models
    "AnalysisSnapshot",
    "ChangeType",
    "ChangelogEntry",
    "Dependency",
    "ImportKind",
    "UpdateImpact",
    "UsageRecord",
    # Snapshot
    "DEFAULT_SNAPSHOT_FILE",
    "load_snapshot",
    "save_snapshot",
]
