"""Persistence of the analysis snapshot shared by the analyze and report stages."""

from pathlib import Path

from pydantic import ValidationError

from dependsight.core.models import AnalysisSnapshot
from dependsight.errors import InvalidSnapshotError, SnapshotNotFoundError
from dependsight.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SNAPSHOT_FILE = "dependsight-analysis.json"


def save_snapshot(snapshot: AnalysisSnapshot, path: Path) -> None:
    """Write a snapshot as indented JSON, creating parent directories.

    Args:
        snapshot: Snapshot to persist.
        path: Destination file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
    logger.debug(
        "Saved snapshot with %d dependencies and %d usages to %s",
        len(snapshot.dependencies),
        len(snapshot.usages),
        path,
    )


def load_snapshot(path: Path) -> AnalysisSnapshot:
    """Read a snapshot and re-link every usage to its dependency.

    Args:
        path: Snapshot file written by save_snapshot.

    Returns:
        The loaded snapshot. Each usage's dependency is the same object as
        the matching entry of ``dependencies``.

    Raises:
        SnapshotNotFoundError: If the file does not exist.
        InvalidSnapshotError: If the file is malformed or a usage references
            a dependency that is not in the snapshot.
    """
    if not path.exists():
        raise SnapshotNotFoundError(str(path))

    try:
        snapshot = AnalysisSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as e:
        raise InvalidSnapshotError(str(path), str(e)) from e

    by_name = {dep.name: dep for dep in snapshot.dependencies}
    usages = []
    for usage in snapshot.usages:
        dependency = by_name.get(usage.dependency.name)
        if dependency is None:
            raise InvalidSnapshotError(
                str(path), f"usage in {usage.file} references unknown dependency {usage.dependency.name}"
            )
        usages.append(usage.model_copy(update={"dependency": dependency}))

    return AnalysisSnapshot(
        dependencies=snapshot.dependencies,
        usages=usages,
        project_root=snapshot.project_root,
    )
