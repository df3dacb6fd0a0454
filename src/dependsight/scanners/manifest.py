"""Manifest reader for package.json declared dependencies."""

import json
import re
from pathlib import Path
from typing import Any, ClassVar

from dependsight.core.models import Dependency
from dependsight.errors import ManifestNotFoundError, ManifestParseError
from dependsight.utils.logging import get_logger

logger = get_logger(__name__)

_RANGE_PREFIX = re.compile(r"^\s*(?:[\^~]|>=?|=|v)+\s*")


def normalize_version(version: str) -> str:
    """Strip range operators such as ``^`` or ``~`` from a declared version.

    Args:
        version: Version string from package.json.

    Returns:
        The bare version, e.g. ``"^17.0.2"`` becomes ``"17.0.2"``.
    """
    return _RANGE_PREFIX.sub("", version).strip()


class ManifestReader:
    """Reads the dependencies declared in a project's package.json."""

    manifest_filename: ClassVar[str] = "package.json"

    sections: ClassVar[list[tuple[str, bool]]] = [
        ("dependencies", False),
        ("devDependencies", True),
    ]
    """Manifest sections read, in order, with their dev flag."""

    def __init__(self, exclude_dev: bool = False) -> None:
        """Initialize the reader.

        Args:
            exclude_dev: Skip devDependencies.
        """
        self.exclude_dev = exclude_dev

    def manifest_path(self, project_root: Path) -> Path:
        """Return the manifest location for a project root."""
        return project_root / self.manifest_filename

    def read(self, project_root: str | Path) -> list[Dependency]:
        """Read declared dependencies from package.json.

        Args:
            project_root: Project directory containing package.json.

        Returns:
            Dependencies in manifest order, regular before dev; each name
            appears at most once.

        Raises:
            ManifestNotFoundError: If package.json does not exist.
            ManifestParseError: If package.json is not a JSON object.
        """
        path = self.manifest_path(Path(project_root))
        if not path.is_file():
            raise ManifestNotFoundError(str(path))

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ManifestParseError(str(path), str(e)) from e

        if not isinstance(data, dict):
            raise ManifestParseError(str(path), "top-level value is not an object")

        dependencies: list[Dependency] = []
        seen: set[str] = set()

        for section, is_dev in self.sections:
            if is_dev and self.exclude_dev:
                continue
            for dep in self._parse_section(data.get(section), is_dev, str(path)):
                if dep.name in seen:
                    logger.debug("Ignoring duplicate declaration of %s", dep.name)
                    continue
                seen.add(dep.name)
                dependencies.append(dep)

        logger.debug("Read %d dependencies from %s", len(dependencies), path)
        return dependencies

    def _parse_section(
        self, section: Any, is_dev: bool, location: str
    ) -> list[Dependency]:
        """Parse one name-to-version mapping of the manifest.

        Args:
            section: The raw section value.
            is_dev: Dev flag for every entry.
            location: Manifest path, for messages.

        Returns:
            List of dependencies.
        """
        if section is None:
            return []
        if not isinstance(section, dict):
            raise ManifestParseError(location, "dependency section is not an object")

        dependencies: list[Dependency] = []
        for name, version in section.items():
            if not name or not isinstance(version, str):
                logger.warning("Skipping malformed entry %r in %s", name, location)
                continue
            dependencies.append(
                Dependency(
                    name=name,
                    version=normalize_version(version),
                    is_dev=is_dev,
                )
            )
        return dependencies


def read_manifest(project_root: str | Path, exclude_dev: bool = False) -> list[Dependency]:
    """Convenience function to read declared dependencies.

    Args:
        project_root: Project directory containing package.json.
        exclude_dev: Skip devDependencies.

    Returns:
        Declared dependencies.
    """
    return ManifestReader(exclude_dev=exclude_dev).read(project_root)
