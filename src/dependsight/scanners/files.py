"""Source file discovery under a project root."""

import fnmatch
import os
from pathlib import Path

from dependsight.config import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_EXTENSIONS


class FileEnumerator:
    """Enumerates candidate source files, skipping build and vendor directories."""

    def __init__(
        self,
        extensions: list[str] | None = None,
        exclude_patterns: list[str] | None = None,
    ) -> None:
        """Initialize the enumerator.

        Args:
            extensions: File extensions to include (with leading dot).
            exclude_patterns: Glob patterns for files/directories to exclude.
        """
        self._extensions = tuple(extensions or DEFAULT_EXTENSIONS)
        self._exclude_patterns = (
            DEFAULT_EXCLUDE_PATTERNS if exclude_patterns is None else exclude_patterns
        )

    def should_exclude(self, relative_path: Path) -> bool:
        """Check if a file should be excluded.

        Args:
            relative_path: File path relative to the project root.

        Returns:
            True if the path or any of its components matches a pattern.
        """
        path_str = relative_path.as_posix()

        for pattern in self._exclude_patterns:
            if fnmatch.fnmatch(path_str, pattern):
                return True
            component_pattern = pattern.replace("**/", "").replace("/**", "")
            for part in relative_path.parts:
                if fnmatch.fnmatch(part, component_pattern):
                    return True

        return False

    def find_files(self, project_root: str | Path) -> list[str]:
        """Find all candidate source files.

        Args:
            project_root: Directory to search.

        Returns:
            Posix paths relative to the root, sorted.
        """
        root = Path(project_root)
        files: list[str] = []

        # Walk top-down so excluded directories such as node_modules are pruned
        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            dirnames[:] = [
                d for d in dirnames
                if not self.should_exclude((current / d).relative_to(root))
            ]
            for filename in filenames:
                if not filename.endswith(self._extensions):
                    continue
                relative = (current / filename).relative_to(root)
                if not self.should_exclude(relative):
                    files.append(relative.as_posix())

        return sorted(files)


def find_source_files(
    project_root: str | Path,
    extensions: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
) -> list[str]:
    """Convenience function to enumerate source files.

    Args:
        project_root: Directory to search.
        extensions: File extensions to include.
        exclude_patterns: Glob patterns to exclude.

    Returns:
        Sorted relative posix paths.
    """
    return FileEnumerator(extensions, exclude_patterns).find_files(project_root)
