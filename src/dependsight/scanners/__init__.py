"""Manifest reading and source file discovery."""

from dependsight.scanners.files import FileEnumerator, find_source_files
from dependsight.scanners.manifest import (
    ManifestReader,
    normalize_version,
    read_manifest,
)

__all__ = [
    "FileEnumerator",
    "ManifestReader",
    "find_source_files",
    "normalize_version",
    "read_manifest",
]
