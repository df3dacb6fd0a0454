"""Semantic version helpers backed by the semver package."""

import re

from semver import Version

from dependsight.core.models import ChangeType


def parse_semver(value: str | None) -> Version | None:
    """Parse a strict ``MAJOR.MINOR.PATCH[-pre][+build]`` version.

    Build metadata is dropped so that it never takes part in ordering or
    equality.

    Args:
        value: Version string, without any leading ``v``.

    Returns:
        A comparable Version, or None if the string is not valid semver.
    """
    if not value:
        return None
    try:
        version = Version.parse(value.strip())
    except (ValueError, TypeError):
        return None
    return version.replace(build=None)


def is_valid_semver(value: str | None) -> bool:
    """Return True if value is a strict semantic version."""
    return parse_semver(value) is not None


def strip_tag_prefix(tag: str) -> str:
    """Turn a release tag such as ``v1.2.3`` into ``1.2.3``."""
    return re.sub(r"^v", "", tag.strip())


def is_newer(candidate: str, current: str) -> bool:
    """Return True if candidate has strictly higher precedence than current.

    Raises:
        ValueError: If either version is not valid semver.
    """
    candidate_v = parse_semver(candidate)
    current_v = parse_semver(current)
    if candidate_v is None or current_v is None:
        raise ValueError(f"Cannot compare versions {candidate!r} and {current!r}")
    return candidate_v > current_v


def in_upgrade_range(value: str, current: str, latest: str) -> bool:
    """Check if a version lies in ``(current, latest]``.

    Invalid versions are never in range.
    """
    v = parse_semver(value)
    low = parse_semver(current)
    high = parse_semver(latest)
    if v is None or low is None or high is None:
        return False
    return low < v <= high


def change_type(current: str, new: str) -> ChangeType:
    """Classify a release against the declared version.

    Args:
        current: Declared version.
        new: Release version.

    Returns:
        MAJOR if the major component grew, else MINOR if the minor
        component grew, else PATCH.
    """
    current_v = parse_semver(current)
    new_v = parse_semver(new)
    if current_v is None or new_v is None:
        raise ValueError(f"Cannot classify {new!r} against {current!r}")

    if new_v.major > current_v.major:
        return ChangeType.MAJOR
    if new_v.minor > current_v.minor:
        return ChangeType.MINOR
    return ChangeType.PATCH
