"""Changelog retrieval for a dependency upgrade.

Entries between the declared version (exclusive) and the latest version
(inclusive) are taken from the first source that yields any:

1. GitHub release notes of the package's repository;
2. a changelog file in the locally installed copy under node_modules;
3. a single synthetic "Update from X to Y" entry.
"""

import asyncio
import re
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

import httpx

from dependsight.analysis.versioning import (
    change_type,
    in_upgrade_range,
    parse_semver,
    strip_tag_prefix,
)
from dependsight.core.models import ChangelogEntry
from dependsight.errors import RateLimitExceeded
from dependsight.utils.http import AsyncHttpClient
from dependsight.utils.logging import get_logger

logger = get_logger(__name__)

NO_DETAILS = "No details provided"
SEE_CHANGELOG = "See changelog for details"

GITHUB_REPO_PATTERN = re.compile(r"github\.com[/:]([^/]+)/([^/#?]+)")
VERSION_HEADING_PATTERN = re.compile(
    r"^#{1,2}[ \t]+\[?v?(\d+(?:\.\d+)+(?:-[0-9A-Za-z.-]+)?)\]?",
    re.MULTILINE | re.IGNORECASE,
)
DATE_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2})")
LIST_ITEM_PATTERN = re.compile(r"^[*-] ")


@dataclass
class Release:
    """A release as listed by a source-control host."""

    tag: str
    published_date: str | None
    body: str | None


def extract_change_lines(text: str) -> list[str]:
    """Keep list items (``- `` or ``* ``) of a block of text, marker removed.

    Args:
        text: Free-form release notes or changelog section.

    Returns:
        Non-empty change lines in order.
    """
    changes: list[str] = []
    for line in text.split("\n"):
        stripped = line.strip()
        if not LIST_ITEM_PATTERN.match(stripped):
            continue
        change = LIST_ITEM_PATTERN.sub("", stripped, count=1).strip()
        if change:
            changes.append(change)
    return changes


def parse_release_body(body: str | None) -> list[str]:
    """Turn a release body into a change list.

    An empty body yields a single placeholder line.
    """
    if not body:
        return [NO_DETAILS]
    return extract_change_lines(body)


def parse_github_repository(url: str | None) -> tuple[str, str] | None:
    """Extract ``(owner, repo)`` from a repository URL.

    Handles ``git+https://github.com/o/r.git``, ``git@github.com:o/r`` and
    ``github.com/o/r`` forms.
    """
    if not url:
        return None
    match = GITHUB_REPO_PATTERN.search(url)
    if not match:
        return None
    owner, repo = match.groups()
    repo = re.sub(r"\.git$", "", repo)
    if not owner or not repo:
        return None
    return owner, repo


def parse_changelog_text(
    content: str,
    current_version: str,
    latest_version: str,
) -> list[ChangelogEntry]:
    """Parse a Markdown changelog into entries within the upgrade range.

    The text is split on ``#``/``##`` version headings; sections whose version
    is valid semver and lies in ``(current, latest]`` are kept.

    Args:
        content: Changelog file contents.
        current_version: Declared version (exclusive bound).
        latest_version: Latest version (inclusive bound).

    Returns:
        Entries in file order.
    """
    parts = VERSION_HEADING_PATTERN.split(content)
    entries: list[ChangelogEntry] = []

    for i in range(1, len(parts), 2):
        version = parts[i]
        section = parts[i + 1] if i + 1 < len(parts) else ""

        if parse_semver(version) is None:
            continue
        if not in_upgrade_range(version, current_version, latest_version):
            continue

        date_match = DATE_PATTERN.search(section)
        # The rest of the heading line may hold a "- date" suffix, not a change
        _, _, body = section.partition("\n")
        changes = extract_change_lines(body) or [SEE_CHANGELOG]

        entries.append(
            ChangelogEntry(
                version=version,
                date=date_match.group(1) if date_match else None,
                changes=changes,
                change_type=change_type(current_version, version),
            )
        )

    return entries


def synthetic_entry(current_version: str, latest_version: str) -> ChangelogEntry:
    """Build the fallback entry used when no changelog source has data."""
    return ChangelogEntry(
        version=latest_version,
        changes=[f"Update from {current_version} to {latest_version}"],
        change_type=change_type(current_version, latest_version),
    )


class GitHubReleasesClient:
    """Lists releases of a GitHub repository."""

    PER_PAGE = 100

    def __init__(self, http_client: AsyncHttpClient, max_pages: int = 3) -> None:
        """Initialize the releases client.

        Args:
            http_client: Entered HTTP client whose base URL is the GitHub API.
            max_pages: Upper bound on pages fetched per repository.
        """
        self._http = http_client
        self._max_pages = max_pages

    async def list_releases(
        self,
        owner: str,
        repo: str,
        stop_at_version: str | None = None,
    ) -> list[Release]:
        """Fetch releases, newest first, as GitHub returns them.

        Args:
            owner: Repository owner.
            repo: Repository name.
            stop_at_version: Stop paging once a page's oldest release is not
                newer than this version.

        Returns:
            Releases in source order.

        Raises:
            httpx.HTTPError: If a request fails.
        """
        releases: list[Release] = []
        stop_v = parse_semver(stop_at_version)

        for page in range(1, self._max_pages + 1):
            data = await self._http.get_json(
                f"/repos/{owner}/{repo}/releases",
                params={"page": page, "per_page": self.PER_PAGE},
                headers={"Accept": "application/vnd.github+json"},
            )
            if not isinstance(data, list) or not data:
                break

            for item in data:
                if not isinstance(item, dict):
                    continue
                tag = item.get("tag_name") or ""
                published = item.get("published_at") or None
                releases.append(
                    Release(
                        tag=tag,
                        published_date=published.split("T")[0] if published else None,
                        body=item.get("body"),
                    )
                )

            if len(data) < self.PER_PAGE:
                break

            oldest_v = parse_semver(strip_tag_prefix(releases[-1].tag))
            if stop_v is not None and oldest_v is not None and oldest_v <= stop_v:
                break

        return releases


class ChangelogFetcher:
    """Tries each changelog source in priority order."""

    changelog_filenames: ClassVar[list[str]] = [
        "CHANGELOG.md",
        "CHANGELOG",
        "CHANGES.md",
        "HISTORY.md",
    ]

    def __init__(
        self,
        releases_client: GitHubReleasesClient | None,
        cache_dir: Path | None,
        releases_timeout: float | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            releases_client: GitHub releases client, or None to skip that source.
            cache_dir: Local dependency cache (a node_modules directory), or
                None to skip that source.
            releases_timeout: Seconds allowed for the GitHub source before it
                is given up on, None for no limit.
        """
        self._releases = releases_client
        self._cache_dir = cache_dir
        self._releases_timeout = releases_timeout
        self._warned_rate_limit = False

    async def from_github_releases(
        self,
        repository_url: str | None,
        current_version: str,
        latest_version: str,
    ) -> list[ChangelogEntry]:
        """Entries from GitHub release notes; empty when unavailable."""
        if self._releases is None:
            return []
        repository = parse_github_repository(repository_url)
        if repository is None:
            return []
        owner, repo = repository

        try:
            releases = await asyncio.wait_for(
                self._releases.list_releases(owner, repo, stop_at_version=current_version),
                timeout=self._releases_timeout,
            )
        except asyncio.TimeoutError:
            logger.debug(
                "Listing releases of %s/%s took over %s seconds", owner, repo, self._releases_timeout
            )
            return []
        except RateLimitExceeded as e:
            if not self._warned_rate_limit:
                logger.warning("%s; using other changelog sources. %s", e.message, e.hint)
                self._warned_rate_limit = True
            logger.debug("Skipping releases of %s/%s: %s", owner, repo, e.message)
            return []
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("Could not list releases of %s/%s: %s", owner, repo, e)
            return []

        entries: list[ChangelogEntry] = []
        for release in releases:
            version = strip_tag_prefix(release.tag)
            if not in_upgrade_range(version, current_version, latest_version):
                continue
            entries.append(
                ChangelogEntry(
                    version=version,
                    date=release.published_date,
                    changes=parse_release_body(release.body),
                    change_type=change_type(current_version, version),
                )
            )
        return entries

    def find_changelog_file(self, package_name: str) -> Path | None:
        """Locate a changelog in the locally installed copy of a package."""
        if self._cache_dir is None:
            return None
        package_dir = self._cache_dir / package_name
        if not package_dir.is_dir():
            return None
        for filename in self.changelog_filenames:
            candidate = package_dir / filename
            if candidate.is_file():
                return candidate
        return None

    def from_local_changelog(
        self,
        package_name: str,
        current_version: str,
        latest_version: str,
    ) -> list[ChangelogEntry]:
        """Entries from a locally installed changelog file; empty when absent."""
        path = self.find_changelog_file(package_name)
        if path is None:
            return []
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Could not read %s: %s", path, e)
            return []
        return parse_changelog_text(content, current_version, latest_version)

    async def fetch(
        self,
        package_name: str,
        repository_url: str | None,
        current_version: str,
        latest_version: str,
    ) -> list[ChangelogEntry]:
        """Retrieve changelog entries for ``(current, latest]``.

        Args:
            package_name: npm package name.
            repository_url: Repository URL from the registry, if any.
            current_version: Declared version.
            latest_version: Latest published version.

        Returns:
            Entries from the first source with data; never empty.
        """
        entries = await self.from_github_releases(
            repository_url, current_version, latest_version
        )
        if entries:
            logger.debug("%s: %d entries from GitHub releases", package_name, len(entries))
            return entries

        entries = self.from_local_changelog(package_name, current_version, latest_version)
        if entries:
            logger.debug("%s: %d entries from local changelog", package_name, len(entries))
            return entries

        logger.debug("%s: no changelog found, using synthetic entry", package_name)
        return [synthetic_entry(current_version, latest_version)]
