"""npm registry client for latest-version and repository lookups."""

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from dependsight.errors import RegistryLookupError
from dependsight.utils.http import AsyncHttpClient
from dependsight.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PackageInfo:
    """What the registry says about a package."""

    name: str
    latest_version: str
    repository_url: str | None = None


def package_url(package_name: str) -> str:
    """Return the registry path of a package document.

    Scoped names keep their ``@`` but have the ``/`` encoded.
    """
    return "/" + quote(package_name, safe="@")


def extract_repository_url(document: dict[str, Any]) -> str | None:
    """Pull the repository URL out of a registry package document.

    The ``repository`` field may be a string or an object with a ``url``.
    """
    repository = document.get("repository")
    if isinstance(repository, dict):
        url = repository.get("url")
        return url if isinstance(url, str) and url else None
    if isinstance(repository, str) and repository:
        return repository
    return None


class NpmRegistryClient:
    """Looks up package metadata on an npm-compatible registry."""

    def __init__(self, http_client: AsyncHttpClient) -> None:
        """Initialize the registry client.

        Args:
            http_client: Entered HTTP client whose base URL is the registry.
        """
        self._http = http_client

    async def get_package_info(self, package_name: str) -> PackageInfo:
        """Fetch the latest published version and repository URL.

        Args:
            package_name: npm package name.

        Returns:
            Package information.

        Raises:
            RegistryLookupError: If the request fails or no latest version
                is published.
        """
        try:
            document = await self._http.get_json(
                package_url(package_name),
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPStatusError as e:
            raise RegistryLookupError(
                package_name, f"HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise RegistryLookupError(package_name, str(e)) from e

        if not isinstance(document, dict):
            raise RegistryLookupError(package_name, "unexpected response")

        dist_tags = document.get("dist-tags") or {}
        latest = dist_tags.get("latest") if isinstance(dist_tags, dict) else None
        if not latest or not isinstance(latest, str):
            raise RegistryLookupError(package_name, "no latest version published")

        return PackageInfo(
            name=package_name,
            latest_version=latest,
            repository_url=extract_repository_url(document),
        )
