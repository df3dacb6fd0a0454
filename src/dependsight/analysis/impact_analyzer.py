"""Impact analyzer: turns declared dependencies and their usages into update impacts."""

import asyncio
from pathlib import Path

import httpx

from dependsight.analysis.changelog import ChangelogFetcher, GitHubReleasesClient
from dependsight.analysis.impact_calculator import ImpactCalculator
from dependsight.analysis.registry import NpmRegistryClient
from dependsight.analysis.versioning import is_newer
from dependsight.config import DependsightConfig
from dependsight.core.models import Dependency, UpdateImpact, UsageRecord
from dependsight.errors import LookupFailure
from dependsight.utils.http import AsyncHttpClient, create_github_rate_limiter
from dependsight.utils.logging import get_logger

logger = get_logger(__name__)


def group_usages(usages: list[UsageRecord]) -> dict[str, list[UsageRecord]]:
    """Group usage records by dependency name, keeping their order."""
    grouped: dict[str, list[UsageRecord]] = {}
    for usage in usages:
        grouped.setdefault(usage.dependency.name, []).append(usage)
    return grouped


def affected_files(usages: list[UsageRecord]) -> list[str]:
    """Distinct files of a dependency's usages in first-seen order."""
    return list(dict.fromkeys(usage.file for usage in usages))


class ImpactAnalyzer:
    """Resolves available updates and scores how much each one matters."""

    def __init__(
        self,
        config: DependsightConfig | None = None,
        project_root: str | Path | None = None,
        calculator: ImpactCalculator | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the impact analyzer.

        Args:
            config: Configuration; defaults are used when omitted.
            project_root: Project whose node_modules holds local changelogs.
            calculator: Optional relevance calculator.
            transport: Optional httpx transport shared by every HTTP client.
        """
        self._config = config or DependsightConfig()
        self._cache_dir = Path(project_root) / "node_modules" if project_root else None
        self._calculator = calculator or ImpactCalculator()
        self._transport = transport

    def _registry_http(self) -> AsyncHttpClient:
        registry = self._config.registry
        return AsyncHttpClient(
            base_url=registry.url,
            timeout=registry.timeout,
            max_retries=registry.max_retries,
            transport=self._transport,
        )

    def _github_http(self) -> AsyncHttpClient:
        github = self._config.github
        headers = {"X-GitHub-Api-Version": "2022-11-28"}
        if github.token:
            headers["Authorization"] = f"Bearer {github.token}"
        return AsyncHttpClient(
            base_url=github.api_url,
            timeout=self._config.registry.timeout,
            max_retries=self._config.registry.max_retries,
            rate_limiter=create_github_rate_limiter(has_token=bool(github.token)),
            headers=headers,
            transport=self._transport,
        )

    def is_candidate(self, dependency: Dependency, usage_count: int) -> bool:
        """Unused production dependencies are not worth reporting."""
        return usage_count > 0 or dependency.is_dev

    async def analyze(
        self,
        dependencies: list[Dependency],
        usages: list[UsageRecord],
    ) -> list[UpdateImpact]:
        """Compute update impacts for all candidate dependencies.

        Args:
            dependencies: Declared dependencies, in manifest order.
            usages: Usage records of this run.

        Returns:
            Impacts sorted by descending relevance; ties keep manifest order.
        """
        usages_by_name = group_usages(usages)
        candidates = [
            dep for dep in dependencies
            if self.is_candidate(dep, len(usages_by_name.get(dep.name, [])))
        ]
        logger.debug(
            "%d of %d dependencies are candidates for impact analysis",
            len(candidates),
            len(dependencies),
        )
        if not candidates:
            return []

        semaphore = asyncio.Semaphore(self._config.impact.max_concurrency)

        async with self._registry_http() as registry_http, self._github_http() as github_http:
            registry = NpmRegistryClient(registry_http)
            fetcher = ChangelogFetcher(
                GitHubReleasesClient(github_http, self._config.github.max_release_pages),
                self._cache_dir,
                releases_timeout=self._config.github.releases_timeout,
            )
            results = await asyncio.gather(
                *(
                    self._analyze_dependency(
                        dep,
                        usages_by_name.get(dep.name, []),
                        registry,
                        fetcher,
                        semaphore,
                    )
                    for dep in candidates
                )
            )

        impacts = [impact for impact in results if impact is not None]
        impacts.sort(key=lambda impact: impact.relevance_score, reverse=True)
        return impacts

    async def _analyze_dependency(
        self,
        dependency: Dependency,
        usages: list[UsageRecord],
        registry: NpmRegistryClient,
        fetcher: ChangelogFetcher,
        semaphore: asyncio.Semaphore,
    ) -> UpdateImpact | None:
        """Resolve one dependency; every failure is contained here."""
        async with semaphore:
            try:
                return await asyncio.wait_for(
                    self._resolve(dependency, usages, registry, fetcher),
                    timeout=self._config.impact.dependency_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Timed out resolving %s after %.0f seconds",
                    dependency.name,
                    self._config.impact.dependency_timeout,
                )
            except LookupFailure as e:
                logger.warning("Skipping %s: %s", dependency.name, e.message)
            except Exception as e:
                logger.warning("Error processing %s: %s", dependency.name, e)
        return None

    async def _resolve(
        self,
        dependency: Dependency,
        usages: list[UsageRecord],
        registry: NpmRegistryClient,
        fetcher: ChangelogFetcher,
    ) -> UpdateImpact | None:
        info = await registry.get_package_info(dependency.name)
        latest = info.latest_version

        try:
            newer = is_newer(latest, dependency.version)
        except ValueError as e:
            raise LookupFailure(f"cannot compare versions: {e}") from e

        if not newer:
            logger.debug("%s is up to date (%s)", dependency.name, dependency.version)
            return None

        entries = await fetcher.fetch(
            dependency.name, info.repository_url, dependency.version, latest
        )
        if not entries:
            return None

        return UpdateImpact(
            dependency=dependency,
            latest_version=latest,
            affected_files=affected_files(usages),
            changelog_entries=entries,
            relevance_score=self._calculator.calculate_relevance_score(
                entries, len(usages), dependency.is_dev
            ),
        )


def analyze_impact(
    dependencies: list[Dependency],
    usages: list[UsageRecord],
    config: DependsightConfig | None = None,
    project_root: str | Path | None = None,
) -> list[UpdateImpact]:
    """Convenience function running the impact analysis to completion.

    Args:
        dependencies: Declared dependencies.
        usages: Usage records.
        config: Optional configuration.
        project_root: Project whose node_modules holds local changelogs.

    Returns:
        Impacts sorted by descending relevance.
    """
    analyzer = ImpactAnalyzer(config=config, project_root=project_root)
    return asyncio.run(analyzer.analyze(dependencies, usages))
