"""Dependency usage and upgrade impact analysis.

Components:
- usage_analyzer: tree-sitter based import/require detection
- registry: npm registry lookups
- changelog: GitHub releases, local changelog and synthetic fallback
- versioning: semantic version parsing and comparison
- impact_calculator: relevance scoring
- impact_analyzer: orchestrates lookups, changelogs and scoring per dependency
"""

from dependsight.analysis.changelog import (
    ChangelogFetcher,
    GitHubReleasesClient,
    Release,
    parse_changelog_text,
    parse_github_repository,
    parse_release_body,
)
from dependsight.analysis.impact_analyzer import ImpactAnalyzer, analyze_impact
from dependsight.analysis.impact_calculator import (
    ImpactCalculator,
    RelevanceWeights,
    calculate_relevance_score,
)
from dependsight.analysis.registry import NpmRegistryClient, PackageInfo
from dependsight.analysis.usage_analyzer import (
    ImportSite,
    JavaScriptImportExtractor,
    UsageAnalyzer,
    UsageReport,
    analyze_usage,
    resolve_package_name,
)

__all__ = [
    # Changelog
    "ChangelogFetcher",
    "GitHubReleasesClient",
    "Release",
    "parse_changelog_text",
    "parse_github_repository",
    "parse_release_body",
    # Impact
    "ImpactAnalyzer",
    "ImpactCalculator",
    "RelevanceWeights",
    "analyze_impact",
    "calculate_relevance_score",
    # Registry
    "NpmRegistryClient",
    "PackageInfo",
    # Usage
    "ImportSite",
    "JavaScriptImportExtractor",
    "UsageAnalyzer",
    "UsageReport",
    "analyze_usage",
    "resolve_package_name",
]
