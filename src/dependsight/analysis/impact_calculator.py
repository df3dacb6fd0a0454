"""Relevance score calculation for available dependency updates."""

from dataclasses import dataclass
from typing import Optional

from dependsight.core.models import ChangelogEntry, ChangeType


@dataclass
class RelevanceWeights:
    """Weights for relevance score calculation."""

    base_score: int = 50

    # Version change magnitude; only the largest applies
    major_points: int = 30
    minor_points: int = 15

    # Usage intensity, by raw number of usage records
    usage_threshold_high: int = 10  # more than 10 usages
    usage_threshold_medium: int = 5  # more than 5 usages
    usage_points_high: int = 20
    usage_points_medium: int = 10
    usage_points_low: int = 5  # at least one usage

    dev_dependency_penalty: int = 20

    min_score: int = 0
    max_score: int = 100


class ImpactCalculator:
    """Calculates how relevant an available update is."""

    def __init__(self, weights: Optional[RelevanceWeights] = None):
        """Initialize the impact calculator.

        Args:
            weights: Optional custom weights for scoring.
        """
        self._weights = weights or RelevanceWeights()

    def version_points(self, entries: list[ChangelogEntry]) -> int:
        """Points for the largest change magnitude among the entries."""
        w = self._weights
        change_types = {entry.change_type for entry in entries}
        if ChangeType.MAJOR in change_types:
            return w.major_points
        if ChangeType.MINOR in change_types:
            return w.minor_points
        return 0

    def usage_points(self, usage_count: int) -> int:
        """Points for how often the dependency is imported."""
        w = self._weights
        if usage_count > w.usage_threshold_high:
            return w.usage_points_high
        if usage_count > w.usage_threshold_medium:
            return w.usage_points_medium
        if usage_count > 0:
            return w.usage_points_low
        return 0

    def calculate_relevance_score(
        self,
        entries: list[ChangelogEntry],
        usage_count: int,
        is_dev: bool,
    ) -> int:
        """Calculate the relevance score of an update.

        Args:
            entries: Changelog entries of the update.
            usage_count: Number of usage records (not distinct files).
            is_dev: Whether the dependency is a dev dependency.

        Returns:
            Score clamped to [0, 100].
        """
        w = self._weights
        score = w.base_score
        score += self.version_points(entries)
        score += self.usage_points(usage_count)
        if is_dev:
            score -= w.dev_dependency_penalty
        return max(w.min_score, min(w.max_score, score))


def calculate_relevance_score(
    entries: list[ChangelogEntry],
    usage_count: int,
    is_dev: bool,
) -> int:
    """Convenience function to calculate a relevance score.

    Args:
        entries: Changelog entries of the update.
        usage_count: Number of usage records.
        is_dev: Whether the dependency is a dev dependency.

    Returns:
        Score between 0 and 100.
    """
    return ImpactCalculator().calculate_relevance_score(entries, usage_count, is_dev)
