"""Temporal filter for age-based resource identification.

A resource is selected when it is strictly older than the configured
maximum age. Resources without a known creation time are never selected.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from sweeper.filters.base import ResourceFilter
from sweeper.models import MatchReason, MatchResult, ResourceDescriptor


class TemporalFilter(ResourceFilter):
    """Filter resources based on an age threshold."""

    name = "max_age"

    def __init__(
        self,
        max_age: timedelta,
        now: Callable[[], datetime] | None = None,
    ):
        """
        Initialize temporal filter.

        Args:
            max_age: Age a resource must exceed to be selected (must be positive)
            now: Optional clock returning an aware datetime, for tests
        """
        if max_age <= timedelta(0):
            raise ValueError("max_age must be a positive duration")
        self.max_age = max_age
        self._now = now or (lambda: datetime.now(UTC))

    def get_age(self, creation_time: datetime) -> timedelta:
        """
        Calculate age from creation time.

        Naive datetimes are treated as UTC.
        """
        if creation_time.tzinfo is None:
            creation_time = creation_time.replace(tzinfo=UTC)
        return self._now() - creation_time

    def exceeds_age_threshold(self, creation_time: datetime | None) -> bool:
        """Check if a creation time is older than the threshold."""
        if creation_time is None:
            return False
        return self.get_age(creation_time) > self.max_age

    def matches(self, descriptor: ResourceDescriptor) -> MatchResult:
        if self.exceeds_age_threshold(descriptor.creation_time):
            return MatchResult(descriptor=descriptor, matched=True, reason=MatchReason.AGE_MATCH)
        return self.no_match(descriptor)
