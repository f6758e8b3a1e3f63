"""Explicit identifier filter."""

from collections.abc import Iterable

from sweeper.filters.base import ResourceFilter
from sweeper.models import MatchReason, MatchResult, ResourceDescriptor


class IdentityFilter(ResourceFilter):
    """Match resources whose id is in a configured set."""

    name = "ids"

    def __init__(self, ids: Iterable[str]):
        self.ids = frozenset(ids)

    def matches(self, descriptor: ResourceDescriptor) -> MatchResult:
        if descriptor.resource_id in self.ids:
            return MatchResult(descriptor=descriptor, matched=True, reason=MatchReason.ID_MATCH)
        return self.no_match(descriptor)

    def unmatched(self, seen_ids: Iterable[str]) -> list[str]:
        """Configured ids that never showed up during enumeration.

        These are reported as zero matches, not as errors.
        """
        return sorted(self.ids - set(seen_ids))
