"""Base filter interface for resource filtering."""

from abc import ABC, abstractmethod

from sweeper.models import MatchReason, MatchResult, ResourceDescriptor


class ResourceFilter(ABC):
    """Abstract base class for resource filters."""

    name = "filter"

    @abstractmethod
    def matches(self, descriptor: ResourceDescriptor) -> MatchResult:
        """Evaluate this filter against a single descriptor."""
        raise NotImplementedError

    @staticmethod
    def no_match(descriptor: ResourceDescriptor) -> MatchResult:
        return MatchResult(descriptor=descriptor, matched=False, reason=MatchReason.NO_MATCH)


class NullFilter(ResourceFilter):
    """Filter with no criteria.

    An empty filter never matches anything: an operator who forgets to
    specify criteria must select zero resources, not all of them.
    """

    name = "none"

    def matches(self, descriptor: ResourceDescriptor) -> MatchResult:
        return self.no_match(descriptor)
