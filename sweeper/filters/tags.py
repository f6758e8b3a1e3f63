"""Tag predicate filter."""

from sweeper.filters.base import ResourceFilter
from sweeper.models import MatchReason, MatchResult, ResourceDescriptor


class TagFilter(ResourceFilter):
    """Match resources carrying every configured tag with the exact value.

    Keys and values are compared case-sensitively. An empty tag map
    matches nothing.
    """

    name = "tags"

    def __init__(self, tags: dict[str, str]):
        self.tags = dict(tags)

    def matches(self, descriptor: ResourceDescriptor) -> MatchResult:
        if not self.tags:
            return self.no_match(descriptor)

        for key, expected in self.tags.items():
            if key not in descriptor.tags or descriptor.tags[key] != expected:
                return self.no_match(descriptor)

        return MatchResult(descriptor=descriptor, matched=True, reason=MatchReason.TAG_MATCH)
