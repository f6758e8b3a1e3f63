"""Resource filtering: decide which enumerated resources a run selects.

Each resource type is filtered by exactly one kind of criterion:
- TagFilter: every configured tag present with the exact value
- IdentityFilter: resource id in an explicit set
- TemporalFilter: older than a maximum age

A type listed without criteria gets a NullFilter and selects nothing.
"""

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import TYPE_CHECKING

from sweeper.filters.base import NullFilter, ResourceFilter
from sweeper.filters.identity import IdentityFilter
from sweeper.filters.tags import TagFilter
from sweeper.filters.temporal import TemporalFilter
from sweeper.models import FilterSpec, MatchResult, ResourceDescriptor

if TYPE_CHECKING:
    from sweeper.registry import ResourceTypeRegistry


def build_filter(
    spec: FilterSpec,
    now: Callable[[], datetime] | None = None,
) -> ResourceFilter:
    """Create the filter for a spec, rejecting conflicting criteria."""
    spec.validate()
    if spec.tags is not None:
        return TagFilter(spec.tags)
    if spec.ids is not None:
        return IdentityFilter(spec.ids)
    if spec.max_age is not None:
        return TemporalFilter(spec.max_age, now=now)
    return NullFilter()


def matches(
    spec: FilterSpec,
    descriptor: ResourceDescriptor,
    now: Callable[[], datetime] | None = None,
) -> MatchResult:
    """Evaluate a filter spec against one descriptor."""
    return build_filter(spec, now=now).matches(descriptor)


def validate_filters(
    filters: Mapping[str, FilterSpec],
    registry: "ResourceTypeRegistry",
) -> None:
    """Fail fast on unknown types or conflicting criteria.

    Raises:
        UnknownTypeError: a filtered type is not registered
        ConfigurationError: a spec configures more than one kind
    """
    for type_id, spec in filters.items():
        registry.get(type_id)
        spec.validate(type_id)


__all__ = [
    "IdentityFilter",
    "NullFilter",
    "ResourceFilter",
    "TagFilter",
    "TemporalFilter",
    "build_filter",
    "matches",
    "validate_filters",
]
