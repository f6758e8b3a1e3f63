"""AWS Resource Sweeper - filter-driven, dependency-ordered resource cleanup."""

__version__ = "1.0.0"

from sweeper.models import (
    DeletionPlan,
    FilterSpec,
    MatchReason,
    MatchResult,
    Outcome,
    OutcomeStatus,
    ResourceDescriptor,
    RunMode,
    RunResult,
)

__all__ = [
    "DeletionPlan",
    "FilterSpec",
    "MatchReason",
    "MatchResult",
    "Outcome",
    "OutcomeStatus",
    "ResourceDescriptor",
    "RunMode",
    "RunResult",
]
