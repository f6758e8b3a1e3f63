"""Data models for the AWS resource sweeper."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from sweeper.exceptions import ConfigurationError


class RunMode(Enum):
    """How a run treats matched resources."""

    DRY_RUN = "dry_run"
    FORCE_DELETE = "force_delete"


class MatchReason(Enum):
    """Why a descriptor matched (or did not)."""

    TAG_MATCH = "tag_match"
    ID_MATCH = "id_match"
    AGE_MATCH = "age_match"
    NO_MATCH = "no_match"


class OutcomeStatus(Enum):
    """Final status of one resource in a run."""

    DRY_RUN_MATCH = "dry_run_match"
    DELETED = "deleted"
    SKIPPED = "skipped"
    DELETE_FAILED = "delete_failed"
    TIMED_OUT = "timed_out"


FAILURE_STATUSES = frozenset({OutcomeStatus.DELETE_FAILED, OutcomeStatus.TIMED_OUT})


@dataclass(frozen=True)
class ResourceDescriptor:
    """Snapshot of one live resource as returned by an adapter."""

    resource_type: str
    resource_id: str
    tags: dict[str, str] = field(default_factory=dict)
    creation_time: datetime | None = None
    state: str = ""


@dataclass(frozen=True)
class FilterSpec:
    """Criteria for one resource type.

    At most one of ``tags``, ``ids`` and ``max_age`` may be set. A spec
    with none of them has no criteria and matches nothing.
    """

    tags: dict[str, str] | None = None
    ids: frozenset[str] | None = None
    max_age: timedelta | None = None

    def kinds(self) -> list[str]:
        """Names of the criteria configured on this spec."""
        configured = []
        if self.tags is not None:
            configured.append("tags")
        if self.ids is not None:
            configured.append("ids")
        if self.max_age is not None:
            configured.append("max_age")
        return configured

    def validate(self, type_id: str = "") -> None:
        """Raise ConfigurationError if more than one kind is configured."""
        kinds = self.kinds()
        if len(kinds) > 1:
            target = f" for {type_id}" if type_id else ""
            raise ConfigurationError(
                f"Conflicting filter criteria{target}: {', '.join(kinds)}"
            )


@dataclass(frozen=True)
class MatchResult:
    """Result of evaluating a FilterSpec against a descriptor."""

    descriptor: ResourceDescriptor
    matched: bool
    reason: MatchReason


@dataclass(frozen=True)
class Outcome:
    """What happened to one resource. Immutable once emitted."""

    resource_type: str
    resource_id: str
    status: OutcomeStatus
    detail: str | None = None


@dataclass
class DeletionPlan:
    """Resource types grouped into waves, deleted first to last."""

    waves: list[list[str]] = field(default_factory=list)

    def order(self) -> list[str]:
        """Flattened deletion order."""
        return [type_id for wave in self.waves for type_id in wave]

    def is_empty(self) -> bool:
        return not self.waves


@dataclass
class RunResult:
    """Everything a run produced, in emission order."""

    mode: RunMode = RunMode.DRY_RUN
    outcomes: list[Outcome] = field(default_factory=list)
    enumeration_errors: dict[str, str] = field(default_factory=dict)
    unmatched_ids: dict[str, list[str]] = field(default_factory=dict)
    cancelled: bool = False

    @property
    def dry_run(self) -> bool:
        return self.mode is RunMode.DRY_RUN

    def count(self, status: OutcomeStatus) -> int:
        """Number of outcomes with the given status."""
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    def has_failures(self) -> bool:
        """True if any resource failed to delete or timed out."""
        return any(outcome.status in FAILURE_STATUSES for outcome in self.outcomes)

    def failures(self) -> list[Outcome]:
        return [outcome for outcome in self.outcomes if outcome.status in FAILURE_STATUSES]

    def summary(self) -> dict[str, int]:
        """Outcome counts keyed by status value."""
        return {status.value: self.count(status) for status in OutcomeStatus}
