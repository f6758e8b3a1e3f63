"""Dependency planner: order resource types into deletion waves.

Edges come from a fixed "A must be deleted before B" graph. Only the
configured types are planned, but ordering constraints that pass through
unconfigured types are kept: with ``instance -> subnet -> vpc`` and only
instance and vpc configured, instances still go first.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence

from sweeper.exceptions import PlanningError
from sweeper.models import DeletionPlan

logger = logging.getLogger(__name__)


def _reachable(source: str, dependencies: Mapping[str, Iterable[str]]) -> set[str]:
    """All types that must be deleted after ``source``, directly or transitively."""
    seen: set[str] = set()
    stack = list(dependencies.get(source, ()))
    while stack:
        node = stack.pop()
        if node in seen:
            continue
        seen.add(node)
        stack.extend(dependencies.get(node, ()))
    return seen


def plan(
    configured_types: Iterable[str],
    dependencies: Mapping[str, Iterable[str]],
    declaration_order: Sequence[str] | None = None,
) -> DeletionPlan:
    """
    Build deletion waves for the configured types.

    Each wave holds the types whose predecessors all sit in earlier waves.
    Within a wave, types keep their declaration order, so the plan is
    deterministic.

    Args:
        configured_types: Types that have a filter in this run
        dependencies: "delete before" edges between type ids
        declaration_order: Registry order used to sort types inside a wave

    Returns:
        DeletionPlan with one list of type ids per wave

    Raises:
        PlanningError: if the graph restricted to the configured types has a cycle
    """
    configured = set(configured_types)
    rank = {type_id: i for i, type_id in enumerate(declaration_order or ())}

    def sort_key(type_id: str) -> tuple[int, str]:
        return (rank.get(type_id, len(rank)), type_id)

    successors: dict[str, set[str]] = {type_id: set() for type_id in configured}
    for source in configured:
        reachable = _reachable(source, dependencies)
        if source in reachable:
            raise PlanningError(f"Cyclic deletion dependency involving {source}")
        successors[source] = reachable & configured

    in_degree = {type_id: 0 for type_id in configured}
    for targets in successors.values():
        for target in targets:
            in_degree[target] += 1

    waves: list[list[str]] = []
    ready = sorted((t for t, degree in in_degree.items() if degree == 0), key=sort_key)
    placed = 0
    while ready:
        waves.append(ready)
        placed += len(ready)
        next_ready = []
        for type_id in ready:
            for target in successors[type_id]:
                in_degree[target] -= 1
                if in_degree[target] == 0:
                    next_ready.append(target)
        ready = sorted(next_ready, key=sort_key)

    if placed != len(configured):
        blocked = sorted(t for t, degree in in_degree.items() if degree > 0)
        raise PlanningError(f"Cyclic deletion dependency among: {', '.join(blocked)}")

    logger.debug(f"Deletion plan: {waves}")
    return DeletionPlan(waves=waves)
