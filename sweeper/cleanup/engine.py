"""Sweep orchestration engine with dependency-ordered deletion waves.

Key features:
- Filters are validated and the deletion plan built before any AWS call
- Types are enumerated wave by wave, in plan order
- Enumeration failures are recorded per type and never abort the run
- Dry-run only reports matches; force-delete drives a DeletionTask per match
- All tasks of a wave finish before the next wave starts
- Cancellation stops new work and returns the outcomes gathered so far
"""

import logging
import threading
import time
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Optional

from sweeper.cleanup.batch_processor import BatchProcessor
from sweeper.cleanup.deletion import DeletionTask
from sweeper.cleanup.planner import plan as plan_waves
from sweeper.exceptions import EnumerationError
from sweeper.filters import IdentityFilter, build_filter, validate_filters
from sweeper.models import (
    DeletionPlan,
    FilterSpec,
    Outcome,
    OutcomeStatus,
    ResourceDescriptor,
    RunMode,
    RunResult,
)
from sweeper.notifications.reporter import LogReporter, OutcomeReporter
from sweeper.registry import ResourceTypeRegistry
from sweeper.utils.aws_client import RetryStrategy
from sweeper.utils.logging import SweeperLogger
from sweeper.utils.security import LogSanitizer

logger = logging.getLogger(__name__)


class _OutcomeCollector:
    """Appends outcomes to a run result and forwards them to the reporter."""

    def __init__(self, result: RunResult, reporter: OutcomeReporter):
        self.result = result
        self.reporter = reporter
        self._lock = threading.Lock()
        self._emitted: set[tuple[str, str]] = set()

    def emit(self, outcome: Outcome) -> None:
        with self._lock:
            self.result.outcomes.append(outcome)
            self._emitted.add((outcome.resource_type, outcome.resource_id))
            try:
                self.reporter.report(outcome)
            except Exception as e:
                logger.error(
                    f"Reporter failed on {outcome.resource_type} {outcome.resource_id}: "
                    f"{LogSanitizer.sanitize(str(e))}"
                )

    def has_outcome(self, resource_type: str, resource_id: str) -> bool:
        with self._lock:
            return (resource_type, resource_id) in self._emitted


class SweepEngine:
    """Runs one sweep: plan, enumerate, filter, then report or delete.

    Usage::

        engine = SweepEngine(registry, concurrency=4)
        result = engine.run(filters, mode=RunMode.FORCE_DELETE)
    """

    def __init__(
        self,
        registry: ResourceTypeRegistry,
        retry_strategy: Optional[RetryStrategy] = None,
        concurrency: int = 1,
        poll_interval: float = 5.0,
        poll_timeout: float = 300.0,
        report_skipped: bool = False,
        reporter: Optional[OutcomeReporter] = None,
        sweeper_logger: Optional[SweeperLogger] = None,
        clock: Callable[[], float] = time.monotonic,
        now: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize sweep engine.

        Args:
            registry: Registered resource type adapters and their dependencies
            retry_strategy: Retry budget and backoff for enumeration and deletes
            concurrency: Maximum deletions in flight within a wave
            poll_interval: Seconds between terminal-state checks
            poll_timeout: Seconds to wait for a terminal state after a delete call
            report_skipped: Emit SKIPPED outcomes for enumerated non-matches
            reporter: Receives each outcome as it is emitted; logs by default
            sweeper_logger: Structured logger for scan and filter events
            clock: Monotonic clock used for poll deadlines
            now: Wall clock used for age filters
        """
        self.registry = registry
        self.retry_strategy = retry_strategy or RetryStrategy()
        self.batch_processor = BatchProcessor(concurrency=concurrency)
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self.report_skipped = report_skipped
        self.sweeper_logger = sweeper_logger or SweeperLogger()
        self.reporter = reporter or LogReporter(self.sweeper_logger)
        self.clock = clock
        self.now = now

    def plan(self, filters: Mapping[str, FilterSpec]) -> DeletionPlan:
        """Validate filters and order their types into deletion waves.

        Raises:
            ConfigurationError: unknown type, conflicting criteria or cyclic order
        """
        validate_filters(filters, self.registry)
        return plan_waves(filters.keys(), self.registry.dependencies(), self.registry.all())

    def run(
        self,
        filters: Mapping[str, FilterSpec],
        mode: RunMode = RunMode.DRY_RUN,
        cancel_event: Optional[threading.Event] = None,
    ) -> RunResult:
        """
        Execute a sweep over the configured resource types.

        Args:
            filters: Filter spec per resource type id
            mode: DRY_RUN reports matches only; FORCE_DELETE deletes them
            cancel_event: Set by the caller to stop the run early

        Returns:
            RunResult with every outcome emitted, in emission order

        Raises:
            ConfigurationError: before any enumeration, if the filters are invalid
        """
        filters = dict(filters)
        deletion_plan = self.plan(filters)
        cancel_event = cancel_event or threading.Event()

        self.sweeper_logger.dry_run = mode is RunMode.DRY_RUN
        self.sweeper_logger.log_execution_start(mode, deletion_plan)

        result = RunResult(mode=mode)
        collector = _OutcomeCollector(result, self.reporter)
        total = len(deletion_plan.waves)

        for number, wave in enumerate(deletion_plan.waves, start=1):
            if cancel_event.is_set():
                break
            logger.info(f"Wave {number}/{total}: {', '.join(wave)}")

            tasks: list[DeletionTask] = []
            for type_id in wave:
                if cancel_event.is_set():
                    break
                matched = self._select(type_id, filters[type_id], result, collector)
                if mode is RunMode.DRY_RUN:
                    for descriptor in matched:
                        collector.emit(
                            Outcome(type_id, descriptor.resource_id, OutcomeStatus.DRY_RUN_MATCH)
                        )
                else:
                    tasks.extend(self._task(descriptor, cancel_event) for descriptor in matched)

            if tasks:
                self._delete_wave(tasks, collector, cancel_event)

        result.cancelled = cancel_event.is_set()
        self.sweeper_logger.log_execution_complete(result)
        self.reporter.finish(result)
        return result

    def _select(
        self,
        type_id: str,
        spec: FilterSpec,
        result: RunResult,
        collector: _OutcomeCollector,
    ) -> list[ResourceDescriptor]:
        """Enumerate one type and return the descriptors its filter matches."""
        adapter = self.registry.get(type_id)
        resource_filter = build_filter(spec, now=self.now)

        try:
            descriptors = self.retry_strategy.execute_with_retry(adapter.enumerate)
        except Exception as e:
            error = EnumerationError(type_id, LogSanitizer.sanitize(str(e)))
            error.__cause__ = e
            self.sweeper_logger.log_error(type_id, "*", error)
            result.enumeration_errors[type_id] = str(error)
            return []

        matched: list[ResourceDescriptor] = []
        seen: set[str] = set()
        for descriptor in descriptors:
            if descriptor.resource_id in seen:
                continue
            seen.add(descriptor.resource_id)

            match = resource_filter.matches(descriptor)
            self.sweeper_logger.log_resource_filtered(
                type_id,
                descriptor.resource_id,
                resource_filter.name,
                match.matched,
                match.reason.value,
            )
            if match.matched:
                matched.append(descriptor)
            elif self.report_skipped:
                collector.emit(
                    Outcome(
                        type_id,
                        descriptor.resource_id,
                        OutcomeStatus.SKIPPED,
                        f"did not match {resource_filter.name} filter",
                    )
                )

        if isinstance(resource_filter, IdentityFilter):
            unmatched = resource_filter.unmatched(seen)
            if unmatched:
                result.unmatched_ids[type_id] = unmatched
                self.sweeper_logger.log_unmatched_ids(type_id, unmatched)

        self.sweeper_logger.log_scan_complete(type_id, len(seen), len(matched))
        return matched

    def _task(self, descriptor: ResourceDescriptor, cancel_event: threading.Event) -> DeletionTask:
        return DeletionTask(
            adapter=self.registry.get(descriptor.resource_type),
            descriptor=descriptor,
            retry_strategy=self.retry_strategy,
            poll_interval=self.poll_interval,
            poll_timeout=self.poll_timeout,
            cancel_event=cancel_event,
            clock=self.clock,
        )

    def _delete_wave(
        self,
        tasks: list[DeletionTask],
        collector: _OutcomeCollector,
        cancel_event: threading.Event,
    ) -> None:
        """Run every task of a wave and wait for all of them."""

        def worker(task: DeletionTask) -> Optional[Outcome]:
            outcome = task.run()
            if outcome is not None:
                collector.emit(outcome)
            return outcome

        by_key = {_task_key(task): task for task in tasks}
        batch = self.batch_processor.process(
            tasks,
            worker,
            key=_task_key,
            label="deletion",
            cancel_event=cancel_event,
        )

        # A worker only raises on bugs outside the task's own error handling
        for key, message in batch.errors.items():
            task = by_key[key]
            if collector.has_outcome(task.resource_type, task.resource_id):
                continue
            collector.emit(
                Outcome(
                    task.resource_type,
                    task.resource_id,
                    OutcomeStatus.DELETE_FAILED,
                    LogSanitizer.sanitize(message),
                )
            )


def _task_key(task: DeletionTask) -> str:
    return f"{task.resource_type}/{task.resource_id}"
