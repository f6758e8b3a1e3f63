"""Outcome reporters: where a run's outcomes go as they are emitted."""

import logging
from typing import Protocol, runtime_checkable

from sweeper.models import Outcome, RunResult
from sweeper.utils.logging import SweeperLogger

logger = logging.getLogger(__name__)


@runtime_checkable
class OutcomeReporter(Protocol):
    """Receives outcomes while a run is in progress and the result at the end.

    ``report`` may be called from worker threads; the engine serializes calls.
    """

    def report(self, outcome: Outcome) -> None: ...

    def finish(self, result: RunResult) -> None: ...


class LogReporter:
    """Logs every outcome through the structured sweeper logger."""

    def __init__(self, sweeper_logger: SweeperLogger | None = None):
        self.sweeper_logger = sweeper_logger or SweeperLogger()

    def report(self, outcome: Outcome) -> None:
        self.sweeper_logger.log_outcome(outcome)

    def finish(self, result: RunResult) -> None:
        failures = result.failures()
        if failures:
            logger.warning(f"{len(failures)} resource(s) need attention:")
            for outcome in failures:
                logger.warning(
                    f"  - {outcome.resource_type} {outcome.resource_id}: "
                    f"{outcome.status.value} ({outcome.detail or 'no detail'})"
                )


class CompositeReporter:
    """Fans outcomes out to several reporters in order."""

    def __init__(self, *reporters: OutcomeReporter):
        self.reporters = list(reporters)

    def report(self, outcome: Outcome) -> None:
        for reporter in self.reporters:
            reporter.report(outcome)

    def finish(self, result: RunResult) -> None:
        for reporter in self.reporters:
            reporter.finish(result)
