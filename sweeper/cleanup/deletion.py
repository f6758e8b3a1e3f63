"""Per-resource deletion state machine.

Each matched resource in force-delete mode is driven through::

    REQUESTED --(transient error)--> RETRY_WAIT --> REQUESTED
    REQUESTED --(accepted)--> POLLING --> DELETED | TIMED_OUT
    REQUESTED --(permanent error / budget exhausted)--> DELETE_FAILED

Cancellation and the poll deadline are ordinary transitions. Waits go
through ``cancel_event.wait`` so an operator interrupt wakes them at once.
"""

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum

from sweeper.adapters.base import ResourceTypeAdapter
from sweeper.exceptions import (
    PermanentDeleteError,
    PollTimeoutError,
    ResourceNotFoundError,
    TransientDeleteError,
)
from sweeper.models import Outcome, OutcomeStatus, ResourceDescriptor
from sweeper.utils.aws_client import RetryStrategy
from sweeper.utils.security import LogSanitizer

logger = logging.getLogger(__name__)


class TaskState(Enum):
    REQUESTED = "requested"
    RETRY_WAIT = "retry_wait"
    POLLING = "polling"
    DELETED = "deleted"
    DELETE_FAILED = "delete_failed"
    TIMED_OUT = "timed_out"


FINAL_STATES = {TaskState.DELETED, TaskState.DELETE_FAILED, TaskState.TIMED_OUT}

_STATUS_BY_STATE = {
    TaskState.DELETED: OutcomeStatus.DELETED,
    TaskState.DELETE_FAILED: OutcomeStatus.DELETE_FAILED,
    TaskState.TIMED_OUT: OutcomeStatus.TIMED_OUT,
}


class DeletionTask:
    """Deletes one resource and waits until it is confirmed gone."""

    def __init__(
        self,
        adapter: ResourceTypeAdapter,
        descriptor: ResourceDescriptor,
        retry_strategy: RetryStrategy,
        poll_interval: float = 5.0,
        poll_timeout: float = 300.0,
        cancel_event: threading.Event | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize deletion task.

        Args:
            adapter: Adapter for the resource's type
            descriptor: Snapshot taken at enumeration time
            retry_strategy: Retry budget and backoff for transient delete errors
            poll_interval: Seconds between terminal-state checks
            poll_timeout: Seconds to wait for a terminal state after the delete call
            cancel_event: Set by the caller to stop the task early
            clock: Monotonic clock, for tests
        """
        self.adapter = adapter
        self.descriptor = descriptor
        self.retry_strategy = retry_strategy
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self.cancel_event = cancel_event or threading.Event()
        self.clock = clock

        self.state = TaskState.REQUESTED
        self.attempts = 0
        self.polls = 0
        self.detail: str | None = None
        self._deadline: float | None = None

    @property
    def resource_id(self) -> str:
        return self.descriptor.resource_id

    @property
    def resource_type(self) -> str:
        return self.descriptor.resource_type

    def is_final(self) -> bool:
        return self.state in FINAL_STATES

    def run(self) -> Outcome | None:
        """Drive the task until it reaches a final state.

        Returns:
            The final Outcome, or None if cancelled before any delete call
        """
        if self.cancel_event.is_set():
            return None

        if self.adapter.is_terminal(self.descriptor):
            self._finish(TaskState.DELETED, f"already {self.descriptor.state}")
            return self.outcome()

        while not self.is_final():
            if self.cancel_event.is_set():
                if self.attempts == 0:
                    return None
                self._cancel()
                break

            delay = self.step()
            if delay > 0 and not self.is_final():
                self.cancel_event.wait(delay)

        return self.outcome()

    def step(self) -> float:
        """Perform one transition and return how long to wait before the next."""
        if self.state is TaskState.REQUESTED:
            return self._request()
        if self.state is TaskState.RETRY_WAIT:
            self.state = TaskState.REQUESTED
            return 0.0
        if self.state is TaskState.POLLING:
            return self._poll()
        return 0.0

    def outcome(self) -> Outcome:
        if not self.is_final():
            raise RuntimeError(f"Task for {self.resource_id} is not finished ({self.state.value})")
        return Outcome(
            resource_type=self.resource_type,
            resource_id=self.resource_id,
            status=_STATUS_BY_STATE[self.state],
            detail=self.detail,
        )

    def _request(self) -> float:
        self.attempts += 1
        try:
            self.adapter.delete(self.resource_id)
        except ResourceNotFoundError:
            logger.info(f"{self.resource_type} {self.resource_id} already deleted")
            self._finish(TaskState.DELETED, "already deleted")
            return 0.0
        except TransientDeleteError as e:
            if self.attempts > self.retry_strategy.max_retries:
                self._finish(
                    TaskState.DELETE_FAILED,
                    f"gave up after {self.attempts} attempts: {e}",
                )
                return 0.0
            delay = self.retry_strategy.calculate_delay(self.attempts - 1)
            logger.warning(
                f"Transient error deleting {self.resource_type} {self.resource_id} "
                f"({e.code}), attempt {self.attempts}/{self.retry_strategy.max_retries + 1}, "
                f"retrying in {delay:.2f}s"
            )
            self.state = TaskState.RETRY_WAIT
            return delay
        except PermanentDeleteError as e:
            self._finish(TaskState.DELETE_FAILED, str(e))
            return 0.0
        except Exception as e:
            self._finish(TaskState.DELETE_FAILED, f"{type(e).__name__}: {e}")
            return 0.0

        self.state = TaskState.POLLING
        self._deadline = self.clock() + self.poll_timeout
        return 0.0

    def _poll(self) -> float:
        self.polls += 1
        state = "unknown"
        try:
            current = self.adapter.describe(self.resource_id)
        except Exception as e:
            logger.warning(
                f"Error polling {self.resource_type} {self.resource_id}: "
                f"{LogSanitizer.sanitize(str(e))}"
            )
        else:
            if current is None or self.adapter.is_terminal(current):
                self._finish(TaskState.DELETED)
                return 0.0
            state = current.state or state

        if self._deadline is not None and self.clock() >= self._deadline:
            timeout = PollTimeoutError(
                f"not terminal after {self.poll_timeout:g}s (last state: {state})"
            )
            self._finish(TaskState.TIMED_OUT, str(timeout))
            return 0.0

        return self.poll_interval

    def _cancel(self) -> None:
        if self.state is TaskState.POLLING:
            self._finish(TaskState.TIMED_OUT, "cancelled before terminal state was confirmed")
        else:
            self._finish(TaskState.DELETE_FAILED, "cancelled")

    def _finish(self, state: TaskState, detail: str | None = None) -> None:
        self.state = state
        self.detail = LogSanitizer.sanitize(detail) if detail else None
