"""Bounded worker pool for concurrent resource deletions.

Key features:
- At most ``concurrency`` deletions in flight at once
- Concurrent execution using ThreadPoolExecutor
- Returns only once every submitted item has finished (the wave barrier)
- Failures are logged and processing continues
- Items not yet started when cancellation is requested are skipped

Note: Uses ThreadPoolExecutor (not asyncio) because boto3 is synchronous.
asyncio.gather with blocking boto3 calls would execute sequentially.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class BatchResult(Generic[R]):
    """Result of batch processing operations.

    Attributes:
        results: Values returned by the worker, in completion order
        errors: Dict mapping item key to error message for workers that raised
        not_started: Keys of items skipped because of cancellation
    """

    results: list[R] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    not_started: list[str] = field(default_factory=list)


class BatchProcessor:
    """Run per-resource work with a fixed concurrency cap."""

    def __init__(self, concurrency: int = 1):
        """Initialize batch processor.

        Args:
            concurrency: Maximum number of items processed at once.
                Defaults to 1 (sequential processing).
        """
        self.concurrency = max(1, concurrency)  # Ensure minimum of 1
        logger.debug(f"BatchProcessor initialized with concurrency={self.concurrency}")

    def process(
        self,
        items: list[T],
        worker: Callable[[T], R | None],
        key: Callable[[T], str],
        label: str = "resource",
        cancel_event: threading.Event | None = None,
    ) -> BatchResult[R]:
        """Process every item and wait for all of them to finish.

        Args:
            items: Work items, e.g. deletion tasks
            worker: Function processing one item; a None return is dropped
            key: Function giving a stable identifier for an item
            label: Human-readable item type for logging
            cancel_event: When set, items not yet started are skipped

        Returns:
            BatchResult containing worker results and error details
        """
        cancel_event = cancel_event or threading.Event()
        result: BatchResult[R] = BatchResult()

        if not items:
            logger.debug(f"No {label}s to process")
            return result

        logger.info(
            f"Processing {len(items)} {label}(s) with concurrency {self.concurrency}"
        )

        if self.concurrency > 1 and len(items) > 1:
            self._process_concurrent(items, worker, key, label, cancel_event, result)
        else:
            self._process_sequential(items, worker, key, label, cancel_event, result)

        logger.info(
            f"Processing complete: {len(result.results)} {label}(s) finished, "
            f"{len(result.errors)} errors, {len(result.not_started)} not started"
        )

        return result

    def _process_concurrent(
        self,
        items: list[T],
        worker: Callable[[T], R | None],
        key: Callable[[T], str],
        label: str,
        cancel_event: threading.Event,
        result: BatchResult[R],
    ) -> None:
        """Process items on a pool of at most ``concurrency`` threads."""
        max_workers = min(self.concurrency, len(items))

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_key = {
                executor.submit(self._guarded, worker, item, cancel_event): key(item)
                for item in items
            }

            for future in as_completed(future_to_key):
                item_key = future_to_key[future]
                try:
                    started, value, error_msg = future.result()
                except Exception as e:
                    started, value, error_msg = True, None, str(e)
                self._record(result, item_key, label, started, value, error_msg)

    def _process_sequential(
        self,
        items: list[T],
        worker: Callable[[T], R | None],
        key: Callable[[T], str],
        label: str,
        cancel_event: threading.Event,
        result: BatchResult[R],
    ) -> None:
        """Process items one at a time in the calling thread."""
        for item in items:
            started, value, error_msg = self._guarded(worker, item, cancel_event)
            self._record(result, key(item), label, started, value, error_msg)

    def _record(
        self,
        result: BatchResult[R],
        item_key: str,
        label: str,
        started: bool,
        value: R | None,
        error_msg: str | None,
    ) -> None:
        if not started:
            result.not_started.append(item_key)
        elif error_msg is not None:
            result.errors[item_key] = error_msg
            # Log failure and continue
            logger.error(f"Exception processing {label} {item_key}: {error_msg}")
        elif value is not None:
            result.results.append(value)

    def _guarded(
        self,
        worker: Callable[[T], R | None],
        item: T,
        cancel_event: threading.Event,
    ) -> tuple[bool, R | None, str | None]:
        """Safely execute the worker, catching exceptions.

        Returns:
            Tuple of (started, value, error_message)
        """
        if cancel_event.is_set():
            return (False, None, None)
        try:
            return (True, worker(item), None)
        except Exception as e:
            return (True, None, str(e))
