"""Structured logging for sweeper runs.

Every scan, filter decision and outcome goes through ``SweeperLogger`` so
that log lines share one format and are sanitized before output:
- INFO: scan totals, wave plan, outcomes, run summary
- DEBUG: per-resource filter decisions, skipped resources
- WARNING/ERROR: enumeration failures, failed or timed-out deletions
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from sweeper.models import DeletionPlan, Outcome, OutcomeStatus, RunMode, RunResult
from sweeper.utils.security import LogSanitizer

logger = logging.getLogger(__name__)

BANNER_WIDTH = 60


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def numeric(self) -> int:
        return logging.getLevelName(self.value)


class ActionType(Enum):
    """What a log entry is about."""

    SCAN = "SCAN"
    FILTER = "FILTER"
    DRY_RUN = "DRY_RUN"
    DELETE = "DELETE"
    SKIP = "SKIP"
    TIMEOUT = "TIMEOUT"
    ERROR = "ERROR"


# Outcome status -> (level, action, message)
_OUTCOME_ACTIONS = {
    OutcomeStatus.DRY_RUN_MATCH: (LogLevel.INFO, ActionType.DRY_RUN, "Would delete"),
    OutcomeStatus.DELETED: (LogLevel.INFO, ActionType.DELETE, "Deleted"),
    OutcomeStatus.SKIPPED: (LogLevel.DEBUG, ActionType.SKIP, "Skipped"),
    OutcomeStatus.DELETE_FAILED: (LogLevel.ERROR, ActionType.ERROR, "Delete failed"),
    OutcomeStatus.TIMED_OUT: (
        LogLevel.WARNING,
        ActionType.TIMEOUT,
        "Timed out waiting for deletion, check manually",
    ),
}


@dataclass
class LogEntry:
    """One sanitized, structured log record."""

    timestamp: datetime
    level: LogLevel
    action: ActionType
    resource_type: str
    resource_id: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    error_info: Optional[Dict[str, Any]] = None

    def render(self, dry_run: bool) -> str:
        """Single-line form written to the standard logger."""
        line = f"[{self.action.value}] {self.resource_type} {self.resource_id}: {self.message}"
        if dry_run:
            line = f"[DRY RUN] {line}"
        if self.details:
            line += " (" + ", ".join(f"{k}={v}" for k, v in self.details.items()) + ")"
        if self.error_info:
            line += f" - Error: {self.error_info}"
        return line


def _aws_error_code(error: BaseException) -> Optional[str]:
    """AWS error code of ``error`` or the ClientError it was raised from."""
    for candidate in (error, error.__cause__):
        response = getattr(candidate, "response", None)
        if isinstance(response, dict):
            return response.get("Error", {}).get("Code", "Unknown")
    return None


class SweeperLogger:
    """Sanitized, structured logging for one sweeper run.

    Entries are also kept in memory so callers can inspect what was logged.
    ``log_outcome`` is called from worker threads; list appends are atomic.
    """

    def __init__(self, region: str = "", dry_run: bool = True):
        """
        Initialize sweeper logger.

        Args:
            region: AWS region for the run banner
            dry_run: Prefix every line with ``[DRY RUN]``
        """
        self.region = region
        self.dry_run = dry_run
        self._log_entries: List[LogEntry] = []

    def _emit(
        self,
        level: LogLevel,
        action: ActionType,
        resource_type: str,
        resource_id: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_info: Optional[Dict[str, Any]] = None,
    ) -> LogEntry:
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc),
            level=level,
            action=action,
            resource_type=resource_type,
            resource_id=LogSanitizer.sanitize(resource_id),
            message=LogSanitizer.sanitize(message),
            details=LogSanitizer.sanitize_dict(details) if details else {},
            error_info=LogSanitizer.sanitize_dict(error_info) if error_info else None,
        )
        self._log_entries.append(entry)
        logger.log(level.numeric, entry.render(self.dry_run))
        return entry

    def log_scan_complete(self, resource_type: str, total_found: int, matching_filter: int) -> None:
        self._emit(
            LogLevel.INFO,
            ActionType.SCAN,
            resource_type,
            "*",
            f"Scan complete: {total_found} found, {matching_filter} match filters",
            details={"total_found": total_found, "matching_filter": matching_filter},
        )

    def log_resource_filtered(
        self,
        resource_type: str,
        resource_id: str,
        filter_name: str,
        matched: bool,
        reason: Optional[str] = None,
    ) -> None:
        verdict = "matched" if matched else "excluded"
        self._emit(
            LogLevel.DEBUG,
            ActionType.FILTER,
            resource_type,
            resource_id,
            f"Filter '{filter_name}': {verdict}",
            details={"reason": reason} if reason else None,
        )

    def log_unmatched_ids(self, resource_type: str, resource_ids: List[str]) -> None:
        """Configured ids that enumeration never returned."""
        self._emit(
            LogLevel.INFO,
            ActionType.FILTER,
            resource_type,
            "*",
            f"{len(resource_ids)} configured id(s) not found",
            details={"ids": resource_ids},
        )

    def log_error(
        self,
        resource_type: str,
        resource_id: str,
        error: Exception,
        action: Optional[ActionType] = None,
    ) -> None:
        error_info: Dict[str, Any] = {
            "error_type": type(error).__name__,
            "error_message": str(error),
        }
        code = _aws_error_code(error)
        if code is not None:
            error_info["aws_error_code"] = code

        self._emit(
            LogLevel.ERROR,
            action or ActionType.ERROR,
            resource_type,
            resource_id,
            f"Error occurred: {type(error).__name__}",
            error_info=error_info,
        )

    def log_outcome(self, outcome: Outcome) -> None:
        level, action, message = _OUTCOME_ACTIONS[outcome.status]
        self._emit(
            level,
            action,
            outcome.resource_type,
            outcome.resource_id,
            message,
            details={"detail": outcome.detail} if outcome.detail else None,
        )

    def log_execution_start(self, mode: RunMode, plan: DeletionPlan) -> None:
        label = "DRY RUN" if mode is RunMode.DRY_RUN else "FORCE DELETE"
        _banner(f"RESOURCE SWEEPER - EXECUTION START ({label})")
        logger.info(f"Region: {self.region}")
        logger.info(f"Timestamp: {datetime.now(timezone.utc).isoformat()}")
        for number, wave in enumerate(plan.waves, start=1):
            logger.info(f"Wave {number}: {', '.join(wave)}")
        logger.info("-" * 40)

    def log_execution_complete(self, result: RunResult) -> None:
        label = "DRY RUN" if result.dry_run else "FORCE DELETE"
        logger.info("-" * 40)
        logger.info(f"EXECUTION SUMMARY ({label})")
        for status, count in result.summary().items():
            if count:
                logger.info(f"{status}: {count}")
        if result.enumeration_errors:
            logger.info(f"Types not enumerated: {', '.join(sorted(result.enumeration_errors))}")
        if result.cancelled:
            logger.warning("Run was cancelled before completion")
        _banner("RESOURCE SWEEPER - EXECUTION COMPLETE")

    def get_log_entries(self) -> List[LogEntry]:
        return self._log_entries.copy()


def _banner(title: str) -> None:
    logger.info("=" * BANNER_WIDTH)
    logger.info(title)
    logger.info("=" * BANNER_WIDTH)
