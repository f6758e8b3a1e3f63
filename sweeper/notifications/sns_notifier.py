"""SNS notification of sweep results.

The notifier is an outcome reporter that ignores individual outcomes and
publishes one summary message when the run finishes. Dry runs list what
would be deleted; force-delete runs list what was deleted and what failed.
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List

from sweeper.models import Outcome, OutcomeStatus, RunResult
from sweeper.utils.security import LogSanitizer

logger = logging.getLogger(__name__)

# SNS rejects subjects longer than 100 characters
MAX_SUBJECT_LENGTH = 100


class SNSNotifier:
    """Publishes a run summary to an SNS topic."""

    def __init__(
        self,
        sns_client: Any,
        topic_arn: str,
        region: str = "us-east-1",
        account_id: str = "",
    ):
        """
        Initialize SNS notifier.

        Args:
            sns_client: Boto3 SNS client
            topic_arn: ARN of the SNS topic
            region: AWS region, for the report header
            account_id: AWS account ID, for the report header
        """
        self.sns = sns_client
        self.topic_arn = topic_arn
        self.region = region
        self.account_id = account_id

    def report(self, outcome: Outcome) -> None:
        """Outcomes are only summarized at the end of the run."""

    def finish(self, result: RunResult) -> None:
        self.send_summary(result)

    def send_summary(self, result: RunResult) -> bool:
        """
        Send a notification summarizing a run.

        Args:
            result: The finished run

        Returns:
            True if notification sent successfully
        """
        if not self.topic_arn:
            logger.warning("No SNS topic ARN configured, skipping notification")
            return False

        try:
            self.sns.publish(
                TopicArn=self.topic_arn,
                Subject=self._build_subject(result),
                Message=self._build_message(result),
            )
            logger.info(f"Sent sweep summary to {self.topic_arn}")
            return True
        except Exception as e:
            logger.error(f"Error sending SNS notification: {LogSanitizer.sanitize(str(e))}")
            return False

    def _build_subject(self, result: RunResult) -> str:
        """Build notification subject line."""
        if result.dry_run:
            matched = result.count(OutcomeStatus.DRY_RUN_MATCH)
            subject = f"[DRY RUN] Resource Sweeper - {matched} resources would be deleted"
        else:
            deleted = result.count(OutcomeStatus.DELETED)
            failures = len(result.failures())
            subject = f"Resource Sweeper - Deleted {deleted} resources"
            if failures:
                subject += f" ({failures} need attention)"
        if result.cancelled:
            subject += " [CANCELLED]"
        return subject[:MAX_SUBJECT_LENGTH]

    def _build_message(self, result: RunResult) -> str:
        """Build detailed notification message."""
        lines = [
            "=" * 60,
            "RESOURCE SWEEPER - RUN REPORT",
            "=" * 60,
            "",
            f"Timestamp: {datetime.now(timezone.utc).isoformat()}",
            f"Account: {self.account_id or 'N/A'}",
            f"Region: {self.region}",
            f"Mode: {'DRY RUN' if result.dry_run else 'FORCE DELETE'}",
        ]
        if result.cancelled:
            lines.append("Run was cancelled before completion")
        lines.append("")

        lines.extend(["SUMMARY", "-" * 40])
        for status, count in result.summary().items():
            if count:
                lines.append(f"{status}: {count}")
        lines.append("")

        if result.dry_run:
            self._add_outcome_section(
                lines, "RESOURCES THAT WOULD BE DELETED", result, OutcomeStatus.DRY_RUN_MATCH
            )
        else:
            self._add_outcome_section(lines, "DELETED RESOURCES", result, OutcomeStatus.DELETED)
            self._add_outcome_section(
                lines, "FAILED DELETIONS", result, OutcomeStatus.DELETE_FAILED
            )
            self._add_outcome_section(
                lines, "TIMED OUT (CHECK MANUALLY)", result, OutcomeStatus.TIMED_OUT
            )

        if result.enumeration_errors:
            lines.extend(["TYPES NOT ENUMERATED", "-" * 40])
            for type_id, error in sorted(result.enumeration_errors.items()):
                lines.append(f"  - {type_id}: {LogSanitizer.sanitize(error)}")
            lines.append("")

        if result.unmatched_ids:
            lines.extend(["CONFIGURED IDS NOT FOUND", "-" * 40])
            for type_id, ids in sorted(result.unmatched_ids.items()):
                lines.append(f"  - {type_id}: {', '.join(ids)}")
            lines.append("")

        return "\n".join(lines)

    def _add_outcome_section(
        self,
        lines: List[str],
        title: str,
        result: RunResult,
        status: OutcomeStatus,
    ) -> None:
        """Add a section listing outcomes of one status, grouped by type."""
        by_type: Dict[str, List[Outcome]] = defaultdict(list)
        for outcome in result.outcomes:
            if outcome.status is status:
                by_type[outcome.resource_type].append(outcome)

        if not by_type:
            return

        lines.extend([title, "-" * 40])
        for type_id, outcomes in by_type.items():
            lines.append(f"  {type_id}:")
            for outcome in outcomes:
                line = f"    - {outcome.resource_id}"
                if outcome.detail:
                    line += f": {LogSanitizer.sanitize(outcome.detail)}"
                lines.append(line)
        lines.append("")
