"""Outcome reporting and notifications."""

from sweeper.notifications.reporter import CompositeReporter, LogReporter, OutcomeReporter
from sweeper.notifications.sns_notifier import SNSNotifier

__all__ = ["CompositeReporter", "LogReporter", "OutcomeReporter", "SNSNotifier"]
