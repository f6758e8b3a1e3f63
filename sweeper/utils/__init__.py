"""Utility modules for AWS client management, configuration and logging."""

from sweeper.utils.aws_client import AWSClientManager, RetryStrategy
from sweeper.utils.config import SweeperConfig, configure_logging, load_filter_file
from sweeper.utils.logging import ActionType, LogEntry, LogLevel, SweeperLogger

__all__ = [
    "AWSClientManager",
    "RetryStrategy",
    "SweeperConfig",
    "configure_logging",
    "load_filter_file",
    "ActionType",
    "LogEntry",
    "LogLevel",
    "SweeperLogger",
]
