"""Command line entry point for the resource sweeper.

Loads runtime settings and a filter file, sweeps the configured resource
types in dependency order, and maps the run result to an exit code:

- 0: every matched resource was reported (dry run) or deleted
- 1: at least one resource failed to delete or timed out
- 2: invalid configuration or filter file, nothing was touched
- 130: cancelled by the operator
"""

import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from sweeper import __version__
from sweeper.cleanup.engine import SweepEngine
from sweeper.exceptions import ConfigurationError
from sweeper.models import RunMode, RunResult
from sweeper.notifications import CompositeReporter, LogReporter, SNSNotifier
from sweeper.notifications.reporter import OutcomeReporter
from sweeper.registry import build_default_registry
from sweeper.utils.aws_client import AWSClientManager, RetryStrategy
from sweeper.utils.config import SweeperConfig, configure_logging, load_filter_file
from sweeper.utils.logging import SweeperLogger
from sweeper.utils.security import LogSanitizer

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIG_ERROR = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resource-sweeper",
        description="Find AWS resources matching a filter file and optionally delete them "
        "in dependency order. Without --force-delete nothing is deleted.",
    )
    parser.add_argument("filter_file", help="Path to YAML filter file")
    parser.add_argument(
        "--force-delete",
        action="store_true",
        help="Actually delete matched resources (default: dry-run)",
    )
    parser.add_argument("--region", help="AWS region to sweep (overrides AWS_REGION)")
    parser.add_argument("--profile", help="Named AWS profile to use")
    parser.add_argument(
        "--concurrency",
        type=int,
        help="Maximum deletions in flight per wave (overrides SWEEPER_CONCURRENCY)",
    )
    parser.add_argument(
        "--poll-timeout",
        type=float,
        help="Seconds to wait for each deletion to complete (overrides SWEEPER_POLL_TIMEOUT)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Debug logging, including resources that did not match",
    )
    parser.add_argument(
        "--report-skipped",
        action="store_true",
        help="Report enumerated resources that did not match their filter",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def apply_overrides(config: SweeperConfig, args: argparse.Namespace) -> SweeperConfig:
    """Apply command line flags on top of environment configuration."""
    if args.region:
        config.region = args.region
    if args.profile:
        config.profile = args.profile
    if args.concurrency is not None:
        config.concurrency = args.concurrency
    if args.poll_timeout is not None:
        config.poll_timeout = args.poll_timeout
    if args.verbose:
        config.log_level = "DEBUG"
        config.report_skipped = True
    if args.report_skipped:
        config.report_skipped = True
    if args.force_delete:
        config.mode = RunMode.FORCE_DELETE
    return config


def exit_code(result: RunResult) -> int:
    """Map a finished run to a process exit code."""
    if result.cancelled:
        return EXIT_CANCELLED
    if result.has_failures():
        return EXIT_FAILURES
    return EXIT_OK


def build_reporter(
    config: SweeperConfig,
    client_manager: AWSClientManager,
    sweeper_logger: SweeperLogger,
) -> OutcomeReporter:
    """Log every outcome, and publish a summary to SNS when a topic is set."""
    log_reporter = LogReporter(sweeper_logger)
    if not config.notification_topic_arn:
        return log_reporter

    try:
        account_id = client_manager.get_account_id()
    except (BotoCoreError, ClientError) as e:
        logger.warning(f"Could not determine account id: {LogSanitizer.sanitize(str(e))}")
        account_id = ""

    notifier = SNSNotifier(
        client_manager.sns,
        config.notification_topic_arn,
        region=config.region,
        account_id=account_id,
    )
    return CompositeReporter(log_reporter, notifier)


def _log_configuration_error(error: ConfigurationError) -> None:
    logger.error(f"Configuration error: {error.message}")
    for detail in error.errors:
        logger.error(f"  - {detail}")


def main(argv: Optional[List[str]] = None) -> int:
    """Run the sweeper and return the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        config = apply_overrides(SweeperConfig.from_environment(validate=False), args)
        configure_logging(config)
        config.raise_if_invalid()
        filters = load_filter_file(args.filter_file)
    except ConfigurationError as e:
        _log_configuration_error(e)
        return EXIT_CONFIG_ERROR

    cancel_event = threading.Event()

    def handle_interrupt(signum, frame):
        if cancel_event.is_set():
            raise KeyboardInterrupt
        logger.warning("Interrupt received, finishing in-flight work (press Ctrl+C again to abort)")
        cancel_event.set()

    previous_handler = signal.signal(signal.SIGINT, handle_interrupt)
    try:
        client_manager = AWSClientManager(
            region=config.region,
            profile=config.profile,
            role_arn=config.role_arn or None,
        )
        sweeper_logger = SweeperLogger(region=config.region, dry_run=config.is_dry_run())
        engine = SweepEngine(
            build_default_registry(client_manager),
            retry_strategy=RetryStrategy(
                max_retries=config.max_retries,
                base_delay=config.retry_base_delay,
                max_delay=config.retry_max_delay,
                cancel_event=cancel_event,
            ),
            concurrency=config.concurrency,
            poll_interval=config.poll_interval,
            poll_timeout=config.poll_timeout,
            report_skipped=config.report_skipped,
            reporter=build_reporter(config, client_manager, sweeper_logger),
            sweeper_logger=sweeper_logger,
        )

        if config.mode is RunMode.FORCE_DELETE:
            logger.warning("FORCE DELETE MODE - matched resources WILL be deleted")

        result = engine.run(filters, mode=config.mode, cancel_event=cancel_event)
    except ConfigurationError as e:
        _log_configuration_error(e)
        return EXIT_CONFIG_ERROR
    except (BotoCoreError, ClientError) as e:
        logger.error(f"AWS session setup failed: {LogSanitizer.sanitize(str(e))}")
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        logger.error("Aborted by operator")
        return EXIT_CANCELLED
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    return exit_code(result)


if __name__ == "__main__":
    sys.exit(main())
