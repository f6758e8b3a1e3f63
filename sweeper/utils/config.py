"""Configuration management for the resource sweeper.

Runtime settings come from environment variables and are then overridden
by command line flags. What to sweep comes from a YAML filter file.

Key configuration options:
- AWS_REGION / SWEEPER_ROLE_ARN: where and as whom the sweeper runs
- LOG_LEVEL: log verbosity, invalid values fall back to INFO
- SWEEPER_CONCURRENCY: deletions in flight per wave, invalid values fall back to 1
- SWEEPER_MAX_RETRIES / SWEEPER_RETRY_BASE_DELAY / SWEEPER_RETRY_MAX_DELAY: retry budget
- SWEEPER_POLL_INTERVAL / SWEEPER_POLL_TIMEOUT: terminal-state polling
- SWEEPER_REPORT_SKIPPED: emit SKIPPED outcomes for non-matching resources
- SNS_TOPIC_ARN: optional topic for run summaries

Dry-run is always the default; deleting requires ``--force-delete``.
"""

import logging
import os
import re
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from sweeper.exceptions import ConfigurationError
from sweeper.models import FilterSpec, RunMode
from sweeper.utils.security import InputValidator

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

TRUE_VALUES = ("true", "1", "yes")

FILTER_KEYS = {"tags", "ids", "max_age"}

DURATION_PATTERN = re.compile(r"^(\d+)\s*([smhdw]?)$")

DURATION_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}

# Module logger for configuration warnings
_config_logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Invalid {name}: '{value}' is not a valid number")


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Invalid {name}: '{value}' is not a valid integer")


@dataclass
class SweeperConfig:
    """Runtime settings for one sweeper run.

    Attributes:
        region: AWS region to sweep.
        profile: Optional named AWS profile.
        role_arn: Optional role to assume before sweeping.
        log_level: Log level for output.
        concurrency: Maximum deletions in flight within one wave.
        max_retries: Retries after the first attempt for transient errors.
        retry_base_delay: First backoff delay in seconds.
        retry_max_delay: Upper bound for a single backoff delay in seconds.
        poll_interval: Seconds between terminal-state checks.
        poll_timeout: Seconds to wait for a terminal state after a delete.
        report_skipped: Emit SKIPPED outcomes for enumerated non-matches.
        notification_topic_arn: SNS topic ARN for run summaries.
        mode: DRY_RUN unless explicitly switched to FORCE_DELETE.
    """

    region: str = "us-east-1"
    profile: Optional[str] = None
    role_arn: str = ""
    log_level: str = "INFO"
    concurrency: int = 1
    max_retries: int = 3
    retry_base_delay: float = 2.0
    retry_max_delay: float = 30.0
    poll_interval: float = 5.0
    poll_timeout: float = 300.0
    report_skipped: bool = False
    notification_topic_arn: str = ""
    mode: RunMode = RunMode.DRY_RUN

    @classmethod
    def from_environment(cls, validate: bool = True) -> "SweeperConfig":
        """Create configuration from environment variables.

        Args:
            validate: If True, validates the configuration and raises
                ConfigurationError if invalid.

        Returns:
            SweeperConfig instance populated from environment variables.

        Raises:
            ConfigurationError: If a numeric value cannot be parsed, or
                validation is enabled and the configuration is invalid.
        """
        config = cls()

        config.region = os.environ.get("AWS_REGION", "us-east-1")
        config.role_arn = os.environ.get("SWEEPER_ROLE_ARN", "")
        config.notification_topic_arn = os.environ.get("SNS_TOPIC_ARN", "")

        log_level_value = os.environ.get("LOG_LEVEL", "INFO").upper().strip()
        if log_level_value in VALID_LOG_LEVELS:
            config.log_level = log_level_value
        else:
            _config_logger.warning(
                f"Invalid LOG_LEVEL '{log_level_value}', defaulting to INFO"
            )
            config.log_level = "INFO"

        concurrency_value = os.environ.get("SWEEPER_CONCURRENCY", "1").strip()
        try:
            parsed_concurrency = int(concurrency_value)
            if parsed_concurrency < 1:
                _config_logger.warning(
                    f"Invalid SWEEPER_CONCURRENCY '{parsed_concurrency}' (must be positive), defaulting to 1"
                )
                config.concurrency = 1
            else:
                config.concurrency = parsed_concurrency
        except ValueError:
            _config_logger.warning(
                f"Invalid SWEEPER_CONCURRENCY '{concurrency_value}' (not a valid integer), defaulting to 1"
            )
            config.concurrency = 1

        config.max_retries = _env_int("SWEEPER_MAX_RETRIES", config.max_retries)
        config.retry_base_delay = _env_float("SWEEPER_RETRY_BASE_DELAY", config.retry_base_delay)
        config.retry_max_delay = _env_float("SWEEPER_RETRY_MAX_DELAY", config.retry_max_delay)
        config.poll_interval = _env_float("SWEEPER_POLL_INTERVAL", config.poll_interval)
        config.poll_timeout = _env_float("SWEEPER_POLL_TIMEOUT", config.poll_timeout)

        report_skipped_value = os.environ.get("SWEEPER_REPORT_SKIPPED", "false")
        config.report_skipped = report_skipped_value.lower().strip() in TRUE_VALUES

        if validate:
            config.raise_if_invalid()

        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors.

        Returns:
            List of error messages. Empty list if configuration is valid.
        """
        errors = []

        region_result = InputValidator.validate_region(self.region)
        if not region_result.is_valid:
            errors.extend(f"AWS_REGION: {e}" for e in region_result.errors)

        if self.role_arn:
            arn_result = InputValidator.validate_arn(self.role_arn)
            if not arn_result.is_valid:
                errors.extend(f"SWEEPER_ROLE_ARN: {e}" for e in arn_result.errors)

        if self.notification_topic_arn and not self.notification_topic_arn.startswith(
            "arn:aws:sns:"
        ):
            errors.append(f"Invalid SNS topic ARN: {self.notification_topic_arn}")

        if self.concurrency < 1:
            errors.append("Concurrency must be at least 1")

        if self.max_retries < 0:
            errors.append("SWEEPER_MAX_RETRIES must not be negative")

        if self.retry_base_delay < 0:
            errors.append("SWEEPER_RETRY_BASE_DELAY must not be negative")

        if self.retry_max_delay < self.retry_base_delay:
            errors.append("SWEEPER_RETRY_MAX_DELAY must not be less than SWEEPER_RETRY_BASE_DELAY")

        if self.poll_interval <= 0:
            errors.append("SWEEPER_POLL_INTERVAL must be positive")

        if self.poll_timeout <= 0:
            errors.append("SWEEPER_POLL_TIMEOUT must be positive")

        return errors

    def raise_if_invalid(self) -> None:
        """Raise ConfigurationError listing every validation error."""
        errors = self.validate()
        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {errors}", errors=errors
            )

    def is_dry_run(self) -> bool:
        return self.mode is RunMode.DRY_RUN

    def get_numeric_log_level(self) -> int:
        """Get the numeric log level for use with logging module."""
        return getattr(logging, self.log_level, logging.INFO)


def configure_logging(config: Optional[SweeperConfig] = None) -> logging.Logger:
    """Configure logging based on LOG_LEVEL environment variable or config.

    Args:
        config: Optional SweeperConfig instance. If not provided, reads from environment.

    Returns:
        Configured logger instance for the sweeper.
    """
    if config is None:
        log_level_str = os.environ.get("LOG_LEVEL", "INFO").upper().strip()
        if log_level_str not in VALID_LOG_LEVELS:
            logging.warning(f"Invalid LOG_LEVEL '{log_level_str}', defaulting to INFO")
            log_level_str = "INFO"
        log_level = getattr(logging, log_level_str, logging.INFO)
    else:
        log_level = config.get_numeric_log_level()

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,  # Override any existing configuration
    )

    # boto debug output drowns the sweeper's own messages
    for noisy in ("boto3", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.INFO))

    sweeper_logger = logging.getLogger("sweeper")
    sweeper_logger.setLevel(log_level)

    return sweeper_logger


def parse_duration(value: Union[int, str]) -> timedelta:
    """Parse a max_age value.

    Integers are hours. Strings are a number followed by an optional unit
    (``s``, ``m``, ``h``, ``d`` or ``w``); without a unit, hours.

    Raises:
        ConfigurationError: if the value is malformed or not positive
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid max_age: {value!r}")

    if isinstance(value, int):
        amount, unit = value, "h"
    elif isinstance(value, str):
        match = DURATION_PATTERN.match(value.strip().lower())
        if not match:
            raise ConfigurationError(
                f"Invalid max_age: '{value}' (expected e.g. 24, '90m', '24h', '7d')"
            )
        amount, unit = int(match.group(1)), match.group(2) or "h"
    else:
        raise ConfigurationError(f"Invalid max_age: {value!r}")

    if amount <= 0:
        raise ConfigurationError(f"Invalid max_age: {value!r} (must be positive)")

    return timedelta(**{DURATION_UNITS[unit]: amount})


def _parse_tags(type_id: str, raw: Any, errors: List[str]) -> Optional[Dict[str, str]]:
    if not isinstance(raw, dict):
        errors.append(f"{type_id}: tags must be a mapping of tag key to value")
        return None

    # Unquoted YAML scalars such as true or 0755 load as bool and int
    tags: Dict[str, str] = {}
    for key, value in raw.items():
        if value is None:
            value = ""
        if not isinstance(key, str) or not isinstance(value, str):
            errors.append(
                f"{type_id}: tag {key!r}: {value!r} is not a string; quote tag keys and values"
            )
            continue
        tags[key] = value
    if len(tags) != len(raw):
        return None

    result = InputValidator.validate_tags(tags)
    if not result.is_valid:
        errors.extend(f"{type_id}: {e}" for e in result.errors)
        return None
    return tags


def _parse_ids(type_id: str, raw: Any, errors: List[str]) -> Optional[frozenset]:
    if isinstance(raw, str) or not isinstance(raw, list):
        errors.append(f"{type_id}: ids must be a list")
        return None

    ids = []
    for item in raw:
        resource_id = str(item)
        result = InputValidator.validate_resource_id(resource_id)
        if not result.is_valid:
            errors.extend(f"{type_id}: id '{resource_id}': {e}" for e in result.errors)
            continue
        ids.append(resource_id)
    return frozenset(ids)


def _parse_spec(type_id: str, raw: Any, errors: List[str]) -> Optional[FilterSpec]:
    if raw is None:
        return FilterSpec()
    if not isinstance(raw, dict):
        errors.append(f"{type_id}: criteria must be a mapping")
        return None

    unknown = sorted(str(key) for key in raw if key not in FILTER_KEYS)
    if unknown:
        errors.append(
            f"{type_id}: unknown filter keys {unknown} (allowed: {sorted(FILTER_KEYS)})"
        )
        return None

    before = len(errors)
    tags = _parse_tags(type_id, raw["tags"], errors) if "tags" in raw else None
    ids = _parse_ids(type_id, raw["ids"], errors) if "ids" in raw else None
    max_age = None
    if "max_age" in raw:
        try:
            max_age = parse_duration(raw["max_age"])
        except ConfigurationError as e:
            errors.append(f"{type_id}: {e}")
    if len(errors) > before:
        return None

    spec = FilterSpec(tags=tags, ids=ids, max_age=max_age)
    try:
        spec.validate(type_id)
    except ConfigurationError as e:
        errors.append(str(e))
        return None
    return spec


def parse_filters(data: Any) -> Dict[str, FilterSpec]:
    """Turn the parsed filter document into a FilterSpec per type id.

    Raises:
        ConfigurationError: listing every structural problem found
    """
    if not isinstance(data, dict) or not data:
        raise ConfigurationError(
            "Filter file must be a non-empty mapping of resource type to criteria"
        )

    errors: List[str] = []
    filters: Dict[str, FilterSpec] = {}
    for type_id, raw in data.items():
        if not isinstance(type_id, str) or not type_id:
            errors.append(f"Invalid resource type name: {type_id!r}")
            continue
        spec = _parse_spec(type_id, raw, errors)
        if spec is not None:
            filters[type_id] = spec

    if errors:
        raise ConfigurationError(f"Invalid filter file: {errors}", errors=errors)

    return filters


def load_filter_file(path: Union[str, Path]) -> Dict[str, FilterSpec]:
    """Load and validate a YAML filter file.

    Args:
        path: Path to the filter file

    Returns:
        Mapping of resource type id to FilterSpec

    Raises:
        ConfigurationError: if the file cannot be read or is invalid
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read filter file {path}: {e.strerror or e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Filter file {path} is not valid YAML: {e}") from e

    filters = parse_filters(data)
    _config_logger.debug(f"Loaded filters for {len(filters)} resource type(s) from {path}")
    return filters
