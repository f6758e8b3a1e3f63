"""Input validation and log sanitization for the resource sweeper.

Filter files are operator input: tag keys, tag values and resource ids are
validated before they reach the engine, and everything written to logs or
notifications passes through ``LogSanitizer``.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Pattern

# Shell and template metacharacters never found in AWS ids or names
DANGEROUS_CHARACTERS = frozenset("<>{}[]|\\`$;!&*()\"'\n\r\t")

MAX_LENGTHS = {
    "tag_key": 128,
    "tag_value": 256,
    "resource_id": 255,
    "region": 20,
    "arn": 2048,
}

REGION_PATTERN = re.compile(r"^[a-z]{2}(-gov)?-[a-z]+-[0-9]$")

# Characters AWS accepts in tag keys and values
TAG_CHARACTERS = re.compile(r"^[\w\s.:/=+\-@]*$", re.ASCII)

ARN_MIN_PARTS = 6


@dataclass
class ValidationResult:
    """Outcome of validating one operator-supplied value."""

    is_valid: bool
    errors: List[str]
    sanitized_value: Optional[Any] = None

    @classmethod
    def valid(cls, sanitized_value: Any = None) -> "ValidationResult":
        return cls(is_valid=True, errors=[], sanitized_value=sanitized_value)

    @classmethod
    def invalid(cls, errors: List[str]) -> "ValidationResult":
        return cls(is_valid=False, errors=errors)


def _check_text(
    value: str,
    label: str,
    max_length: int,
    pattern: Optional[Pattern[str]] = None,
    pattern_error: str = "",
    reject_dangerous: bool = False,
    allow_empty: bool = False,
) -> ValidationResult:
    if not value:
        if allow_empty:
            return ValidationResult.valid(value)
        return ValidationResult.invalid([f"{label} cannot be empty"])

    errors = []
    if len(value) > max_length:
        errors.append(f"{label} exceeds maximum length of {max_length}")
    if reject_dangerous and not DANGEROUS_CHARACTERS.isdisjoint(value):
        errors.append(f"{label} contains potentially dangerous characters")
    if pattern is not None and not pattern.match(value):
        errors.append(pattern_error or f"{label} contains invalid characters")

    if errors:
        return ValidationResult.invalid(errors)
    return ValidationResult.valid(value)


class InputValidator:
    """Validates values read from the environment and the filter file."""

    @staticmethod
    def validate_resource_id(resource_id: str) -> ValidationResult:
        """Ids in an ``ids`` list; key pair and IAM entries are names."""
        return _check_text(
            resource_id,
            "Resource ID",
            MAX_LENGTHS["resource_id"],
            reject_dangerous=True,
        )

    @staticmethod
    def validate_region(region: str) -> ValidationResult:
        return _check_text(
            region,
            "Region",
            MAX_LENGTHS["region"],
            pattern=REGION_PATTERN,
            pattern_error="Region does not match expected pattern (e.g., us-east-1)",
        )

    @staticmethod
    def validate_tag_key(key: str) -> ValidationResult:
        return _check_text(key, "Tag key", MAX_LENGTHS["tag_key"], pattern=TAG_CHARACTERS)

    @staticmethod
    def validate_tag_value(value: str) -> ValidationResult:
        """Empty values are allowed: ``Name: ""`` matches an empty tag."""
        return _check_text(
            value,
            "Tag value",
            MAX_LENGTHS["tag_value"],
            pattern=TAG_CHARACTERS,
            allow_empty=True,
        )

    @classmethod
    def validate_tags(cls, tags: Dict[str, str]) -> ValidationResult:
        """
        Validate the tag criteria of one resource type.

        Args:
            tags: Tag key to required value

        Returns:
            ValidationResult listing every bad key or value
        """
        if not isinstance(tags, dict):
            return ValidationResult.invalid(["Tags must be a dictionary"])

        errors = []
        for key, value in tags.items():
            key_result = cls.validate_tag_key(key)
            if not key_result.is_valid:
                errors.extend(f"Tag key '{key}': {e}" for e in key_result.errors)
                continue
            value_result = cls.validate_tag_value(value)
            errors.extend(f"Tag value for '{key}': {e}" for e in value_result.errors)

        if errors:
            return ValidationResult.invalid(errors)
        return ValidationResult.valid(dict(tags))

    @staticmethod
    def validate_arn(arn: str) -> ValidationResult:
        """Role ARNs to assume; ``:`` separators are expected."""
        result = _check_text(arn, "ARN", MAX_LENGTHS["arn"])
        if not arn:
            return result

        errors = list(result.errors)
        if not DANGEROUS_CHARACTERS.isdisjoint(arn):
            errors.append("ARN contains potentially dangerous characters")
        if not arn.startswith("arn:aws"):
            errors.append("ARN must start with 'arn:aws'")
        if len(arn.split(":")) < ARN_MIN_PARTS:
            errors.append("ARN does not have enough components")

        if errors:
            return ValidationResult.invalid(errors)
        return ValidationResult.valid(arn)


def _redact_assignment(match: "re.Match[str]") -> str:
    name = match.group(1).lower().replace("-", "_")
    if name.startswith("api"):
        name = "api_key"
    return f"{name}=[REDACTED]"


class LogSanitizer:
    """Redacts credentials from log lines, outcome details and notifications.

    AWS error messages can echo request parameters, so every string that
    leaves the process is passed through here.
    """

    ACCESS_KEY = re.compile(r"(?:AKIA|ASIA)[0-9A-Z]{16}")
    ASSIGNMENT = re.compile(r"(?i)(password|secret|token|api[_-]?key)\s*[=:]\s*\S+")
    # 40 base64 characters, only right after a secret-style name
    SECRET_KEY = re.compile(r"(?i)(secret\w*\W{1,4})[a-z0-9+/]{40}(?![a-z0-9+/])")

    SENSITIVE_KEYS = ("password", "secret", "token", "credential", "auth")

    @classmethod
    def sanitize(cls, message: str) -> str:
        message = cls.ACCESS_KEY.sub("[REDACTED_ACCESS_KEY]", message)
        message = cls.ASSIGNMENT.sub(_redact_assignment, message)
        return cls.SECRET_KEY.sub(r"\1[REDACTED_SECRET]", message)

    @classmethod
    def sanitize_dict(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        """Sanitize a mapping for logging; values under sensitive keys are dropped."""
        return {
            key: "[REDACTED]"
            if any(s in key.lower() for s in cls.SENSITIVE_KEYS)
            else cls._sanitize_value(value)
            for key, value in data.items()
        }

    @classmethod
    def _sanitize_value(cls, value: Any) -> Any:
        if isinstance(value, str):
            return cls.sanitize(value)
        if isinstance(value, dict):
            return cls.sanitize_dict(value)
        if isinstance(value, (list, tuple)):
            return [cls._sanitize_value(v) for v in value]
        return value
