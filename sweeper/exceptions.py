"""Exception hierarchy for the resource sweeper.

Only configuration errors abort a run, and they are raised before any
resource is touched. Everything else is turned into an ``Outcome``::

    SweeperError
    ├── ConfigurationError
    │   ├── UnknownTypeError
    │   └── PlanningError
    ├── EnumerationError
    ├── DeleteError
    │   ├── TransientDeleteError
    │   └── PermanentDeleteError
    │       └── ResourceNotFoundError
    └── PollTimeoutError
"""

from typing import List, Optional

from botocore.exceptions import ClientError

# Error codes worth retrying, including dependencies still being torn down
TRANSIENT_ERROR_CODES = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "ServiceUnavailable",
    "InternalError",
    "InternalFailure",
    "RequestTimeout",
    "DependencyViolation",
    "InvalidGroup.InUse",
    "IncorrectState",
    "IncorrectInstanceState",
    "InvalidIPAddress.InUse",
    "DeleteConflict",
    "InvalidNetworkInterface.InUse",
    "InvalidSnapshot.InUse",
    "VolumeInUse",
}

NOT_FOUND_ERROR_CODES = {
    "NoSuchEntity",
    "InvalidAllocationID.NotFound",
    "InvalidAMIID.Unavailable",
}


class SweeperError(Exception):
    """Base class for all sweeper errors."""


class ConfigurationError(SweeperError):
    """Raised for invalid configuration detected before a run starts."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(self.message)


class UnknownTypeError(ConfigurationError):
    """Raised when a resource type is not in the registry."""

    def __init__(self, type_id: str):
        self.type_id = type_id
        super().__init__(f"Unknown resource type: {type_id}")


class PlanningError(ConfigurationError):
    """Raised when the dependency graph cannot be ordered."""


class EnumerationError(SweeperError):
    """Raised when listing the resources of one type fails."""

    def __init__(self, type_id: str, message: str):
        self.type_id = type_id
        super().__init__(f"Failed to enumerate {type_id}: {message}")


class DeleteError(SweeperError):
    """Base class for failed delete calls."""

    def __init__(self, message: str, code: str = ""):
        self.code = code
        super().__init__(message)


class TransientDeleteError(DeleteError):
    """Delete failed but may succeed if retried later."""


class PermanentDeleteError(DeleteError):
    """Delete failed and retrying will not help."""


class ResourceNotFoundError(PermanentDeleteError):
    """The resource is already gone."""


class PollTimeoutError(SweeperError):
    """The resource did not reach a terminal state in time."""


def error_code(error: ClientError) -> str:
    """Return the AWS error code carried by a ClientError."""
    return error.response.get("Error", {}).get("Code", "")


def is_not_found_code(code: str) -> bool:
    return code in NOT_FOUND_ERROR_CODES or "NotFound" in code


def classify_client_error(error: ClientError) -> DeleteError:
    """Translate a botocore ClientError into the sweeper's delete taxonomy."""
    code = error_code(error)
    message = str(error)
    if is_not_found_code(code):
        return ResourceNotFoundError(message, code)
    if code in TRANSIENT_ERROR_CODES:
        return TransientDeleteError(message, code)
    return PermanentDeleteError(message, code)
