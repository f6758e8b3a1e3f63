"""AWS sessions, clients and retry policy for the resource sweeper.

botocore's own retries are switched off on every client; the sweeper
counts attempts itself so that ``SWEEPER_MAX_RETRIES`` is exact and every
backoff wait can be cut short by an operator interrupt.
"""

import logging
import random
import threading
import time
from collections.abc import Callable
from typing import Any, TypeVar

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from sweeper.exceptions import error_code

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Read-only calls are retried on throttling and server-side errors only
THROTTLING_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
        "TooManyRequestsException",
        "ProvisionedThroughputExceededException",
        "ServiceUnavailable",
        "InternalError",
        "RequestTimeout",
    }
)

ASSUMED_ROLE_SESSION_NAME = "ResourceSweeper"
ASSUMED_ROLE_DURATION = 3600


class RetryStrategy:
    """Attempt budget and exponential backoff with jitter.

    ``max_retries`` counts retries after the first attempt, so an operation
    is tried at most ``max_retries + 1`` times.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 2.0,
        max_delay: float = 30.0,
        jitter: bool = True,
        cancel_event: threading.Event | None = None,
    ):
        self.max_retries = max(0, max_retries)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter
        self.cancel_event = cancel_event

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def is_retryable(self, code: str) -> bool:
        return code in THROTTLING_ERROR_CODES

    def should_retry(self, attempt: int, code: str) -> bool:
        """Whether a failed zero-based ``attempt`` may be followed by another."""
        return self.is_retryable(code) and attempt < self.max_retries

    def execute_with_retry(self, operation: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call a read-only operation, backing off on throttling.

        The last ClientError is re-raised when the budget is spent, the code
        is not retryable, or the wait was cancelled.
        """
        attempt = 0
        while True:
            try:
                return operation(*args, **kwargs)
            except ClientError as e:
                code = error_code(e)
                if not self.should_retry(attempt, code):
                    raise
                delay = self.calculate_delay(attempt)
                logger.warning(
                    f"Retryable error {code}, attempt {attempt + 1}/{self.max_attempts}, "
                    f"waiting {delay:.2f}s"
                )
                if self.wait(delay):
                    logger.info(f"Retry of {code} abandoned, run cancelled")
                    raise
                attempt += 1

    def calculate_delay(self, attempt: int) -> float:
        """Backoff before retry number ``attempt + 1``, capped at ``max_delay``."""
        delay: float = min(self.base_delay * (2**attempt), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random() * 0.5
        return delay

    def wait(self, delay: float) -> bool:
        """Sleep for ``delay`` seconds; True if cancelled meanwhile."""
        if self.cancel_event is None:
            time.sleep(delay)
            return False
        return self.cancel_event.wait(delay)


class AWSClientManager:
    """Lazily builds one boto3 session and caches a client per service.

    Clients are created from the main thread while the registry is built;
    the lock only guards late lookups from worker threads.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        profile: str | None = None,
        role_arn: str | None = None,
    ):
        """
        Initialize client manager.

        Args:
            region: Region every client is bound to
            profile: Named profile from the shared AWS config, if any
            role_arn: Role to assume on top of the profile credentials
        """
        self.region = region
        self.profile = profile
        self.role_arn = role_arn
        self._session: boto3.Session | None = None
        self._clients: dict[str, Any] = {}
        self._lock = threading.Lock()

    def _get_session(self) -> boto3.Session:
        if self._session is None:
            session = boto3.Session(profile_name=self.profile, region_name=self.region)
            if self.role_arn:
                session = self._assume_role(session)
            self._session = session
        return self._session

    def _assume_role(self, base_session: boto3.Session) -> boto3.Session:
        logger.info(f"Assuming role {self.role_arn}")
        response = base_session.client("sts", region_name=self.region).assume_role(
            RoleArn=self.role_arn,
            RoleSessionName=ASSUMED_ROLE_SESSION_NAME,
            DurationSeconds=ASSUMED_ROLE_DURATION,
        )
        credentials = response["Credentials"]
        return boto3.Session(
            aws_access_key_id=credentials["AccessKeyId"],
            aws_secret_access_key=credentials["SecretAccessKey"],
            aws_session_token=credentials["SessionToken"],
            region_name=self.region,
        )

    def get_client(self, service_name: str) -> Any:
        with self._lock:
            client = self._clients.get(service_name)
            if client is None:
                client = self._get_session().client(
                    service_name,
                    config=Config(retries={"max_attempts": 0}),
                    region_name=self.region,  # type: ignore[call-overload]
                )
                self._clients[service_name] = client
            return client

    @property
    def ec2(self) -> Any:
        return self.get_client("ec2")

    @property
    def iam(self) -> Any:
        return self.get_client("iam")

    @property
    def sns(self) -> Any:
        return self.get_client("sns")

    @property
    def sts(self) -> Any:
        return self.get_client("sts")

    def get_account_id(self) -> str:
        """Account the sweeper's credentials belong to, for report headers."""
        account_id: str = self.sts.get_caller_identity()["Account"]
        return account_id
