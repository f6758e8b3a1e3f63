"""Pytest configuration and shared fixtures."""

import os
import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

import pytest
from botocore.exceptions import ClientError

from sweeper.adapters.base import ResourceTypeAdapter
from sweeper.models import ResourceDescriptor
from sweeper.registry import ResourceTypeRegistry
from sweeper.utils.aws_client import RetryStrategy

# Set AWS region for tests
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_REGION", "us-east-1")

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def client_error(code: str, operation: str = "TestOperation") -> ClientError:
    """Build a botocore ClientError carrying ``code``."""
    return ClientError({"Error": {"Code": code, "Message": f"{code} message"}}, operation)


class FakeAdapter(ResourceTypeAdapter):
    """In-memory adapter recording every call.

    ``delete_effects`` maps a resource id to a list of exceptions (or None
    for success) consumed one per delete call. After a successful delete,
    ``describe`` reports the resource ``polls_until_gone`` more times before
    it disappears; None means it never disappears.
    """

    terminal_states = frozenset({"terminated"})

    def __init__(
        self,
        type_id: str,
        resources: Iterable[ResourceDescriptor] = (),
        delete_effects: Optional[Dict[str, List[Optional[Exception]]]] = None,
        polls_until_gone: Optional[int] = 0,
        enumerate_error: Optional[Exception] = None,
        events: Optional[List[tuple]] = None,
    ):
        self.type_id = type_id
        self.resources = list(resources)
        self.delete_effects = {k: list(v) for k, v in (delete_effects or {}).items()}
        self.polls_until_gone = polls_until_gone
        self.enumerate_error = enumerate_error
        self.events = events if events is not None else []
        self.enumerate_calls = 0
        self.delete_calls: List[str] = []
        self.describe_calls: List[str] = []
        self._deleted: set = set()
        self._lock = threading.Lock()

    def enumerate(self) -> List[ResourceDescriptor]:
        self.enumerate_calls += 1
        self.events.append(("enumerate", self.type_id))
        if self.enumerate_error is not None:
            raise self.enumerate_error
        return list(self.resources)

    def delete(self, resource_id: str) -> None:
        with self._lock:
            self.delete_calls.append(resource_id)
            self.events.append(("delete", self.type_id, resource_id))
            effects = self.delete_effects.get(resource_id)
            effect = effects.pop(0) if effects else None
            if effect is not None:
                raise effect
            self._deleted.add(resource_id)

    def describe(self, resource_id: str) -> Optional[ResourceDescriptor]:
        with self._lock:
            self.describe_calls.append(resource_id)
            polls = self.describe_calls.count(resource_id)
        if resource_id in self._deleted and self.polls_until_gone is not None:
            if polls > self.polls_until_gone:
                return None
        return ResourceDescriptor(self.type_id, resource_id, state="shutting-down")


class FakeClock:
    """Monotonic clock advancing by ``step`` seconds on every read."""

    def __init__(self, step: float = 10.0):
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        current = self.now
        self.now += self.step
        return current


@pytest.fixture
def make_descriptor():
    """Factory for resource descriptors."""

    def _make(
        resource_id: str,
        resource_type: str = "aws_instance",
        tags: Optional[Dict[str, str]] = None,
        age: Optional[timedelta] = None,
        state: str = "running",
    ) -> ResourceDescriptor:
        return ResourceDescriptor(
            resource_type=resource_type,
            resource_id=resource_id,
            tags=tags or {},
            creation_time=FIXED_NOW - age if age is not None else None,
            state=state,
        )

    return _make


@pytest.fixture
def aws_error():
    """Factory for botocore ClientErrors."""
    return client_error


@pytest.fixture
def make_adapter():
    """Factory for FakeAdapter instances."""
    return FakeAdapter


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fixed_now():
    return lambda: FIXED_NOW


@pytest.fixture
def no_wait_retry():
    """Retry strategy that never sleeps."""
    return RetryStrategy(max_retries=3, base_delay=0.0, max_delay=0.0, jitter=False)


@pytest.fixture
def make_registry():
    """Factory for registries over fake adapters."""

    def _make(adapters, dependencies=None) -> ResourceTypeRegistry:
        return ResourceTypeRegistry(adapters, dependencies=dependencies or {})

    return _make


@pytest.fixture
def sample_tags() -> Dict[str, str]:
    """Sample sweeper test tags."""
    return {
        "Name": "integration-test",
        "foo": "bar",
    }


@pytest.fixture
def sample_instance_data(sample_tags) -> Dict:
    """Sample EC2 instance data."""
    return {
        "InstanceId": "i-1234567890abcdef0",
        "InstanceType": "t3.micro",
        "State": {"Name": "running"},
        "VpcId": "vpc-12345678",
        "KeyName": "test_key",
        "LaunchTime": FIXED_NOW - timedelta(hours=5),
        "Tags": [{"Key": k, "Value": v} for k, v in sample_tags.items()],
    }


@pytest.fixture
def sample_volume_data(sample_tags) -> Dict:
    """Sample EBS volume data."""
    return {
        "VolumeId": "vol-1234567890abcdef0",
        "Size": 8,
        "State": "available",
        "CreateTime": FIXED_NOW - timedelta(days=2),
        "Attachments": [],
        "Tags": [{"Key": k, "Value": v} for k, v in sample_tags.items()],
    }


@pytest.fixture
def sample_security_group_data(sample_tags) -> Dict:
    """Sample security group data."""
    return {
        "GroupId": "sg-1234567890abcdef0",
        "GroupName": "test_security_group",
        "VpcId": "vpc-12345678",
        "Description": "Temporary security group",
        "Tags": [{"Key": k, "Value": v} for k, v in sample_tags.items()],
    }


@pytest.fixture
def sample_key_pair_data() -> Dict:
    """Sample key pair data."""
    return {
        "KeyPairId": "key-1234567890abcdef0",
        "KeyName": "test_key_12345",
        "KeyFingerprint": "ab:cd:ef:12:34:56:78:90",
        "CreateTime": FIXED_NOW - timedelta(hours=1),
        "Tags": [],
    }
