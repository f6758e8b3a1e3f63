"""Adapter contract between the sweeper engine and a resource type.

An adapter knows how to list, describe and delete resources of exactly one
type. The engine never talks to AWS directly; it only calls these methods.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from botocore.exceptions import ClientError

from sweeper.exceptions import classify_client_error, error_code, is_not_found_code
from sweeper.models import ResourceDescriptor

logger = logging.getLogger(__name__)


class ResourceTypeAdapter(ABC):
    """Capability set implemented once per resource type."""

    type_id: str = ""

    # Lower-case states from which no further lifecycle transition occurs
    terminal_states: frozenset[str] = frozenset()

    @abstractmethod
    def enumerate(self) -> list[ResourceDescriptor]:
        """List live resources of this type. Raises on API failure."""
        raise NotImplementedError

    @abstractmethod
    def describe(self, resource_id: str) -> ResourceDescriptor | None:
        """Fresh snapshot of one resource, or None once it no longer exists."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, resource_id: str) -> None:
        """Issue the delete call.

        Raises:
            TransientDeleteError: the call may succeed if retried
            PermanentDeleteError: the call will not succeed
            ResourceNotFoundError: the resource is already gone
        """
        raise NotImplementedError

    def is_terminal(self, descriptor: ResourceDescriptor) -> bool:
        """Check whether a descriptor is in a terminal state."""
        return descriptor.state.lower() in self.terminal_states


def tags_from_aws(tag_list: Iterable[dict[str, str]] | None) -> dict[str, str]:
    """Convert an AWS ``[{"Key": k, "Value": v}]`` list into a dict."""
    return {t["Key"]: t.get("Value", "") for t in tag_list or []}


def parse_timestamp(value: Any) -> datetime | None:
    """Normalize AWS timestamps, which are datetimes or ISO-8601 strings."""
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable timestamp: {value}")
        return None


class AWSResourceAdapter(ResourceTypeAdapter):
    """Adapter backed by a boto3 client.

    Subclasses describe where items live in the API response; the
    listing, lookup and error translation are shared.
    """

    describe_operation: str = ""
    result_key: str = ""
    id_key: str = ""
    ids_param: str = ""
    paginated: bool = True
    tags_key: str = "Tags"
    state_key: str | None = "State"
    created_key: str | None = None

    def __init__(self, client: Any):
        """
        Initialize adapter.

        Args:
            client: Boto3 client for the owning service
        """
        self.client = client

    def enumerate(self) -> list[ResourceDescriptor]:
        descriptors = [
            self.to_descriptor(item)
            for item in self._describe(**self.list_params())
            if self.include(item)
        ]
        logger.debug(f"Enumerated {len(descriptors)} {self.type_id} resources")
        return descriptors

    def describe(self, resource_id: str) -> ResourceDescriptor | None:
        try:
            items = self._describe(**{self.ids_param: [resource_id]})
        except ClientError as e:
            if is_not_found_code(error_code(e)):
                return None
            raise
        if not items:
            return None
        return self.to_descriptor(items[0])

    def delete(self, resource_id: str) -> None:
        try:
            self.delete_resource(resource_id)
        except ClientError as e:
            raise classify_client_error(e) from e

    @abstractmethod
    def delete_resource(self, resource_id: str) -> None:
        """Perform the raw boto3 delete call(s)."""
        raise NotImplementedError

    def list_params(self) -> dict[str, Any]:
        """Extra parameters for the listing call."""
        return {}

    def include(self, item: dict[str, Any]) -> bool:
        """Whether an enumerated item is a deletion candidate at all."""
        return self.state_of(item).lower() not in self.terminal_states

    def extract(self, response: dict[str, Any]) -> list[dict[str, Any]]:
        return response.get(self.result_key, [])

    def state_of(self, item: dict[str, Any]) -> str:
        if not self.state_key:
            return ""
        return str(item.get(self.state_key, ""))

    def to_descriptor(self, item: dict[str, Any]) -> ResourceDescriptor:
        return ResourceDescriptor(
            resource_type=self.type_id,
            resource_id=item[self.id_key],
            tags=tags_from_aws(item.get(self.tags_key)),
            creation_time=parse_timestamp(item.get(self.created_key)) if self.created_key else None,
            state=self.state_of(item),
        )

    def _describe(self, **kwargs: Any) -> list[dict[str, Any]]:
        if not self.paginated:
            response = getattr(self.client, self.describe_operation)(**kwargs)
            return self.extract(response)

        items: list[dict[str, Any]] = []
        paginator = self.client.get_paginator(self.describe_operation)
        for page in paginator.paginate(**kwargs):
            items.extend(self.extract(page))
        return items
