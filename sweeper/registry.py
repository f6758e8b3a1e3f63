"""Resource type registry and the fixed deletion dependency graph.

The registry is built once per process and never mutated afterwards, so
it can be shared by worker threads without locking.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from sweeper.adapters import (
    ElasticIPAdapter,
    ImageAdapter,
    InstanceAdapter,
    InstanceProfileAdapter,
    InternetGatewayAdapter,
    KeyPairAdapter,
    NatGatewayAdapter,
    NetworkInterfaceAdapter,
    ResourceTypeAdapter,
    RoleAdapter,
    RouteTableAdapter,
    SecurityGroupAdapter,
    SnapshotAdapter,
    SubnetAdapter,
    VolumeAdapter,
    VpcAdapter,
)
from sweeper.exceptions import ConfigurationError, UnknownTypeError

if TYPE_CHECKING:
    from sweeper.utils.aws_client import AWSClientManager

logger = logging.getLogger(__name__)

# "key must be deleted before every type in value"
DELETE_BEFORE: dict[str, frozenset[str]] = {
    "aws_instance": frozenset(
        {
            "aws_ebs_volume",
            "aws_key_pair",
            "aws_security_group",
            "aws_subnet",
            "aws_network_interface",
            "aws_eip",
            "aws_iam_instance_profile",
        }
    ),
    "aws_nat_gateway": frozenset({"aws_eip", "aws_subnet", "aws_network_interface"}),
    "aws_ami": frozenset({"aws_ebs_snapshot"}),
    "aws_network_interface": frozenset({"aws_subnet", "aws_security_group"}),
    "aws_eip": frozenset({"aws_internet_gateway"}),
    "aws_internet_gateway": frozenset({"aws_vpc"}),
    "aws_route_table": frozenset({"aws_vpc"}),
    "aws_security_group": frozenset({"aws_vpc"}),
    "aws_subnet": frozenset({"aws_vpc"}),
    "aws_iam_instance_profile": frozenset({"aws_iam_role"}),
}


class ResourceTypeRegistry:
    """Static catalog mapping resource type ids to adapters."""

    def __init__(
        self,
        adapters: Iterable[ResourceTypeAdapter],
        dependencies: Mapping[str, Iterable[str]] | None = None,
    ):
        """
        Initialize registry.

        Args:
            adapters: Adapters in declaration order, one per type id
            dependencies: Graph of "delete before" edges between type ids;
                defaults to DELETE_BEFORE
        """
        self._adapters: dict[str, ResourceTypeAdapter] = {}
        for adapter in adapters:
            if not adapter.type_id:
                raise ConfigurationError(f"Adapter {type(adapter).__name__} has no type_id")
            if adapter.type_id in self._adapters:
                raise ConfigurationError(f"Duplicate adapter for {adapter.type_id}")
            self._adapters[adapter.type_id] = adapter

        graph = DELETE_BEFORE if dependencies is None else dependencies
        self._dependencies = {
            type_id: frozenset(targets) for type_id, targets in graph.items()
        }

    def get(self, type_id: str) -> ResourceTypeAdapter:
        """Look up the adapter for a type id.

        Raises:
            UnknownTypeError: if the type is not registered
        """
        try:
            return self._adapters[type_id]
        except KeyError:
            raise UnknownTypeError(type_id) from None

    def all(self) -> list[str]:
        """Registered type ids in declaration order."""
        return list(self._adapters)

    def dependencies(self) -> dict[str, frozenset[str]]:
        """The full "delete before" graph, including unregistered types."""
        return dict(self._dependencies)

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)


def build_default_registry(client_manager: "AWSClientManager") -> ResourceTypeRegistry:
    """Register every supported AWS resource type."""
    ec2 = client_manager.ec2
    iam = client_manager.iam
    registry = ResourceTypeRegistry(
        [
            InstanceAdapter(ec2),
            NatGatewayAdapter(ec2),
            ImageAdapter(ec2),
            NetworkInterfaceAdapter(ec2),
            ElasticIPAdapter(ec2),
            KeyPairAdapter(ec2),
            VolumeAdapter(ec2),
            SnapshotAdapter(ec2),
            SecurityGroupAdapter(ec2),
            InternetGatewayAdapter(ec2),
            RouteTableAdapter(ec2),
            SubnetAdapter(ec2),
            VpcAdapter(ec2),
            InstanceProfileAdapter(iam),
            RoleAdapter(iam),
        ]
    )
    logger.debug(f"Registered {len(registry)} resource types")
    return registry
