"""Per-type adapters that list, describe and delete AWS resources."""

from sweeper.adapters.base import (
    AWSResourceAdapter,
    ResourceTypeAdapter,
    parse_timestamp,
    tags_from_aws,
)
from sweeper.adapters.ec2 import (
    ElasticIPAdapter,
    InstanceAdapter,
    KeyPairAdapter,
    NatGatewayAdapter,
    NetworkInterfaceAdapter,
)
from sweeper.adapters.iam import InstanceProfileAdapter, RoleAdapter
from sweeper.adapters.network import (
    InternetGatewayAdapter,
    RouteTableAdapter,
    SecurityGroupAdapter,
    SubnetAdapter,
    VpcAdapter,
)
from sweeper.adapters.storage import ImageAdapter, SnapshotAdapter, VolumeAdapter

__all__ = [
    "AWSResourceAdapter",
    "ElasticIPAdapter",
    "ImageAdapter",
    "InstanceAdapter",
    "InstanceProfileAdapter",
    "InternetGatewayAdapter",
    "KeyPairAdapter",
    "NatGatewayAdapter",
    "NetworkInterfaceAdapter",
    "ResourceTypeAdapter",
    "RoleAdapter",
    "RouteTableAdapter",
    "SecurityGroupAdapter",
    "SnapshotAdapter",
    "SubnetAdapter",
    "VolumeAdapter",
    "VpcAdapter",
    "parse_timestamp",
    "tags_from_aws",
]
