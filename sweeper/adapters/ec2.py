"""EC2 compute adapters: instances, key pairs, elastic IPs, NAT gateways and ENIs."""

import logging
from typing import Any

from sweeper.adapters.base import AWSResourceAdapter

logger = logging.getLogger(__name__)


class InstanceAdapter(AWSResourceAdapter):
    """EC2 instances.

    Terminated instances stay visible in describe calls for a while, so
    they are skipped during enumeration and count as terminal when polled.
    """

    type_id = "aws_instance"
    terminal_states = frozenset({"terminated"})

    describe_operation = "describe_instances"
    id_key = "InstanceId"
    ids_param = "InstanceIds"
    created_key = "LaunchTime"

    def extract(self, response: dict[str, Any]) -> list[dict[str, Any]]:
        return [
            instance
            for reservation in response.get("Reservations", [])
            for instance in reservation.get("Instances", [])
        ]

    def state_of(self, item: dict[str, Any]) -> str:
        return item.get("State", {}).get("Name", "")

    def delete_resource(self, resource_id: str) -> None:
        logger.info(f"Terminating instance {resource_id}")
        self.client.terminate_instances(InstanceIds=[resource_id])


class KeyPairAdapter(AWSResourceAdapter):
    """EC2 key pairs, identified by key name."""

    type_id = "aws_key_pair"

    describe_operation = "describe_key_pairs"
    result_key = "KeyPairs"
    id_key = "KeyName"
    ids_param = "KeyNames"
    paginated = False
    state_key = None
    created_key = "CreateTime"

    def delete_resource(self, resource_id: str) -> None:
        logger.info(f"Deleting key pair {resource_id}")
        self.client.delete_key_pair(KeyName=resource_id)


class ElasticIPAdapter(AWSResourceAdapter):
    """VPC elastic IPs, identified by allocation id.

    An associated address is disassociated before it is released.
    """

    type_id = "aws_eip"

    describe_operation = "describe_addresses"
    result_key = "Addresses"
    id_key = "AllocationId"
    ids_param = "AllocationIds"
    paginated = False

    def include(self, item: dict[str, Any]) -> bool:
        # EC2-Classic addresses have no allocation id
        return "AllocationId" in item

    def state_of(self, item: dict[str, Any]) -> str:
        return "associated" if item.get("AssociationId") else "unassociated"

    def delete_resource(self, resource_id: str) -> None:
        response = self.client.describe_addresses(AllocationIds=[resource_id])
        for address in response.get("Addresses", []):
            association_id = address.get("AssociationId")
            if association_id:
                logger.info(f"Disassociating EIP {resource_id} ({association_id})")
                self.client.disassociate_address(AssociationId=association_id)

        logger.info(f"Releasing EIP {resource_id}")
        self.client.release_address(AllocationId=resource_id)


class NatGatewayAdapter(AWSResourceAdapter):
    """NAT gateways. Deletion is asynchronous and ends in state ``deleted``."""

    type_id = "aws_nat_gateway"
    terminal_states = frozenset({"deleted"})

    describe_operation = "describe_nat_gateways"
    result_key = "NatGateways"
    id_key = "NatGatewayId"
    ids_param = "NatGatewayIds"
    created_key = "CreateTime"

    def delete_resource(self, resource_id: str) -> None:
        logger.info(f"Deleting NAT gateway {resource_id}")
        self.client.delete_nat_gateway(NatGatewayId=resource_id)


class NetworkInterfaceAdapter(AWSResourceAdapter):
    """Elastic network interfaces."""

    type_id = "aws_network_interface"

    describe_operation = "describe_network_interfaces"
    result_key = "NetworkInterfaces"
    id_key = "NetworkInterfaceId"
    ids_param = "NetworkInterfaceIds"
    tags_key = "TagSet"
    state_key = "Status"

    def delete_resource(self, resource_id: str) -> None:
        logger.info(f"Deleting network interface {resource_id}")
        self.client.delete_network_interface(NetworkInterfaceId=resource_id)
