"""VPC networking adapters: security groups, gateways, route tables, subnets and VPCs.

Default VPCs, default security groups and main route tables are never
enumerated; they cannot be deleted independently of their VPC.
"""

import logging
from typing import Any

from sweeper.adapters.base import AWSResourceAdapter

logger = logging.getLogger(__name__)


class SecurityGroupAdapter(AWSResourceAdapter):
    """VPC security groups."""

    type_id = "aws_security_group"

    describe_operation = "describe_security_groups"
    result_key = "SecurityGroups"
    id_key = "GroupId"
    ids_param = "GroupIds"
    state_key = None

    def include(self, item: dict[str, Any]) -> bool:
        return item.get("GroupName") != "default"

    def delete_resource(self, resource_id: str) -> None:
        logger.info(f"Deleting security group {resource_id}")
        self.client.delete_security_group(GroupId=resource_id)


class InternetGatewayAdapter(AWSResourceAdapter):
    """Internet gateways. Attached gateways are detached first."""

    type_id = "aws_internet_gateway"

    describe_operation = "describe_internet_gateways"
    result_key = "InternetGateways"
    id_key = "InternetGatewayId"
    ids_param = "InternetGatewayIds"
    state_key = None

    def delete_resource(self, resource_id: str) -> None:
        for gateway in self._describe(InternetGatewayIds=[resource_id]):
            for attachment in gateway.get("Attachments", []):
                vpc_id = attachment["VpcId"]
                logger.info(f"Detaching internet gateway {resource_id} from {vpc_id}")
                self.client.detach_internet_gateway(
                    InternetGatewayId=resource_id, VpcId=vpc_id
                )

        logger.info(f"Deleting internet gateway {resource_id}")
        self.client.delete_internet_gateway(InternetGatewayId=resource_id)


class RouteTableAdapter(AWSResourceAdapter):
    """Non-main route tables. Subnet associations are removed first."""

    type_id = "aws_route_table"

    describe_operation = "describe_route_tables"
    result_key = "RouteTables"
    id_key = "RouteTableId"
    ids_param = "RouteTableIds"
    state_key = None

    def include(self, item: dict[str, Any]) -> bool:
        return not any(a.get("Main") for a in item.get("Associations", []))

    def delete_resource(self, resource_id: str) -> None:
        for table in self._describe(RouteTableIds=[resource_id]):
            for association in table.get("Associations", []):
                if association.get("Main"):
                    continue
                association_id = association["RouteTableAssociationId"]
                logger.info(f"Disassociating route table {resource_id} ({association_id})")
                self.client.disassociate_route_table(AssociationId=association_id)

        logger.info(f"Deleting route table {resource_id}")
        self.client.delete_route_table(RouteTableId=resource_id)


class SubnetAdapter(AWSResourceAdapter):
    """VPC subnets."""

    type_id = "aws_subnet"

    describe_operation = "describe_subnets"
    result_key = "Subnets"
    id_key = "SubnetId"
    ids_param = "SubnetIds"

    def delete_resource(self, resource_id: str) -> None:
        logger.info(f"Deleting subnet {resource_id}")
        self.client.delete_subnet(SubnetId=resource_id)


class VpcAdapter(AWSResourceAdapter):
    """Non-default VPCs."""

    type_id = "aws_vpc"

    describe_operation = "describe_vpcs"
    result_key = "Vpcs"
    id_key = "VpcId"
    ids_param = "VpcIds"

    def include(self, item: dict[str, Any]) -> bool:
        return not item.get("IsDefault", False)

    def delete_resource(self, resource_id: str) -> None:
        logger.info(f"Deleting VPC {resource_id}")
        self.client.delete_vpc(VpcId=resource_id)
