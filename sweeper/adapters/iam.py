"""IAM adapters for instance profiles and roles.

IAM is global and has no describe-many call, so lookups go through
``get_*`` and a missing entity is reported as ``NoSuchEntity``.
Resources are identified by name.
"""

import logging
from typing import Any

from botocore.exceptions import ClientError

from sweeper.adapters.base import AWSResourceAdapter, tags_from_aws
from sweeper.exceptions import error_code, is_not_found_code
from sweeper.models import ResourceDescriptor

logger = logging.getLogger(__name__)


def _paginate(client: Any, operation: str, result_key: str, **kwargs: Any) -> list[Any]:
    items: list[Any] = []
    for page in client.get_paginator(operation).paginate(**kwargs):
        items.extend(page.get(result_key, []))
    return items


class InstanceProfileAdapter(AWSResourceAdapter):
    """IAM instance profiles. Roles are detached before deletion."""

    type_id = "aws_iam_instance_profile"

    describe_operation = "list_instance_profiles"
    result_key = "InstanceProfiles"
    id_key = "InstanceProfileName"
    state_key = None
    created_key = "CreateDate"

    def to_descriptor(self, item: dict[str, Any]) -> ResourceDescriptor:
        # list_instance_profiles omits tags
        tags = item.get("Tags")
        if tags is None:
            response = self.client.list_instance_profile_tags(
                InstanceProfileName=item["InstanceProfileName"]
            )
            tags = response.get("Tags", [])
        return ResourceDescriptor(
            resource_type=self.type_id,
            resource_id=item["InstanceProfileName"],
            tags=tags_from_aws(tags),
            creation_time=item.get("CreateDate"),
        )

    def describe(self, resource_id: str) -> ResourceDescriptor | None:
        try:
            response = self.client.get_instance_profile(InstanceProfileName=resource_id)
        except ClientError as e:
            if is_not_found_code(error_code(e)):
                return None
            raise
        profile = dict(response["InstanceProfile"])
        profile.setdefault("Tags", [])
        return self.to_descriptor(profile)

    def delete_resource(self, resource_id: str) -> None:
        response = self.client.get_instance_profile(InstanceProfileName=resource_id)
        for role in response["InstanceProfile"].get("Roles", []):
            role_name = role["RoleName"]
            logger.info(f"Removing role {role_name} from instance profile {resource_id}")
            self.client.remove_role_from_instance_profile(
                InstanceProfileName=resource_id,
                RoleName=role_name,
            )

        logger.info(f"Deleting instance profile {resource_id}")
        self.client.delete_instance_profile(InstanceProfileName=resource_id)


class RoleAdapter(AWSResourceAdapter):
    """IAM roles, excluding service-linked roles.

    ``list_roles`` does not return tags, so they are fetched per role.
    """

    type_id = "aws_iam_role"

    describe_operation = "list_roles"
    result_key = "Roles"
    id_key = "RoleName"
    state_key = None
    created_key = "CreateDate"

    SERVICE_ROLE_PATH = "/aws-service-role/"

    def include(self, item: dict[str, Any]) -> bool:
        return not item.get("Path", "/").startswith(self.SERVICE_ROLE_PATH)

    def to_descriptor(self, item: dict[str, Any]) -> ResourceDescriptor:
        tags = item.get("Tags")
        if tags is None:
            tags = self.client.list_role_tags(RoleName=item["RoleName"]).get("Tags", [])
        return ResourceDescriptor(
            resource_type=self.type_id,
            resource_id=item["RoleName"],
            tags=tags_from_aws(tags),
            creation_time=item.get("CreateDate"),
        )

    def describe(self, resource_id: str) -> ResourceDescriptor | None:
        try:
            response = self.client.get_role(RoleName=resource_id)
        except ClientError as e:
            if is_not_found_code(error_code(e)):
                return None
            raise
        role = dict(response["Role"])
        role.setdefault("Tags", [])
        return self.to_descriptor(role)

    def delete_resource(self, resource_id: str) -> None:
        profiles = _paginate(
            self.client, "list_instance_profiles_for_role", "InstanceProfiles", RoleName=resource_id
        )
        for profile in profiles:
            profile_name = profile["InstanceProfileName"]
            logger.info(f"Removing role {resource_id} from instance profile {profile_name}")
            self.client.remove_role_from_instance_profile(
                InstanceProfileName=profile_name,
                RoleName=resource_id,
            )

        attached = _paginate(
            self.client, "list_attached_role_policies", "AttachedPolicies", RoleName=resource_id
        )
        for policy in attached:
            self.client.detach_role_policy(RoleName=resource_id, PolicyArn=policy["PolicyArn"])

        inline = _paginate(self.client, "list_role_policies", "PolicyNames", RoleName=resource_id)
        for policy_name in inline:
            self.client.delete_role_policy(RoleName=resource_id, PolicyName=policy_name)

        logger.info(f"Deleting role {resource_id}")
        self.client.delete_role(RoleName=resource_id)
