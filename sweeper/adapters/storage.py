"""Storage adapters for EBS volumes, EBS snapshots and AMIs.

Only resources owned by the current account are listed. Snapshots that
still back a registered AMI fail with ``InvalidSnapshot.InUse``, which is
retried: the AMI is deregistered in an earlier wave.
"""

import logging
from typing import Any

from sweeper.adapters.base import AWSResourceAdapter

logger = logging.getLogger(__name__)


class VolumeAdapter(AWSResourceAdapter):
    """EBS volumes."""

    type_id = "aws_ebs_volume"
    terminal_states = frozenset({"deleted"})

    describe_operation = "describe_volumes"
    result_key = "Volumes"
    id_key = "VolumeId"
    ids_param = "VolumeIds"
    created_key = "CreateTime"

    def delete_resource(self, resource_id: str) -> None:
        logger.info(f"Deleting volume {resource_id}")
        self.client.delete_volume(VolumeId=resource_id)


class SnapshotAdapter(AWSResourceAdapter):
    """EBS snapshots owned by this account."""

    type_id = "aws_ebs_snapshot"

    describe_operation = "describe_snapshots"
    result_key = "Snapshots"
    id_key = "SnapshotId"
    ids_param = "SnapshotIds"
    created_key = "StartTime"

    def list_params(self) -> dict[str, Any]:
        return {"OwnerIds": ["self"]}

    def delete_resource(self, resource_id: str) -> None:
        logger.info(f"Deleting snapshot {resource_id}")
        self.client.delete_snapshot(SnapshotId=resource_id)


class ImageAdapter(AWSResourceAdapter):
    """AMIs owned by this account. Deleting means deregistering."""

    type_id = "aws_ami"
    terminal_states = frozenset({"deregistered"})

    describe_operation = "describe_images"
    result_key = "Images"
    id_key = "ImageId"
    ids_param = "ImageIds"
    paginated = False
    created_key = "CreationDate"

    def list_params(self) -> dict[str, Any]:
        return {"Owners": ["self"]}

    def delete_resource(self, resource_id: str) -> None:
        logger.info(f"Deregistering image {resource_id}")
        self.client.deregister_image(ImageId=resource_id)
