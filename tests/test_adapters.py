"""Tests for AWS resource adapters using mocked boto3 clients."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, call

import pytest

from sweeper.adapters import (
    ElasticIPAdapter,
    ImageAdapter,
    InstanceAdapter,
    InstanceProfileAdapter,
    InternetGatewayAdapter,
    KeyPairAdapter,
    NatGatewayAdapter,
    NetworkInterfaceAdapter,
    RoleAdapter,
    RouteTableAdapter,
    SecurityGroupAdapter,
    SnapshotAdapter,
    VolumeAdapter,
    VpcAdapter,
    parse_timestamp,
    tags_from_aws,
)
from sweeper.exceptions import (
    PermanentDeleteError,
    ResourceNotFoundError,
    TransientDeleteError,
)
from sweeper.filters import TagFilter


def paginated_client(*pages):
    """MagicMock client whose paginator yields the given pages."""
    client = MagicMock()
    client.get_paginator.return_value.paginate.return_value = list(pages)
    return client


def client_with_paginators(pages_by_operation):
    """MagicMock client with one paginator per operation; unknown operations yield no pages."""
    client = MagicMock()

    def get_paginator(operation):
        paginator = MagicMock()
        paginator.paginate.return_value = list(pages_by_operation.get(operation, []))
        return paginator

    client.get_paginator.side_effect = get_paginator
    return client


class TestHelpers:
    def test_tags_from_aws(self):
        assert tags_from_aws([{"Key": "a", "Value": "1"}, {"Key": "b"}]) == {"a": "1", "b": ""}
        assert tags_from_aws(None) == {}

    def test_parse_timestamp(self):
        dt = datetime(2024, 1, 1, tzinfo=timezone.utc)

        assert parse_timestamp(dt) is dt
        assert parse_timestamp("2024-01-01T00:00:00.000Z") == dt
        assert parse_timestamp(None) is None
        assert parse_timestamp("not a date") is None


class TestInstanceAdapter:
    def test_enumerate_flattens_reservations(self, sample_instance_data):
        terminated = dict(sample_instance_data, InstanceId="i-dead", State={"Name": "terminated"})
        client = paginated_client(
            {"Reservations": [{"Instances": [sample_instance_data]}]},
            {"Reservations": [{"Instances": [terminated]}]},
        )

        descriptors = InstanceAdapter(client).enumerate()

        client.get_paginator.assert_called_once_with("describe_instances")
        assert [d.resource_id for d in descriptors] == ["i-1234567890abcdef0"]
        descriptor = descriptors[0]
        assert descriptor.resource_type == "aws_instance"
        assert descriptor.tags["foo"] == "bar"
        assert descriptor.creation_time == sample_instance_data["LaunchTime"]
        assert descriptor.state == "running"

    def test_describe_returns_state(self, sample_instance_data):
        stopping = dict(sample_instance_data, State={"Name": "shutting-down"})
        client = paginated_client({"Reservations": [{"Instances": [stopping]}]})

        descriptor = InstanceAdapter(client).describe("i-1234567890abcdef0")

        client.get_paginator.return_value.paginate.assert_called_once_with(
            InstanceIds=["i-1234567890abcdef0"]
        )
        assert descriptor.state == "shutting-down"

    def test_describe_not_found_returns_none(self, aws_error):
        client = MagicMock()
        client.get_paginator.return_value.paginate.side_effect = aws_error(
            "InvalidInstanceID.NotFound"
        )

        assert InstanceAdapter(client).describe("i-gone") is None

    def test_describe_other_errors_propagate(self, aws_error):
        client = MagicMock()
        client.get_paginator.return_value.paginate.side_effect = aws_error("UnauthorizedOperation")

        with pytest.raises(Exception):
            InstanceAdapter(client).describe("i-1")

    def test_is_terminal(self, make_descriptor):
        adapter = InstanceAdapter(MagicMock())

        assert adapter.is_terminal(make_descriptor("i-1", state="terminated")) is True
        assert adapter.is_terminal(make_descriptor("i-1", state="Terminated")) is True
        assert adapter.is_terminal(make_descriptor("i-1", state="shutting-down")) is False

    def test_delete_terminates(self):
        client = MagicMock()

        InstanceAdapter(client).delete("i-1")

        client.terminate_instances.assert_called_once_with(InstanceIds=["i-1"])

    @pytest.mark.parametrize(
        "code,expected",
        [
            ("InvalidInstanceID.NotFound", ResourceNotFoundError),
            ("IncorrectInstanceState", TransientDeleteError),
            ("RequestLimitExceeded", TransientDeleteError),
            ("UnauthorizedOperation", PermanentDeleteError),
        ],
    )
    def test_delete_translates_client_errors(self, aws_error, code, expected):
        client = MagicMock()
        client.terminate_instances.side_effect = aws_error(code, "TerminateInstances")

        with pytest.raises(expected) as exc_info:
            InstanceAdapter(client).delete("i-1")

        assert exc_info.value.code == code
        assert exc_info.value.__cause__ is client.terminate_instances.side_effect


class TestKeyPairAdapter:
    def test_enumerate_not_paginated(self, sample_key_pair_data):
        client = MagicMock()
        client.describe_key_pairs.return_value = {"KeyPairs": [sample_key_pair_data]}

        descriptors = KeyPairAdapter(client).enumerate()

        client.get_paginator.assert_not_called()
        assert descriptors[0].resource_id == "test_key_12345"
        assert descriptors[0].creation_time == sample_key_pair_data["CreateTime"]

    def test_describe_by_name(self, sample_key_pair_data):
        client = MagicMock()
        client.describe_key_pairs.return_value = {"KeyPairs": [sample_key_pair_data]}

        KeyPairAdapter(client).describe("test_key_12345")

        client.describe_key_pairs.assert_called_once_with(KeyNames=["test_key_12345"])

    def test_delete(self):
        client = MagicMock()

        KeyPairAdapter(client).delete("test_key")

        client.delete_key_pair.assert_called_once_with(KeyName="test_key")


class TestElasticIPAdapter:
    def test_enumerate_skips_classic_addresses(self):
        client = MagicMock()
        client.describe_addresses.return_value = {
            "Addresses": [
                {"AllocationId": "eipalloc-1", "PublicIp": "1.2.3.4", "AssociationId": "eipassoc-1"},
                {"PublicIp": "5.6.7.8"},
            ]
        }

        descriptors = ElasticIPAdapter(client).enumerate()

        assert [d.resource_id for d in descriptors] == ["eipalloc-1"]
        assert descriptors[0].state == "associated"

    def test_delete_disassociates_first(self):
        client = MagicMock()
        client.describe_addresses.return_value = {
            "Addresses": [{"AllocationId": "eipalloc-1", "AssociationId": "eipassoc-1"}]
        }

        ElasticIPAdapter(client).delete("eipalloc-1")

        assert client.method_calls[-2:] == [
            call.disassociate_address(AssociationId="eipassoc-1"),
            call.release_address(AllocationId="eipalloc-1"),
        ]

    def test_delete_unassociated(self):
        client = MagicMock()
        client.describe_addresses.return_value = {"Addresses": [{"AllocationId": "eipalloc-1"}]}

        ElasticIPAdapter(client).delete("eipalloc-1")

        client.disassociate_address.assert_not_called()
        client.release_address.assert_called_once_with(AllocationId="eipalloc-1")


class TestNatGatewayAdapter:
    def test_enumerate_skips_deleted(self):
        client = paginated_client(
            {
                "NatGateways": [
                    {"NatGatewayId": "nat-1", "State": "available"},
                    {"NatGatewayId": "nat-2", "State": "deleted"},
                ]
            }
        )

        descriptors = NatGatewayAdapter(client).enumerate()

        assert [d.resource_id for d in descriptors] == ["nat-1"]

    def test_deleted_state_is_terminal(self):
        client = paginated_client({"NatGateways": [{"NatGatewayId": "nat-1", "State": "deleted"}]})
        adapter = NatGatewayAdapter(client)

        assert adapter.is_terminal(adapter.describe("nat-1")) is True


class TestNetworkInterfaceAdapter:
    def test_reads_tag_set_and_status(self):
        client = paginated_client(
            {
                "NetworkInterfaces": [
                    {
                        "NetworkInterfaceId": "eni-1",
                        "Status": "available",
                        "TagSet": [{"Key": "foo", "Value": "bar"}],
                    }
                ]
            }
        )

        descriptor = NetworkInterfaceAdapter(client).enumerate()[0]

        assert descriptor.tags == {"foo": "bar"}
        assert descriptor.state == "available"


class TestStorageAdapters:
    def test_volume_enumerate(self, sample_volume_data):
        client = paginated_client({"Volumes": [sample_volume_data]})

        descriptor = VolumeAdapter(client).enumerate()[0]

        assert descriptor.resource_id == "vol-1234567890abcdef0"
        assert descriptor.creation_time == sample_volume_data["CreateTime"]

    def test_snapshot_lists_own_snapshots_only(self):
        client = paginated_client({"Snapshots": [{"SnapshotId": "snap-1", "State": "completed"}]})

        SnapshotAdapter(client).enumerate()

        client.get_paginator.return_value.paginate.assert_called_once_with(OwnerIds=["self"])

    def test_snapshot_in_use_is_transient(self, aws_error):
        client = MagicMock()
        client.delete_snapshot.side_effect = aws_error("InvalidSnapshot.InUse")

        with pytest.raises(TransientDeleteError):
            SnapshotAdapter(client).delete("snap-1")

    def test_image_creation_date_parsed(self):
        client = MagicMock()
        client.describe_images.return_value = {
            "Images": [
                {"ImageId": "ami-1", "State": "available", "CreationDate": "2024-01-01T00:00:00.000Z"}
            ]
        }

        descriptor = ImageAdapter(client).enumerate()[0]

        client.describe_images.assert_called_once_with(Owners=["self"])
        assert descriptor.creation_time == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_image_delete_deregisters(self):
        client = MagicMock()

        ImageAdapter(client).delete("ami-1")

        client.deregister_image.assert_called_once_with(ImageId="ami-1")


class TestNetworkAdapters:
    def test_security_group_skips_default(self, sample_security_group_data):
        default_group = {"GroupId": "sg-default", "GroupName": "default"}
        client = paginated_client({"SecurityGroups": [sample_security_group_data, default_group]})

        descriptors = SecurityGroupAdapter(client).enumerate()

        assert [d.resource_id for d in descriptors] == ["sg-1234567890abcdef0"]

    def test_security_group_dependency_violation_is_transient(self, aws_error):
        client = MagicMock()
        client.delete_security_group.side_effect = aws_error("DependencyViolation")

        with pytest.raises(TransientDeleteError):
            SecurityGroupAdapter(client).delete("sg-1")

    def test_internet_gateway_detached_before_delete(self):
        client = paginated_client(
            {
                "InternetGateways": [
                    {"InternetGatewayId": "igw-1", "Attachments": [{"VpcId": "vpc-1"}]}
                ]
            }
        )

        InternetGatewayAdapter(client).delete("igw-1")

        client.detach_internet_gateway.assert_called_once_with(
            InternetGatewayId="igw-1", VpcId="vpc-1"
        )
        client.delete_internet_gateway.assert_called_once_with(InternetGatewayId="igw-1")

    def test_route_table_skips_main(self):
        client = paginated_client(
            {
                "RouteTables": [
                    {"RouteTableId": "rtb-main", "Associations": [{"Main": True}]},
                    {"RouteTableId": "rtb-1", "Associations": []},
                ]
            }
        )

        descriptors = RouteTableAdapter(client).enumerate()

        assert [d.resource_id for d in descriptors] == ["rtb-1"]

    def test_route_table_disassociates_subnets(self):
        client = paginated_client(
            {
                "RouteTables": [
                    {
                        "RouteTableId": "rtb-1",
                        "Associations": [{"Main": False, "RouteTableAssociationId": "rtbassoc-1"}],
                    }
                ]
            }
        )

        RouteTableAdapter(client).delete("rtb-1")

        client.disassociate_route_table.assert_called_once_with(AssociationId="rtbassoc-1")
        client.delete_route_table.assert_called_once_with(RouteTableId="rtb-1")

    def test_vpc_skips_default(self):
        client = paginated_client(
            {"Vpcs": [{"VpcId": "vpc-default", "IsDefault": True}, {"VpcId": "vpc-1", "IsDefault": False}]}
        )

        descriptors = VpcAdapter(client).enumerate()

        assert [d.resource_id for d in descriptors] == ["vpc-1"]


class TestIAMAdapters:
    def test_role_skips_service_linked_and_fetches_tags(self):
        client = paginated_client(
            {
                "Roles": [
                    {"RoleName": "test-role", "Path": "/", "CreateDate": datetime(2024, 1, 1)},
                    {"RoleName": "AWSServiceRoleForX", "Path": "/aws-service-role/x/"},
                ]
            }
        )
        client.list_role_tags.return_value = {"Tags": [{"Key": "foo", "Value": "bar"}]}

        descriptors = RoleAdapter(client).enumerate()

        assert [d.resource_id for d in descriptors] == ["test-role"]
        assert descriptors[0].tags == {"foo": "bar"}
        client.list_role_tags.assert_called_once_with(RoleName="test-role")

    def test_role_describe_missing(self, aws_error):
        client = MagicMock()
        client.get_role.side_effect = aws_error("NoSuchEntity", "GetRole")

        assert RoleAdapter(client).describe("test-role") is None

    def test_role_delete_cleans_up_attachments(self):
        client = client_with_paginators(
            {
                "list_instance_profiles_for_role": [
                    {"InstanceProfiles": [{"InstanceProfileName": "profile-1"}]}
                ],
                "list_attached_role_policies": [
                    {"AttachedPolicies": [{"PolicyArn": "arn:aws:iam::aws:policy/ReadOnly"}]}
                ],
                "list_role_policies": [{"PolicyNames": ["inline-1"]}],
            }
        )

        RoleAdapter(client).delete("test-role")

        client.remove_role_from_instance_profile.assert_called_once_with(
            InstanceProfileName="profile-1", RoleName="test-role"
        )
        client.detach_role_policy.assert_called_once_with(
            RoleName="test-role", PolicyArn="arn:aws:iam::aws:policy/ReadOnly"
        )
        client.delete_role_policy.assert_called_once_with(RoleName="test-role", PolicyName="inline-1")
        client.delete_role.assert_called_once_with(RoleName="test-role")

    def test_role_delete_walks_every_page(self):
        client = client_with_paginators(
            {
                "list_attached_role_policies": [
                    {"AttachedPolicies": [{"PolicyArn": "arn:aws:iam::aws:policy/A"}]},
                    {"AttachedPolicies": [{"PolicyArn": "arn:aws:iam::aws:policy/B"}]},
                ],
                "list_role_policies": [{"PolicyNames": ["inline-1"]}, {"PolicyNames": ["inline-2"]}],
            }
        )

        RoleAdapter(client).delete("test-role")

        assert client.detach_role_policy.call_args_list == [
            call(RoleName="test-role", PolicyArn="arn:aws:iam::aws:policy/A"),
            call(RoleName="test-role", PolicyArn="arn:aws:iam::aws:policy/B"),
        ]
        assert client.delete_role_policy.call_count == 2
        client.delete_role.assert_called_once_with(RoleName="test-role")

    def test_role_delete_conflict_is_transient(self, aws_error):
        client = client_with_paginators({})
        client.delete_role.side_effect = aws_error("DeleteConflict", "DeleteRole")

        with pytest.raises(TransientDeleteError):
            RoleAdapter(client).delete("test-role")

    def test_instance_profile_tags_fetched_and_filterable(self):
        client = paginated_client(
            {"InstanceProfiles": [{"InstanceProfileName": "profile-1", "Roles": []}]}
        )
        client.list_instance_profile_tags.return_value = {"Tags": [{"Key": "foo", "Value": "bar"}]}

        descriptors = InstanceProfileAdapter(client).enumerate()

        assert descriptors[0].tags == {"foo": "bar"}
        client.list_instance_profile_tags.assert_called_once_with(InstanceProfileName="profile-1")
        assert TagFilter({"foo": "bar"}).matches(descriptors[0]).matched

    def test_instance_profile_removes_roles(self):
        client = MagicMock()
        client.get_instance_profile.return_value = {
            "InstanceProfile": {
                "InstanceProfileName": "profile-1",
                "Roles": [{"RoleName": "role-a"}],
            }
        }

        InstanceProfileAdapter(client).delete("profile-1")

        client.remove_role_from_instance_profile.assert_called_once_with(
            InstanceProfileName="profile-1", RoleName="role-a"
        )
        client.delete_instance_profile.assert_called_once_with(InstanceProfileName="profile-1")

    def test_instance_profile_missing_on_delete_is_not_found(self, aws_error):
        client = MagicMock()
        client.get_instance_profile.side_effect = aws_error("NoSuchEntity", "GetInstanceProfile")

        with pytest.raises(ResourceNotFoundError):
            InstanceProfileAdapter(client).delete("profile-1")

    def test_instance_profile_describe(self):
        client = MagicMock()
        client.get_instance_profile.return_value = {
            "InstanceProfile": {"InstanceProfileName": "profile-1", "Tags": []}
        }

        descriptor = InstanceProfileAdapter(client).describe("profile-1")

        assert descriptor.resource_id == "profile-1"
        assert descriptor.resource_type == "aws_iam_instance_profile"
