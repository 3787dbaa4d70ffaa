"""Unit tests for IAM Roles Manager."""

import asyncio
import json

import pytest
from unittest.mock import AsyncMock, Mock
from botocore.exceptions import ClientError

from landing_zone_automation.core.aws_client import AWSClientManager
from landing_zone_automation.core.throttle import BackoffRetrier
from landing_zone_automation.prerequisites.iam_roles import IAMRoleError, IAMRolesManager

from conftest import client_error


class TestIAMRolesManager:
    """Test cases for IAMRolesManager class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.mock_aws_client = Mock(spec=AWSClientManager)
        self.mock_iam_client = Mock()
        self.mock_aws_client.get_client.return_value = self.mock_iam_client
        self.mock_iam_client.get_role.side_effect = client_error("NoSuchEntity", "GetRole")

        self.manager = IAMRolesManager(self.mock_aws_client, BackoffRetrier(3, sleep=AsyncMock()), "us-east-1")

    def test_role_exists_true(self):
        """Test role_exists when role exists."""
        self.mock_iam_client.get_role.side_effect = None
        self.mock_iam_client.get_role.return_value = {"Role": {"RoleName": "AWSControlTowerAdmin"}}

        assert asyncio.run(self.manager.role_exists("AWSControlTowerAdmin")) is True

    def test_role_exists_false(self):
        """Test role_exists when role doesn't exist."""
        assert asyncio.run(self.manager.role_exists("AWSControlTowerAdmin")) is False

    def test_role_exists_other_error(self):
        """Test role_exists propagates unexpected errors."""
        self.mock_iam_client.get_role.side_effect = client_error("AccessDenied", "GetRole")

        with pytest.raises(ClientError):
            asyncio.run(self.manager.role_exists("AWSControlTowerAdmin"))

    def test_create_control_tower_roles(self):
        """Test all roles are created with policies."""
        created = asyncio.run(self.manager.create_control_tower_roles("aws"))

        assert created == [
            "AWSControlTowerAdmin",
            "AWSControlTowerCloudTrailRole",
            "AWSControlTowerStackSetRole",
        ]
        assert self.mock_iam_client.create_role.call_count == 3
        assert self.mock_iam_client.put_role_policy.call_count == 3
        self.mock_iam_client.get_waiter.assert_called_with("role_exists")
        self.mock_iam_client.attach_role_policy.assert_called_once_with(
            RoleName="AWSControlTowerAdmin",
            PolicyArn="arn:aws:iam::aws:policy/service-role/AWSControlTowerServiceRolePolicy",
        )

        admin_call = self.mock_iam_client.create_role.call_args_list[0]
        assert admin_call.kwargs["Path"] == "/service-role/"
        trust = json.loads(admin_call.kwargs["AssumeRolePolicyDocument"])
        assert trust["Statement"][0]["Principal"] == {"Service": ["controltower.amazonaws.com"]}

    def test_policies_use_partition(self):
        """Test policy ARNs follow the partition."""
        asyncio.run(self.manager.create_control_tower_roles("aws-us-gov"))

        stack_set_policy = self.mock_iam_client.put_role_policy.call_args_list[2].kwargs
        assert stack_set_policy["PolicyName"] == "AWSControlTowerStackSetRolePolicy"
        document = json.loads(stack_set_policy["PolicyDocument"])
        assert document["Statement"][0]["Resource"] == ["arn:aws-us-gov:iam::*:role/AWSControlTowerExecution"]

    def test_existing_roles_abort_creation(self):
        """Test existing roles stop the deployment."""

        def get_role(RoleName):
            if RoleName == "AWSControlTowerCloudTrailRole":
                return {"Role": {"RoleName": RoleName}}
            raise client_error("NoSuchEntity", "GetRole")

        self.mock_iam_client.get_role.side_effect = get_role

        with pytest.raises(IAMRoleError, match='"AWSControlTowerCloudTrailRole"'):
            asyncio.run(self.manager.create_control_tower_roles("aws"))

        self.mock_iam_client.create_role.assert_not_called()
