"""IAM roles management for landing zone prerequisites.

This module creates the service roles AWS Control Tower assumes when a
landing zone is first set up.
"""

import json
import logging
from typing import Any, Dict, List

from botocore.exceptions import ClientError

from ..core.aws_client import AWSClientManager
from ..core.exceptions import is_resource_missing
from ..core.throttle import BackoffRetrier
from .organizations import PrerequisiteError

logger = logging.getLogger(__name__)


class IAMRoleError(PrerequisiteError):
    """Raised when Control Tower roles cannot be created."""

    pass


def _policy(statements: List[Dict[str, Any]]) -> str:
    return json.dumps({"Version": "2012-10-17", "Statement": statements})


class IAMRolesManager:
    """Creates the IAM roles AWS Control Tower requires."""

    CONTROL_TOWER_ROLES = {
        "AWSControlTowerAdmin": {
            "description": "Administrative role for Control Tower operations",
            "trust_service": "controltower.amazonaws.com",
        },
        "AWSControlTowerCloudTrailRole": {
            "description": "CloudTrail logging role",
            "trust_service": "cloudtrail.amazonaws.com",
        },
        "AWSControlTowerStackSetRole": {
            "description": "CloudFormation StackSet operations role",
            "trust_service": "cloudformation.amazonaws.com",
        },
    }

    def __init__(self, aws_client: AWSClientManager, retrier: BackoffRetrier, region: str) -> None:
        """Initialize IAM roles manager.

        Args:
            aws_client: AWS client manager for the management account
            retrier: Backoff retrier wrapping every call
            region: Region for the IAM client
        """
        self.aws_client = aws_client
        self.retrier = retrier
        self.region = region
        self._iam_client = None

    def _get_client(self):
        """Get IAM client with caching.

        Returns:
            Configured IAM client
        """
        if self._iam_client is None:
            self._iam_client = self.aws_client.get_client("iam", self.region)
        return self._iam_client

    async def role_exists(self, role_name: str) -> bool:
        """Check if IAM role exists.

        Args:
            role_name: Name of the role to check

        Returns:
            True if role exists, False otherwise
        """
        client = self._get_client()
        try:
            response = await self.retrier.call(lambda: client.get_role(RoleName=role_name))
        except ClientError as e:
            if is_resource_missing(e):
                return False
            raise
        return response.get("Role", {}).get("RoleName") == role_name

    def _inline_policies(self, role_name: str, partition: str) -> Dict[str, str]:
        if role_name == "AWSControlTowerAdmin":
            return {
                "AWSControlTowerAdminPolicy": _policy(
                    [{"Action": "ec2:DescribeAvailabilityZones", "Resource": "*", "Effect": "Allow"}]
                )
            }
        if role_name == "AWSControlTowerCloudTrailRole":
            log_group = f"arn:{partition}:logs:*:*:log-group:aws-controltower/CloudTrailLogs:*"
            return {
                "AWSControlTowerCloudTrailRolePolicy": _policy(
                    [
                        {"Action": "logs:CreateLogStream", "Resource": log_group, "Effect": "Allow"},
                        {"Action": "logs:PutLogEvents", "Resource": log_group, "Effect": "Allow"},
                    ]
                )
            }
        return {
            "AWSControlTowerStackSetRolePolicy": _policy(
                [
                    {
                        "Action": ["sts:AssumeRole"],
                        "Resource": [f"arn:{partition}:iam::*:role/AWSControlTowerExecution"],
                        "Effect": "Allow",
                    }
                ]
            )
        }

    async def _create_role(self, role_name: str, partition: str) -> None:
        client = self._get_client()
        details = self.CONTROL_TOWER_ROLES[role_name]
        trust_policy = _policy(
            [
                {
                    "Effect": "Allow",
                    "Principal": {"Service": [details["trust_service"]]},
                    "Action": "sts:AssumeRole",
                }
            ]
        )

        logger.info(f"Creating AWS Control Tower Landing Zone role {role_name}")
        await self.retrier.call(
            lambda: client.create_role(
                RoleName=role_name,
                Path="/service-role/",
                Description=details["description"],
                AssumeRolePolicyDocument=trust_policy,
            )
        )
        await self.retrier.call(lambda: client.get_waiter("role_exists").wait(RoleName=role_name))

        for policy_name, document in self._inline_policies(role_name, partition).items():
            await self.retrier.call(
                lambda: client.put_role_policy(
                    RoleName=role_name, PolicyName=policy_name, PolicyDocument=document
                )
            )

        if role_name == "AWSControlTowerAdmin":
            policy_arn = f"arn:{partition}:iam::aws:policy/service-role/AWSControlTowerServiceRolePolicy"
            await self.retrier.call(
                lambda: client.attach_role_policy(RoleName=role_name, PolicyArn=policy_arn)
            )

        logger.info(f"AWS Control Tower Landing Zone role {role_name} created successfully")

    async def create_control_tower_roles(self, partition: str) -> List[str]:
        """Create every Control Tower role.

        Args:
            partition: AWS partition used in policy ARNs

        Returns:
            Names of the created roles

        Raises:
            IAMRoleError: When any of the roles already exists
        """
        existing = [name for name in self.CONTROL_TOWER_ROLES if await self.role_exists(name)]
        if existing:
            raise IAMRoleError(
                f'There are existing AWS Control Tower Landing Zone roles "{",".join(existing)}", '
                "the solution cannot deploy AWS Control Tower Landing Zone"
            )

        for role_name in self.CONTROL_TOWER_ROLES:
            await self._create_role(role_name, partition)
        return list(self.CONTROL_TOWER_ROLES)
