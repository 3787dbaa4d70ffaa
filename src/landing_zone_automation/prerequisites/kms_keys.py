"""Customer-managed KMS keys for the landing zone.

Two keys are used: one encrypts centralized logging, the other the
config hub buckets. Keys are found by alias so reruns reuse them.
"""

import json
import logging
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from ..control_tower.models import KmsKeyArns
from ..core.aws_client import AWSClientManager
from ..core.exceptions import ServiceContractError, is_resource_missing
from ..core.throttle import BackoffRetrier

logger = logging.getLogger(__name__)

CENTRALIZED_LOGGING_KEY_ALIAS = "alias/aws-controltower/centralized-logging"
CONFIG_HUB_KEY_ALIAS = "alias/aws-controltower/config-hub"


def build_key_policy(partition: str, account_id: str, service: str) -> str:
    """Build a key policy letting the account and one logging service use the key.

    Args:
        partition: AWS partition
        account_id: Management account ID
        service: Service principal allowed to encrypt with the key

    Returns:
        Key policy JSON document
    """
    statements = [
        {
            "Sid": "Enable IAM User Permissions",
            "Effect": "Allow",
            "Principal": {"AWS": f"arn:{partition}:iam::{account_id}:root"},
            "Action": "kms:*",
            "Resource": "*",
        },
        {
            "Sid": f"Allow {service} to encrypt logs",
            "Effect": "Allow",
            "Principal": {"Service": service},
            "Action": ["kms:GenerateDataKey*", "kms:Decrypt"],
            "Resource": "*",
            "Condition": {"StringEquals": {"aws:SourceAccount": account_id}},
        },
        {
            "Sid": "Allow CloudTrail to describe the key",
            "Effect": "Allow",
            "Principal": {"Service": "cloudtrail.amazonaws.com"},
            "Action": "kms:DescribeKey",
            "Resource": "*",
        },
    ]
    if service == "cloudtrail.amazonaws.com":
        statements[1]["Condition"] = {
            "StringLike": {
                "kms:EncryptionContext:aws:cloudtrail:arn": f"arn:{partition}:cloudtrail:*:{account_id}:trail/*"
            },
        }
    return json.dumps({"Version": "2012-10-17", "Id": f"{service}-key-policy", "Statement": statements})


class KmsKeyManager:
    """Creates the customer-managed keys used by the landing zone."""

    KEYS = {
        "centralized_logging": {
            "alias": CENTRALIZED_LOGGING_KEY_ALIAS,
            "service": "cloudtrail.amazonaws.com",
            "description": "AWS Control Tower Landing Zone centralized logging key",
        },
        "config_hub": {
            "alias": CONFIG_HUB_KEY_ALIAS,
            "service": "config.amazonaws.com",
            "description": "AWS Control Tower Landing Zone config hub key",
        },
    }

    def __init__(self, aws_client: AWSClientManager, retrier: BackoffRetrier, region: str) -> None:
        """Initialize KMS key manager.

        Args:
            aws_client: AWS client manager for the management account
            retrier: Backoff retrier wrapping every call
            region: Home region of the landing zone
        """
        self.aws_client = aws_client
        self.retrier = retrier
        self.region = region
        self._kms_client = None

    def _get_client(self):
        """Get KMS client with caching."""
        if self._kms_client is None:
            self._kms_client = self.aws_client.get_client("kms", self.region)
        return self._kms_client

    async def find_key_arn(self, alias: str) -> Optional[str]:
        """Find a key ARN by alias.

        Args:
            alias: Key alias

        Returns:
            Key ARN, or None when the alias does not exist
        """
        client = self._get_client()
        try:
            response = await self.retrier.call(lambda: client.describe_key(KeyId=alias))
        except ClientError as e:
            if is_resource_missing(e):
                return None
            raise
        return response["KeyMetadata"]["Arn"]

    async def _create_key(self, settings: Dict[str, Any], partition: str, account_id: str) -> str:
        existing_arn = await self.find_key_arn(settings["alias"])
        if existing_arn:
            logger.info(f"KMS key {settings['alias']} already exists, reusing {existing_arn}")
            return existing_arn

        client = self._get_client()
        policy = build_key_policy(partition, account_id, settings["service"])
        response = await self.retrier.call(
            lambda: client.create_key(
                Policy=policy,
                Description=settings["description"],
                KeyUsage="ENCRYPT_DECRYPT",
                KeySpec="SYMMETRIC_DEFAULT",
            )
        )
        metadata = response.get("KeyMetadata") or {}
        if not metadata.get("Arn"):
            raise ServiceContractError(f"CreateKey did not return a key ARN for {settings['alias']}")

        await self.retrier.call(
            lambda: client.create_alias(AliasName=settings["alias"], TargetKeyId=metadata["KeyId"])
        )
        await self.retrier.call(lambda: client.enable_key_rotation(KeyId=metadata["KeyId"]))
        logger.info(f"Created KMS key {settings['alias']}: {metadata['Arn']}")
        return metadata["Arn"]

    async def create_control_tower_keys(self, partition: str, management_account_id: str) -> KmsKeyArns:
        """Create or reuse both landing zone keys.

        Args:
            partition: AWS partition
            management_account_id: Management account ID

        Returns:
            KmsKeyArns
        """
        centralized = await self._create_key(self.KEYS["centralized_logging"], partition, management_account_id)
        config_hub = await self._create_key(self.KEYS["config_hub"], partition, management_account_id)
        return KmsKeyArns(centralized_logging_key_arn=centralized, config_hub_key_arn=config_hub)
