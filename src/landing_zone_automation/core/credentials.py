"""Cross-account credential resolution.

Resolves the credential set needed to act in a target account, skipping
the role assumption when the caller already runs in that account.
"""

import logging
from typing import Iterable, Optional, Tuple

from .aws_client import AssumeRoleCredentials, AWSClientManager
from .batch import BatchResult, process_in_batches
from .exceptions import InvalidInputError, ServiceContractError
from .throttle import BackoffRetrier

logger = logging.getLogger(__name__)

DEFAULT_SESSION_NAME = "AcceleratorAssumeRole"

GLOBAL_REGIONS = {
    "aws": "us-east-1",
    "aws-us-gov": "us-gov-west-1",
    "aws-cn": "cn-northwest-1",
    "aws-iso": "us-iso-east-1",
    "aws-iso-b": "us-isob-east-1",
    "aws-iso-e": "eu-isoe-west-1",
    "aws-iso-f": "us-isof-south-1",
}

REQUIRED_CREDENTIAL_FIELDS = ("AccessKeyId", "SecretAccessKey", "SessionToken", "Expiration")


def get_global_region(partition: str) -> str:
    """Get the global region of a partition.

    Args:
        partition: AWS partition name

    Returns:
        Region hosting the partition's global services
    """
    return GLOBAL_REGIONS.get(partition, "us-east-1")


def build_role_arn(partition: str, account_id: str, role_name: str) -> str:
    """Build an IAM role ARN."""
    return f"arn:{partition}:iam::{account_id}:role/{role_name}"


class CredentialResolver:
    """Resolves credentials for target accounts and regions."""

    def __init__(self, client_manager: AWSClientManager, retrier: BackoffRetrier) -> None:
        """Initialize credential resolver.

        Args:
            client_manager: Manager bound to the caller's identity
            retrier: Backoff retrier wrapping every STS call
        """
        self.client_manager = client_manager
        self.retrier = retrier

    async def get_credentials(
        self,
        account_id: str,
        region: str,
        solution_id: Optional[str] = None,
        partition: Optional[str] = None,
        assume_role_name: Optional[str] = None,
        assume_role_arn: Optional[str] = None,
        session_name: Optional[str] = None,
    ) -> Optional[AssumeRoleCredentials]:
        """Resolve credentials for a target account.

        Args:
            account_id: Target account id
            region: Region the STS call is made in
            solution_id: Solution tag for the STS calls, defaults to the manager's tag
            partition: AWS partition, required with assume_role_name
            assume_role_name: Role name in the target account
            assume_role_arn: Full role ARN
            session_name: Role session name, defaults to AcceleratorAssumeRole

        Returns:
            Assumed-role credentials, or None when the caller already runs
            in the role's account

        Raises:
            InvalidInputError: When role parameters are missing or contradictory
            ServiceContractError: When STS omits a credential field
        """
        if assume_role_name and assume_role_arn:
            raise InvalidInputError("Either assumeRoleName or assumeRoleArn can be provided not both")
        if not assume_role_name and not assume_role_arn:
            raise InvalidInputError("Either assumeRoleName or assumeRoleArn must provided")
        if assume_role_name and not partition:
            raise InvalidInputError("When assumeRoleName provided partition must be provided")

        role_arn = assume_role_arn or build_role_arn(partition, account_id, assume_role_name)
        role_account_id = role_arn.split(":")[4]

        client_manager = self.client_manager
        if solution_id:
            client_manager = client_manager.with_solution_id(solution_id)
        sts_client = client_manager.get_client("sts", region)
        identity = await self.retrier.call(lambda: sts_client.get_caller_identity())
        if identity.get("Account") == role_account_id:
            logger.info(f"Already running in account {role_account_id}, no role assumption needed")
            return None

        logger.info(f"Assuming role {role_arn}")
        response = await self.retrier.call(
            lambda: sts_client.assume_role(
                RoleArn=role_arn,
                RoleSessionName=session_name or DEFAULT_SESSION_NAME,
            )
        )

        credentials = response.get("Credentials")
        if not credentials:
            raise ServiceContractError("Credentials not found from AssumeRole response")
        for field_name in REQUIRED_CREDENTIAL_FIELDS:
            if not credentials.get(field_name):
                raise ServiceContractError(f"AssumeRole did not return {field_name}")

        return AssumeRoleCredentials(
            access_key_id=credentials["AccessKeyId"],
            secret_access_key=credentials["SecretAccessKey"],
            session_token=credentials["SessionToken"],
            expiration=credentials["Expiration"],
        )

    async def get_credentials_for_environments(
        self,
        environments: Iterable[Tuple[str, str]],
        batch_size: int,
        partition: str,
        assume_role_name: str,
        solution_id: Optional[str] = None,
    ) -> BatchResult:
        """Resolve credentials for many environments in bounded batches.

        Args:
            environments: ``(account_id, region)`` pairs
            batch_size: Maximum concurrent resolutions
            partition: AWS partition
            assume_role_name: Role name assumed in each account
            solution_id: Solution tag for the STS calls

        Returns:
            BatchResult keyed by ``(account_id, region)``; failures are recorded
        """

        async def resolve(environment: Tuple[str, str]) -> Optional[AssumeRoleCredentials]:
            account_id, region = environment
            return await self.get_credentials(
                account_id,
                region,
                solution_id=solution_id,
                partition=partition,
                assume_role_name=assume_role_name,
            )

        return await process_in_batches(environments, resolve, batch_size)
