"""Ordered prerequisite setup before a landing zone is created.

Each step is fatal on failure and every step is safe to re-run.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from ..control_tower.models import DesiredConfiguration, KmsKeyArns
from ..control_tower.poller import AsyncOperationPoller
from ..core.aws_client import AWSClientManager
from ..core.throttle import BackoffRetrier
from .accounts import (
    ACCOUNT_CREATION_MAX_POLL_ATTEMPTS,
    ACCOUNT_CREATION_POLL_INTERVAL_SECONDS,
    AccountManager,
)
from .iam_roles import IAMRolesManager
from .kms_keys import KmsKeyManager
from .organizations import OrganizationsManager

logger = logging.getLogger(__name__)

ROLE_PROPAGATION_SECONDS = 5 * 60


@dataclass(frozen=True)
class PrerequisiteResources:
    """Identifiers produced by the prerequisite steps."""

    management_account_id: str
    log_archive_account_id: str
    audit_account_id: str
    key_arns: KmsKeyArns


class PrerequisiteOrchestrator:
    """Runs the prerequisite steps in order."""

    def __init__(
        self,
        aws_client: AWSClientManager,
        retrier: BackoffRetrier,
        region: str,
        global_region: str,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize prerequisite orchestrator.

        Args:
            aws_client: AWS client manager for the management account
            retrier: Backoff retrier wrapping every call
            region: Home region of the landing zone
            global_region: Region hosting global service endpoints
            sleep: Awaitable sleep used while roles propagate and accounts are created
        """
        self.organizations = OrganizationsManager(aws_client, retrier, global_region)
        self.iam_roles = IAMRolesManager(aws_client, retrier, region)
        self.accounts = AccountManager(
            aws_client,
            retrier,
            self.organizations,
            AsyncOperationPoller(
                ACCOUNT_CREATION_POLL_INTERVAL_SECONDS, ACCOUNT_CREATION_MAX_POLL_ATTEMPTS, sleep=sleep
            ),
        )
        self.kms_keys = KmsKeyManager(aws_client, retrier, region)
        self.region = region
        self._sleep = sleep

    async def complete_prerequisites(
        self,
        desired: DesiredConfiguration,
        partition: str,
        use_existing_role: bool = False,
    ) -> PrerequisiteResources:
        """Prepare the environment for a landing zone creation.

        Args:
            desired: Validated landing zone configuration
            partition: AWS partition
            use_existing_role: Skip creating the Control Tower roles

        Returns:
            PrerequisiteResources for the manifest builder
        """
        logger.info("Validating AWS Organizations")
        await self.organizations.validate_organization(
            self.region, partition, (desired.log_archive.email, desired.audit.email)
        )

        management_account_id = await self.organizations.get_account_id_by_email(desired.management.email)
        logger.info(f"Management account ID is {management_account_id}")

        if use_existing_role:
            logger.info("Using existing AWS Control Tower roles")
        else:
            await self.iam_roles.create_control_tower_roles(partition)
            logger.info(
                f"Created AWS Control Tower roles, sleeping for {ROLE_PROPAGATION_SECONDS // 60} minutes "
                "for role creations to complete."
            )
            await self._sleep(ROLE_PROPAGATION_SECONDS)

        # GovCloud accounts are created in pairs with commercial accounts, never from here.
        if partition == "aws-us-gov":
            logger.info("Skipping shared account creation for aws-us-gov")
        else:
            await self.accounts.create_shared_accounts(desired.log_archive, desired.audit)

        log_archive_account_id = await self.organizations.get_account_id_by_email(desired.log_archive.email)
        audit_account_id = await self.organizations.get_account_id_by_email(desired.audit.email)

        key_arns = await self.kms_keys.create_control_tower_keys(partition, management_account_id)

        return PrerequisiteResources(
            management_account_id=management_account_id,
            log_archive_account_id=log_archive_account_id,
            audit_account_id=audit_account_id,
            key_arns=key_arns,
        )
