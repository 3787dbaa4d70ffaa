"""Shared account creation for landing zone prerequisites.

Creates the log archive and audit accounts in the organization when
they do not exist yet.
"""

import asyncio
import logging
from typing import Dict, Optional

from botocore.exceptions import ClientError

from ..control_tower.models import SharedAccount
from ..control_tower.poller import AsyncOperationPoller
from ..core.aws_client import AWSClientManager
from ..core.exceptions import ServiceContractError, error_code
from ..core.throttle import BackoffRetrier
from .organizations import OrganizationsManager, PrerequisiteError

logger = logging.getLogger(__name__)

ACCOUNT_CREATION_POLL_INTERVAL_SECONDS = 60
ACCOUNT_CREATION_MAX_POLL_ATTEMPTS = 30


class AccountCreationError(PrerequisiteError):
    """Raised when a shared account cannot be created."""

    pass


class AccountManager:
    """Creates shared accounts in AWS Organizations."""

    def __init__(
        self,
        aws_client: AWSClientManager,
        retrier: BackoffRetrier,
        organizations: OrganizationsManager,
        poller: Optional[AsyncOperationPoller] = None,
    ) -> None:
        """Initialize account manager.

        Args:
            aws_client: AWS client manager for the management account
            retrier: Backoff retrier wrapping every call
            organizations: Organizations manager used for account lookups
            poller: Poller for account creation requests
        """
        self.aws_client = aws_client
        self.retrier = retrier
        self.organizations = organizations
        self.poller = poller or AsyncOperationPoller(
            ACCOUNT_CREATION_POLL_INTERVAL_SECONDS, ACCOUNT_CREATION_MAX_POLL_ATTEMPTS
        )
        self._org_client = None

    def _get_client(self):
        """Get Organizations client with caching."""
        if self._org_client is None:
            self._org_client = self.aws_client.get_client("organizations", self.organizations.global_region)
        return self._org_client

    async def get_account_status(self, request_id: str) -> Optional[str]:
        """Get the state of an account creation request.

        Args:
            request_id: Account creation request ID

        Returns:
            Request state, or None when the response omits it
        """
        client = self._get_client()
        response = await self.retrier.call(
            lambda: client.describe_create_account_status(CreateAccountRequestId=request_id)
        )
        status = response.get("CreateAccountStatus") or {}
        if status.get("State") == "FAILED":
            logger.warning(f"Account creation request {request_id} failed: {status.get('FailureReason', 'Unknown')}")
        return status.get("State")

    async def create_account(self, account: SharedAccount) -> str:
        """Create an account unless one already uses its email.

        Args:
            account: Shared account name and email

        Returns:
            Account ID

        Raises:
            AccountCreationError: When the request violates an organization constraint
        """
        existing_id = await self.organizations.find_account_by_email(account.email)
        if existing_id:
            logger.info(f'Account "{account.name}" already exists with ID {existing_id}, skipping creation')
            return existing_id

        client = self._get_client()
        logger.info(f'Creating account "{account.name}" with email {account.email}')

        async def submit() -> Optional[str]:
            try:
                response = await self.retrier.call(
                    lambda: client.create_account(AccountName=account.name, Email=account.email)
                )
            except ClientError as e:
                if error_code(e) == "ConstraintViolationException":
                    raise AccountCreationError(f'Account "{account.name}" creation constraint violation: {e}')
                raise
            return (response.get("CreateAccountStatus") or {}).get("Id")

        await self.poller.run(submit, self.get_account_status, f'Account "{account.name}" creation')

        account_id = await self.organizations.find_account_by_email(account.email)
        if not account_id:
            raise ServiceContractError(f'Account "{account.name}" was created but is not listed in the organization')
        logger.info(f'Account "{account.name}" created with ID {account_id}')
        return account_id

    async def create_shared_accounts(self, log_archive: SharedAccount, audit: SharedAccount) -> Dict[str, str]:
        """Create the log archive and audit accounts concurrently.

        Args:
            log_archive: Log archive account
            audit: Audit account

        Returns:
            Mapping of account email to account ID
        """
        log_archive_id, audit_id = await asyncio.gather(
            self.create_account(log_archive), self.create_account(audit)
        )
        return {log_archive.email: log_archive_id, audit.email: audit_id}
