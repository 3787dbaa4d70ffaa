"""AWS Organizations management for landing zone prerequisites.

This module validates that the organization can host a new landing
zone, looks up accounts and manages organizational units.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from botocore.exceptions import ClientError

from ..core.aws_client import AWSClientManager
from ..core.exceptions import InvalidInputError, ServiceContractError, error_code
from ..core.throttle import BackoffRetrier

logger = logging.getLogger(__name__)


class PrerequisiteError(InvalidInputError):
    """Raised when the environment cannot host a new landing zone."""

    pass


class OrganizationsManager:
    """Manages AWS Organizations lookups and changes.

    Every call goes through the backoff retrier and runs against the
    partition's global region.
    """

    def __init__(self, aws_client: AWSClientManager, retrier: BackoffRetrier, global_region: str) -> None:
        """Initialize Organizations manager.

        Args:
            aws_client: AWS client manager for the management account
            retrier: Backoff retrier wrapping every call
            global_region: Region hosting the Organizations endpoint
        """
        self.aws_client = aws_client
        self.retrier = retrier
        self.global_region = global_region
        self._org_client = None

    def _get_client(self):
        """Get Organizations client with caching.

        Returns:
            Configured Organizations client
        """
        if self._org_client is None:
            self._org_client = self.aws_client.get_client("organizations", self.global_region)
        return self._org_client

    async def _paginate(self, operation: str, result_key: str, **kwargs) -> List[Dict[str, Any]]:
        client = self._get_client()

        def collect() -> List[Dict[str, Any]]:
            items: List[Dict[str, Any]] = []
            paginator = client.get_paginator(operation)
            for page in paginator.paginate(**kwargs):
                items.extend(page.get(result_key, []))
            return items

        return await self.retrier.call(collect)

    async def get_organization_info(self) -> Optional[Dict[str, Any]]:
        """Get organization information.

        Returns:
            Organization details, or None when AWS Organizations is not in use
        """
        client = self._get_client()
        try:
            response = await self.retrier.call(lambda: client.describe_organization())
        except ClientError as e:
            if error_code(e) == "AWSOrganizationsNotInUseException":
                return None
            raise
        return response.get("Organization")

    async def get_root_id(self) -> str:
        """Get the organization root ID.

        Returns:
            Root ID

        Raises:
            ServiceContractError: When the organization does not report exactly one root
        """
        client = self._get_client()
        response = await self.retrier.call(lambda: client.list_roots())
        roots = response.get("Roots") or []
        if len(roots) != 1 or not roots[0].get("Id"):
            raise ServiceContractError(f"Expected exactly one organization root with an id, found {len(roots)}")
        return roots[0]["Id"]

    async def list_accounts(self) -> List[Dict[str, Any]]:
        """List every account in the organization."""
        return await self._paginate("list_accounts", "Accounts")

    async def find_account_by_email(self, email: str) -> Optional[str]:
        """Find account ID by email address.

        Args:
            email: Email address, matched case-insensitively

        Returns:
            Account ID if found, None otherwise
        """
        for account in await self.list_accounts():
            if account.get("Id") and account.get("Email", "").lower() == email.lower():
                return account["Id"]
        return None

    async def get_account_id_by_email(self, email: str) -> str:
        """Get account ID by email address.

        Raises:
            PrerequisiteError: When no account uses the email
        """
        account_id = await self.find_account_by_email(email)
        if account_id is None:
            raise PrerequisiteError(f"Account with email {email} not found")
        return account_id

    async def list_organizational_units(self, parent_id: str) -> List[Dict[str, Any]]:
        """List organizational units under a parent.

        Args:
            parent_id: ID of the parent (root or OU)

        Returns:
            List of organizational unit details
        """
        return await self._paginate(
            "list_organizational_units_for_parent", "OrganizationalUnits", ParentId=parent_id
        )

    async def list_enabled_services(self) -> List[str]:
        """List service principals with trusted access to the organization."""
        principals = await self._paginate(
            "list_aws_service_access_for_organization", "EnabledServicePrincipals"
        )
        return [principal["ServicePrincipal"] for principal in principals]

    async def create_organizational_unit(self, name: str, parent_id: Optional[str] = None) -> str:
        """Create an organizational unit unless it already exists.

        Args:
            name: Name of the organizational unit
            parent_id: ID of the parent, defaults to the root

        Returns:
            ID of the new or existing OU

        Raises:
            ServiceContractError: When creation returns no OU id
        """
        parent_id = parent_id or await self.get_root_id()
        for ou in await self.list_organizational_units(parent_id):
            if ou.get("Name") == name and ou.get("Id"):
                logger.info(f'Organizational unit "{name}" already exists with ID "{ou["Id"]}", skipping creation.')
                return ou["Id"]

        client = self._get_client()
        response = await self.retrier.call(
            lambda: client.create_organizational_unit(ParentId=parent_id, Name=name)
        )
        ou_id = (response.get("OrganizationalUnit") or {}).get("Id")
        if not ou_id:
            raise ServiceContractError(f'CreateOrganizationalUnit for "{name}" did not return an OU id')
        logger.info(f'Organizational unit "{name}" created with ID "{ou_id}"')
        return ou_id

    async def move_account(self, account_id: str, destination_id: str) -> bool:
        """Move an account under another parent.

        Args:
            account_id: Account to move
            destination_id: Destination OU or root ID

        Returns:
            True when the account moved, False when it was already in place

        Raises:
            ServiceContractError: When the account has no parent
        """
        client = self._get_client()
        response = await self.retrier.call(lambda: client.list_parents(ChildId=account_id))
        parents = response.get("Parents") or []
        if not parents:
            raise ServiceContractError(f"Account {account_id} does not have a parent")

        source_id = parents[0]["Id"]
        if source_id == destination_id:
            logger.info(f"Account {account_id} is already in {destination_id}, skipping move")
            return False

        await self.retrier.call(
            lambda: client.move_account(
                AccountId=account_id,
                SourceParentId=source_id,
                DestinationParentId=destination_id,
            )
        )
        logger.info(f"Account {account_id} moved from {source_id} to {destination_id}")
        return True

    async def enable_all_features(self) -> bool:
        """Enable all features in AWS Organizations.

        Returns:
            True when a change was requested, False when already enabled
        """
        organization = await self.get_organization_info() or {}
        if organization.get("FeatureSet") == "ALL":
            return False

        logger.warning(
            f"The existing AWS Organization {organization.get('Id')} does not have all features enabled. "
            "All features will be enabled."
        )
        client = self._get_client()
        await self.retrier.call(lambda: client.enable_all_features())
        return True

    async def _identity_center_instances(self, region: str) -> List[Dict[str, Any]]:
        client = self.aws_client.get_client("sso-admin", region)

        def collect() -> List[Dict[str, Any]]:
            instances: List[Dict[str, Any]] = []
            for page in client.get_paginator("list_instances").paginate():
                instances.extend(page.get("Instances", []))
            return instances

        return await self.retrier.call(collect)

    async def validate_organization(
        self, region: str, partition: str, shared_account_emails: Iterable[str]
    ) -> None:
        """Validate the organization can host a new landing zone.

        All issues are collected before failing. All features are enabled
        once validation passes.

        Args:
            region: Home region of the landing zone
            partition: AWS partition
            shared_account_emails: Log archive and audit account emails

        Raises:
            PrerequisiteError: Listing every issue found
        """
        issues: List[str] = []

        instances = await self._identity_center_instances(region)
        if instances:
            logger.warning(
                "IAM Identity Center is enabled: "
                + ",".join(instance.get("IdentityStoreId", "") for instance in instances)
            )
            issues.append("AWS Control Tower Landing Zone cannot deploy because IAM Identity Center is configured.")

        if await self.get_organization_info() is None:
            issues.append(
                "AWS Control Tower Landing Zone cannot deploy because AWS Organizations have not been "
                "configured for the environment."
            )
        else:
            services = await self.list_enabled_services()
            if services:
                logger.warning(f"AWS Organizations have services enabled: {','.join(services)}")
                issues.append(
                    "AWS Control Tower Landing Zone cannot deploy because AWS Organizations have services enabled."
                )

            ous = await self.list_organizational_units(await self.get_root_id())
            if ous:
                logger.warning(f"AWS Organizations have organizational units: {','.join(ou.get('Name', '') for ou in ous)}")
                issues.append(
                    "AWS Control Tower Landing Zone cannot deploy because there are multiple organizational "
                    "units in AWS Organizations."
                )

            issue = self._check_accounts(await self.list_accounts(), partition, shared_account_emails)
            if issue:
                issues.append(issue)

        if issues:
            raise PrerequisiteError(
                f"AWS Organization validation has {len(issues)} issue(s):\n" + "\n".join(issues)
            )

        await self.enable_all_features()

    @staticmethod
    def _check_accounts(
        accounts: List[Dict[str, Any]], partition: str, shared_account_emails: Iterable[str]
    ) -> Optional[str]:
        summary = ",".join(f"{account.get('Name')} -> {account.get('Email')}" for account in accounts)
        if partition == "aws-us-gov":
            emails = {account.get("Email", "").lower() for account in accounts}
            expected = {email.lower() for email in shared_account_emails}
            if len(accounts) == 3 and expected <= emails:
                return None
            logger.warning(f"Existing AWS Organizations accounts are: {summary}")
            return (
                "Either AWS Organizations does not have required shared accounts (LogArchive and Audit) "
                "or have other accounts."
            )

        if len(accounts) > 1:
            logger.warning(f"AWS Organizations have multiple accounts: {summary}")
            return "AWS Control Tower Landing Zone cannot deploy because there are multiple accounts in AWS Organizations."
        return None
