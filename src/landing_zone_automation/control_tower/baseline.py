"""Organizational unit registration with AWS Control Tower.

An OU is registered by enabling the AWSControlTowerBaseline on it. The
baseline version depends on the landing zone version.
"""

import logging
from typing import Any, Dict, List, Optional

from ..core.aws_client import AWSClientManager
from ..core.exceptions import InvalidInputError, ServiceContractError
from ..core.throttle import BackoffRetrier
from .orchestrator import dry_run_response
from .poller import BASELINE_MAX_POLL_ATTEMPTS, BASELINE_POLL_INTERVAL_SECONDS, AsyncOperationPoller
from .state_reader import LandingZoneStateReader

logger = logging.getLogger(__name__)

MODULE_NAME = "register-organizational-unit"
CONTROL_TOWER_BASELINE = "AWSControlTowerBaseline"
IDENTITY_CENTER_BASELINE = "IdentityCenterBaseline"

BASELINE_VERSIONS = (
    (("2.0", "2.1", "2.2", "2.3", "2.4", "2.5", "2.6", "2.7"), "1.0"),
    (("2.8", "2.9"), "2.0"),
    (("3.0", "3.1"), "3.0"),
)
LATEST_BASELINE_VERSION = "4.0"


def get_baseline_version(landing_zone_version: str) -> str:
    """Map a landing zone version to its AWSControlTowerBaseline version."""
    for landing_zone_versions, baseline_version in BASELINE_VERSIONS:
        if landing_zone_version in landing_zone_versions:
            return baseline_version
    return LATEST_BASELINE_VERSION


def get_ou_id(ou_arn: str) -> str:
    return ou_arn.split("/")[-1]


class BaselineRegistrar:
    """Registers organizational units with AWS Control Tower."""

    def __init__(
        self,
        client_manager: AWSClientManager,
        retrier: BackoffRetrier,
        region: str,
        poller: Optional[AsyncOperationPoller] = None,
    ) -> None:
        """Initialize baseline registrar.

        Args:
            client_manager: AWS client manager for the management account
            retrier: Backoff retrier wrapping every call
            region: Home region of the landing zone
            poller: Poller for baseline operations, defaults to 30 polls every 2 minutes
        """
        self.client_manager = client_manager
        self.retrier = retrier
        self.region = region
        self.poller = poller or AsyncOperationPoller(BASELINE_POLL_INTERVAL_SECONDS, BASELINE_MAX_POLL_ATTEMPTS)
        self.state_reader = LandingZoneStateReader(client_manager, retrier, region)
        self._client = None

    def _get_client(self):
        """Get Control Tower client with caching."""
        if self._client is None:
            self._client = self.client_manager.get_client("controltower", self.region)
        return self._client

    async def _paginate(self, operation: str, result_key: str) -> List[Dict[str, Any]]:
        client = self._get_client()

        def collect() -> List[Dict[str, Any]]:
            items: List[Dict[str, Any]] = []
            for page in client.get_paginator(operation).paginate():
                items.extend(page.get(result_key, []))
            return items

        return await self.retrier.call(collect)

    async def list_baselines(self) -> List[Dict[str, Any]]:
        return await self._paginate("list_baselines", "baselines")

    async def list_enabled_baselines(self) -> List[Dict[str, Any]]:
        return await self._paginate("list_enabled_baselines", "enabledBaselines")

    async def get_baseline_operation_status(self, operation_identifier: str) -> Optional[str]:
        """Get the status of a baseline operation.

        Args:
            operation_identifier: Operation identifier

        Returns:
            Status string, or None when the response omits it
        """
        client = self._get_client()
        response = await self.retrier.call(
            lambda: client.get_baseline_operation(operationIdentifier=operation_identifier)
        )
        return (response.get("baselineOperation") or {}).get("status")

    @staticmethod
    def _find_by_name(baselines: List[Dict[str, Any]], name: str) -> Optional[Dict[str, Any]]:
        for baseline in baselines:
            if (baseline.get("name") or "").lower() == name.lower():
                return baseline
        return None

    async def _enable_baseline(
        self, ou_arn: str, baseline_arn: str, baseline_version: str, parameters: List[Dict[str, Any]]
    ) -> str:
        client = self._get_client()
        ou_id = get_ou_id(ou_arn)
        logger.info(f'Registering AWS Organizations organizational unit (OU) "{ou_id}" with AWS Control Tower.')

        async def submit() -> Optional[str]:
            response = await self.retrier.call(
                lambda: client.enable_baseline(
                    baselineIdentifier=baseline_arn,
                    baselineVersion=baseline_version,
                    targetIdentifier=ou_arn,
                    parameters=parameters,
                )
            )
            return response.get("operationIdentifier")

        await self.poller.run(
            submit,
            self.get_baseline_operation_status,
            f'AWS Organizations organizational unit "{ou_id}" baseline operation',
        )
        message = (
            f'Registration of AWS Organizations organizational unit (OU) "{ou_id}" '
            "with AWS Control Tower is successful."
        )
        logger.info(message)
        return message

    async def register_organizational_unit(self, ou_arn: str, operation: str = "register", dry_run: bool = False) -> str:
        """Register an OU with AWS Control Tower.

        Args:
            ou_arn: ARN of the organizational unit
            operation: Operation name reported in dry-run output
            dry_run: Describe the action without enabling any baseline

        Returns:
            Status message

        Raises:
            InvalidInputError: When no landing zone exists
            ServiceContractError: When a required baseline is missing
        """
        ou_id = get_ou_id(ou_arn)
        identifier = await self.state_reader.get_landing_zone_identifier()
        if not identifier:
            if dry_run:
                return dry_run_response(
                    MODULE_NAME,
                    operation,
                    "Will experience error because the environment does not have AWS Control Tower Landing Zone.",
                )
            raise InvalidInputError(f'AWS Control Tower Landing Zone not found in the region "{self.region}".')

        landing_zone = await self.state_reader.get_landing_zone_details(identifier)
        enabled_baselines = await self.list_enabled_baselines()
        available_baselines = await self.list_baselines()

        control_tower_baseline = self._find_by_name(available_baselines, CONTROL_TOWER_BASELINE)
        if not control_tower_baseline or not control_tower_baseline.get("arn"):
            raise ServiceContractError(
                f"{CONTROL_TOWER_BASELINE} identifier not found in available Control Tower baselines "
                "returned by ListBaselines api."
            )

        identity_center_enabled_arn = None
        identity_center_baseline = self._find_by_name(available_baselines, IDENTITY_CENTER_BASELINE)
        if identity_center_baseline:
            for enabled in enabled_baselines:
                if enabled.get("baselineIdentifier") == identity_center_baseline.get("arn"):
                    identity_center_enabled_arn = enabled.get("arn")
                    break

        if landing_zone.enable_identity_center_access and not identity_center_enabled_arn:
            raise ServiceContractError(
                "AWS Control Tower Landing Zone is configured with IAM Identity Center, but "
                f"{IDENTITY_CENTER_BASELINE} not found in enabled baselines returned by ListEnabledBaselines api."
            )

        parameters = []
        if identity_center_enabled_arn:
            parameters.append({"key": "IdentityCenterEnabledBaselineArn", "value": identity_center_enabled_arn})

        baseline_version = get_baseline_version(landing_zone.version)
        registered = next(
            (
                enabled
                for enabled in enabled_baselines
                if (enabled.get("targetIdentifier") or "").lower() == ou_arn.lower()
            ),
            None,
        )

        if registered is None:
            if dry_run:
                return dry_run_response(
                    MODULE_NAME,
                    operation,
                    f'AWS Organizations organizational unit (OU) "{ou_id}" is not registered with AWS Control Tower, '
                    "it will be registered.",
                )
            return await self._enable_baseline(ou_arn, control_tower_baseline["arn"], baseline_version, parameters)

        status = (registered.get("statusSummary") or {}).get("status")
        existing_version = registered.get("baselineVersion")

        if status == "FAILED":
            message = (
                f'AWS Organizations organizational unit (OU) "{ou_id}" is already registered with AWS Control Tower, '
                f"registration status is {status}"
            )
            if dry_run:
                return dry_run_response(MODULE_NAME, operation, f"{message}, it will be registered again.")
            logger.warning(f"{message}, starting registration process.")
            return await self._enable_baseline(ou_arn, control_tower_baseline["arn"], baseline_version, parameters)

        if existing_version != baseline_version:
            message = (
                f'AWS Organizations organizational unit (OU) "{ou_id}" is already registered with AWS Control Tower, '
                f"but the baseline version is {existing_version} which is different from expected baseline version "
                f"{baseline_version} and registration status is {status}, update baseline is required for OU, "
                "perform update baseline from console."
            )
        else:
            message = (
                f'AWS Organizations organizational unit (OU) "{ou_id}" is already registered with AWS Control Tower, '
                f"registration status is {status} and baseline version is {existing_version}, operation skipped."
            )

        logger.warning(message)
        if dry_run:
            return dry_run_response(MODULE_NAME, operation, message)
        return message
