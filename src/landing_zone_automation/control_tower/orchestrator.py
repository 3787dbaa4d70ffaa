"""Setup landing zone handler.

Composes state reading, reconciliation, prerequisites, manifest building
and operation polling into the create, update and reset workflows.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

from ..core.aws_client import AssumeRoleCredentials, AWSClientManager
from ..core.config import DEFAULT_SDK_MAX_ATTEMPTS
from ..core.credentials import get_global_region
from ..core.exceptions import ConflictError
from ..core.throttle import BackoffRetrier
from ..prerequisites.organizations import OrganizationsManager
from ..prerequisites.orchestrator import PrerequisiteOrchestrator
from .deployer import LandingZoneDeployer
from .manifest import build_manifest
from .models import (
    DesiredConfiguration,
    KmsKeyArns,
    LandingZoneStatus,
    ObservedState,
    OperationKind,
)
from .poller import LANDING_ZONE_POLL_INTERVAL_SECONDS, AsyncOperationPoller
from .reconciler import evaluate, validate_landing_zone_version
from .state_reader import LandingZoneStateReader

logger = logging.getLogger(__name__)

MODULE_NAME = "setup-landing-zone"


@dataclass
class SetupLandingZoneRequest:
    """Parameters of one setup landing zone invocation."""

    operation: str
    partition: str
    region: str
    configuration: Union[DesiredConfiguration, Dict[str, Any]]
    global_region: Optional[str] = None
    credentials: Optional[AssumeRoleCredentials] = None
    dry_run: bool = False
    use_existing_role: bool = False
    solution_id: Optional[str] = None
    max_attempts: int = DEFAULT_SDK_MAX_ATTEMPTS


def _prefixed(message: str) -> str:
    return f'Module "{MODULE_NAME}" {message}'


def dry_run_response(module_name: str, operation: str, status: str) -> str:
    """Format the result of a dry run."""
    return (
        f'[DRY-RUN]: "{module_name}" "{operation}" operation validated successfully '
        f"(no actual changes were made). Status: {status}"
    )


class SetupLandingZoneModule:
    """Creates, updates or resets the landing zone to match configuration."""

    def __init__(
        self,
        client_manager: Optional[AWSClientManager] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the handler.

        Args:
            client_manager: Client manager to use instead of one built from the request
            sleep: Awaitable sleep shared by retries, polling and role propagation
        """
        self._client_manager = client_manager
        self._sleep = sleep

    def _build_client_manager(self, request: SetupLandingZoneRequest) -> AWSClientManager:
        if self._client_manager is not None:
            return self._client_manager.with_credentials(request.credentials, request.region)
        return AWSClientManager(
            region_name=request.region,
            credentials=request.credentials,
            solution_id=request.solution_id,
        )

    async def handler(self, request: SetupLandingZoneRequest) -> str:
        """Run one setup landing zone invocation.

        Args:
            request: Invocation parameters

        Returns:
            Human readable status message

        Raises:
            InvalidInputError: When configuration or versions are invalid
            ConflictError: When the landing zone is already being changed
            OperationFailedError: When the provider operation fails
        """
        desired = request.configuration
        if not isinstance(desired, DesiredConfiguration):
            desired = DesiredConfiguration.from_dict(desired)

        global_region = request.global_region or get_global_region(request.partition)
        desired = desired.with_region(global_region)

        client_manager = self._build_client_manager(request)
        retrier = BackoffRetrier(request.max_attempts, sleep=self._sleep)
        reader = LandingZoneStateReader(client_manager, retrier, request.region)

        observed = await reader.read()

        if request.dry_run:
            return self._dry_run_preview(request, desired, observed)

        deployer = LandingZoneDeployer(
            client_manager,
            retrier,
            request.region,
            AsyncOperationPoller(LANDING_ZONE_POLL_INTERVAL_SECONDS, sleep=self._sleep),
        )

        if observed is None:
            return await self._create(request, desired, client_manager, retrier, global_region, deployer)

        if observed.status == LandingZoneStatus.PROCESSING.value:
            logger.warning(f"Landing zone {observed.landing_zone_identifier} is in PROCESSING state")
            raise ConflictError()

        decision = evaluate(desired, observed)
        if not decision.update_required and not decision.reset_required:
            logger.info(decision.reason)
            return _prefixed(f"completed successfully with status {decision.reason}")

        validate_landing_zone_version(
            desired.version,
            observed.latest_available_version,
            decision.reason,
            decision.operation_type,
        )

        if decision.reset_required:
            message = await deployer.reset_landing_zone(observed.landing_zone_identifier, decision.reason)
            return _prefixed(message)

        log_archive_account_id, audit_account_id = await self._shared_account_ids(
            desired, client_manager, retrier, global_region
        )
        key_arns = KmsKeyArns(
            centralized_logging_key_arn=observed.centralized_logging.kms_key_arn,
            config_hub_key_arn=observed.config_hub.kms_key_arn if observed.config_hub else None,
        )
        manifest = build_manifest(
            desired,
            OperationKind.UPDATE,
            key_arns,
            log_archive_account_id,
            audit_account_id,
            prior_manifest=observed.manifest,
        )
        message = await deployer.update_landing_zone(
            observed.landing_zone_identifier, decision.target_version, manifest, decision.reason
        )
        return _prefixed(message)

    async def _create(
        self,
        request: SetupLandingZoneRequest,
        desired: DesiredConfiguration,
        client_manager: AWSClientManager,
        retrier: BackoffRetrier,
        global_region: str,
        deployer: LandingZoneDeployer,
    ) -> str:
        prerequisites = PrerequisiteOrchestrator(
            client_manager, retrier, request.region, global_region, sleep=self._sleep
        )
        resources = await prerequisites.complete_prerequisites(
            desired, request.partition, request.use_existing_role
        )
        manifest = build_manifest(
            desired,
            OperationKind.CREATE,
            resources.key_arns,
            resources.log_archive_account_id,
            resources.audit_account_id,
        )
        message = await deployer.create_landing_zone(desired.version, manifest)
        return _prefixed(message)

    async def _shared_account_ids(
        self,
        desired: DesiredConfiguration,
        client_manager: AWSClientManager,
        retrier: BackoffRetrier,
        global_region: str,
    ) -> Tuple[str, str]:
        organizations = OrganizationsManager(client_manager, retrier, global_region)
        log_archive_account_id = await organizations.get_account_id_by_email(desired.log_archive.email)
        audit_account_id = await organizations.get_account_id_by_email(desired.audit.email)
        return log_archive_account_id, audit_account_id

    def _dry_run_preview(
        self,
        request: SetupLandingZoneRequest,
        desired: DesiredConfiguration,
        observed: Optional[ObservedState],
    ) -> str:
        if observed is None:
            status = "No existing AWS Control Tower landing zone found, it will be created"
        else:
            decision = evaluate(desired, observed)
            if decision.operation_type is None:
                status = "Existing AWS Control Tower landing zone found, no changes required"
            else:
                status = (
                    f"Existing AWS Control Tower landing zone found, {decision.operation_type} is required "
                    f"for following changes: {decision.reason}"
                )
            if observed.status == LandingZoneStatus.PROCESSING.value:
                status += ". Landing zone is PROCESSING, another execution is in progress"

        logger.info(f"[DRY-RUN] {status}")
        return dry_run_response(MODULE_NAME, request.operation, status)
