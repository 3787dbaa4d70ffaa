"""AWS Control Tower landing zone operations.

Submits create, update and reset operations and drives them to
completion through the asynchronous operation poller.
"""

import logging
from typing import Any, Dict, Optional

from ..core.aws_client import AWSClientManager
from ..core.exceptions import ServiceContractError
from ..core.throttle import BackoffRetrier
from .poller import LANDING_ZONE_POLL_INTERVAL_SECONDS, AsyncOperationPoller

logger = logging.getLogger(__name__)

CREATE_SUCCESS_MESSAGE = "The Landing Zone deployed successfully."
UPDATE_SUCCESS_MESSAGE = "The Landing Zone update operation completed successfully."
RESET_SUCCESS_MESSAGE = "The Landing Zone reset operation completed successfully."


class LandingZoneDeployer:
    """Submits landing zone operations and waits for them."""

    def __init__(
        self,
        client_manager: AWSClientManager,
        retrier: BackoffRetrier,
        region: str,
        poller: Optional[AsyncOperationPoller] = None,
    ) -> None:
        """Initialize deployer.

        Args:
            client_manager: AWS client manager for the management account
            retrier: Backoff retrier wrapping every call
            region: Home region of the landing zone
            poller: Operation poller, defaults to 5 minute unbounded polling
        """
        self.client_manager = client_manager
        self.retrier = retrier
        self.region = region
        self.poller = poller or AsyncOperationPoller(LANDING_ZONE_POLL_INTERVAL_SECONDS)
        self._client = None

    def _get_client(self):
        """Get Control Tower client with caching."""
        if self._client is None:
            self._client = self.client_manager.get_client("controltower", self.region)
        return self._client

    async def get_operation_status(self, operation_identifier: str) -> Optional[str]:
        """Get the status of a landing zone operation.

        Args:
            operation_identifier: Operation identifier

        Returns:
            Operation status string, or None when the response omits it
        """
        client = self._get_client()
        response = await self.retrier.call(
            lambda: client.get_landing_zone_operation(operationIdentifier=operation_identifier)
        )
        return (response.get("operationDetails") or {}).get("status")

    async def _submit(self, request, operation_name: str) -> str:
        response = await self.retrier.call(request)
        operation_identifier = response.get("operationIdentifier")
        if not operation_identifier:
            logger.warning(f"{operation_name} did not return operationIdentifier")
            raise ServiceContractError(f"{operation_name} did not return operationIdentifier")
        return operation_identifier

    async def create_landing_zone(self, version: str, manifest: Dict[str, Any]) -> str:
        """Create the landing zone.

        Args:
            version: Landing zone version
            manifest: Manifest document

        Returns:
            Success message
        """
        client = self._get_client()
        logger.info("The Landing Zone deployment operation will begin")

        async def submit() -> str:
            return await self._submit(
                lambda: client.create_landing_zone(version=version, manifest=manifest),
                "CreateLandingZone",
            )

        await self.poller.run(submit, self.get_operation_status, "AWS Control Tower Landing Zone deployment operation")
        return CREATE_SUCCESS_MESSAGE

    async def update_landing_zone(
        self, landing_zone_identifier: str, version: str, manifest: Dict[str, Any], reason: str
    ) -> str:
        """Update the landing zone.

        Args:
            landing_zone_identifier: Landing zone ARN
            version: Landing zone version
            manifest: Manifest document
            reason: Why the update is needed

        Returns:
            Success message
        """
        client = self._get_client()
        logger.info(f'The Landing Zone update operation will begin, because "{reason}"')

        async def submit() -> str:
            return await self._submit(
                lambda: client.update_landing_zone(
                    landingZoneIdentifier=landing_zone_identifier,
                    version=version,
                    manifest=manifest,
                ),
                "UpdateLandingZone",
            )

        await self.poller.run(submit, self.get_operation_status, "AWS Control Tower Landing Zone update operation")
        return UPDATE_SUCCESS_MESSAGE

    async def reset_landing_zone(self, landing_zone_identifier: str, reason: str) -> str:
        """Reset the landing zone.

        Args:
            landing_zone_identifier: Landing zone ARN
            reason: Why the reset is needed

        Returns:
            Success message
        """
        client = self._get_client()
        logger.info(f'The Landing Zone reset operation will begin, because "{reason}"')

        async def submit() -> str:
            return await self._submit(
                lambda: client.reset_landing_zone(landingZoneIdentifier=landing_zone_identifier),
                "ResetLandingZone",
            )

        await self.poller.run(submit, self.get_operation_status, "AWS Control Tower Landing Zone reset operation")
        return RESET_SUCCESS_MESSAGE
