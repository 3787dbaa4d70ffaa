"""Reads the current landing zone from AWS Control Tower.

State is fetched fresh on every call and never cached.
"""

import logging
from typing import Any, Dict, Optional

from botocore.exceptions import ClientError

from ..core.aws_client import AWSClientManager
from ..core.exceptions import InvalidInputError, ServiceContractError, error_code
from ..core.throttle import BackoffRetrier
from .models import BucketRetention, ObservedState

logger = logging.getLogger(__name__)


def _bucket_retention(block: Dict[str, Any]) -> BucketRetention:
    configurations = block.get("configurations") or {}
    return BucketRetention(
        logging_bucket_retention_days=(configurations.get("loggingBucket") or {}).get("retentionDays"),
        access_logging_bucket_retention_days=(configurations.get("accessLoggingBucket") or {}).get("retentionDays"),
        kms_key_arn=configurations.get("kmsKeyArn"),
        enabled=block.get("enabled"),
    )


def parse_landing_zone(landing_zone: Dict[str, Any], identifier: str) -> ObservedState:
    """Parse a GetLandingZone ``landingZone`` block.

    Args:
        landing_zone: Landing zone block of the response
        identifier: Landing zone ARN

    Returns:
        ObservedState
    """
    manifest = landing_zone.get("manifest") or {}
    governed_regions = manifest.get("governedRegions")
    organization_structure = manifest.get("organizationStructure") or {}
    config_block = manifest.get("config")

    return ObservedState(
        landing_zone_identifier=landing_zone.get("arn") or identifier,
        status=landing_zone.get("status"),
        version=landing_zone.get("version"),
        latest_available_version=landing_zone.get("latestAvailableVersion"),
        drift_status=(landing_zone.get("driftStatus") or {}).get("status"),
        governed_regions=tuple(governed_regions) if governed_regions is not None else None,
        enable_identity_center_access=(manifest.get("accessManagement") or {}).get("enabled"),
        centralized_logging=_bucket_retention(manifest.get("centralizedLogging") or {}),
        config_hub=_bucket_retention(config_block) if config_block else None,
        security_ou_name=(organization_structure.get("security") or {}).get("name"),
        sandbox_ou_name=(organization_structure.get("sandbox") or {}).get("name"),
        manifest=manifest,
    )


class LandingZoneStateReader:
    """Fetches the observed landing zone."""

    def __init__(self, client_manager: AWSClientManager, retrier: BackoffRetrier, region: str) -> None:
        """Initialize state reader.

        Args:
            client_manager: AWS client manager for the management account
            retrier: Backoff retrier wrapping every call
            region: Home region of the landing zone
        """
        self.client_manager = client_manager
        self.retrier = retrier
        self.region = region
        self._client = None

    def _get_client(self):
        """Get Control Tower client with caching."""
        if self._client is None:
            self._client = self.client_manager.get_client("controltower", self.region)
        return self._client

    async def get_landing_zone_identifier(self) -> Optional[str]:
        """Get the ARN of the landing zone, if one exists.

        Returns:
            Landing zone ARN or None

        Raises:
            ServiceContractError: When more than one landing zone is listed
        """
        client = self._get_client()
        response = await self.retrier.call(lambda: client.list_landing_zones())
        landing_zones = response.get("landingZones") or []

        if len(landing_zones) > 1:
            arns = [landing_zone.get("arn") for landing_zone in landing_zones]
            raise ServiceContractError(
                f"Multiple AWS Control Tower Landing Zone configuration found, list of Landing Zone arns are - {arns}"
            )
        if not landing_zones:
            return None
        return landing_zones[0].get("arn")

    async def get_landing_zone_details(self, identifier: Optional[str]) -> Optional[ObservedState]:
        """Get details of a landing zone.

        Args:
            identifier: Landing zone ARN, or None

        Returns:
            ObservedState, or None when identifier is None

        Raises:
            InvalidInputError: When the landing zone lives in another home region
            ServiceContractError: When the response has no landing zone block
        """
        if not identifier:
            return None

        client = self._get_client()
        try:
            response = await self.retrier.call(
                lambda: client.get_landing_zone(landingZoneIdentifier=identifier)
            )
        except ClientError as e:
            if error_code(e) == "ResourceNotFoundException":
                raise InvalidInputError(
                    "Existing AWS Control Tower Landing Zone home region differs from the executing environment "
                    f"region {self.region}. Existing Landing Zone identifier is {identifier}"
                )
            raise

        landing_zone = response.get("landingZone")
        if not landing_zone:
            raise ServiceContractError(
                f"GetLandingZone did not return landingZone details for {identifier}"
            )
        return parse_landing_zone(landing_zone, identifier)

    async def read(self) -> Optional[ObservedState]:
        """Read the current landing zone.

        Returns:
            ObservedState, or None when no landing zone exists
        """
        identifier = await self.get_landing_zone_identifier()
        state = await self.get_landing_zone_details(identifier)
        if state is None:
            logger.info("No existing AWS Control Tower landing zone found")
        else:
            logger.info(
                f"Found landing zone {state.landing_zone_identifier} with status {state.status}, "
                f"version {state.version}, drift status {state.drift_status}"
            )
        return state
