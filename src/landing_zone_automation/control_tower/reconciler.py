"""Landing zone reconciliation decisions.

Compares the declared configuration with the observed landing zone and
decides whether an update, a reset or nothing is required.
"""

import json
import logging
from typing import Any, Iterable, List, Optional

from ..core.exceptions import VersionMismatchError
from .models import (
    DesiredConfiguration,
    DriftStatus,
    LandingZoneStatus,
    ObservedState,
    ReconciliationDecision,
)

logger = logging.getLogger(__name__)

RESET_REASON = "The Landing Zone has drifted or failed, resetting"
NO_CHANGES_REASON = "There were no changes found to update or reset the Landing Zone."


def _format(value: Any) -> str:
    return json.dumps(value) if isinstance(value, bool) or value is None else str(value)


def governed_regions_changed(existing: Iterable[str], configured: Iterable[str]) -> bool:
    """Compare two governed region lists, ignoring order.

    Args:
        existing: Regions governed by the landing zone
        configured: Regions in the configuration

    Returns:
        True when the region sets differ
    """
    return set(existing) != set(configured)


def requires_reset(observed: ObservedState) -> bool:
    """Check whether the landing zone has drifted or failed."""
    if observed.status == LandingZoneStatus.FAILED.value:
        return True
    return observed.drift_status is not None and observed.drift_status != DriftStatus.IN_SYNC.value


def evaluate(desired: DesiredConfiguration, observed: ObservedState) -> ReconciliationDecision:
    """Decide whether the landing zone needs an update or a reset.

    Drift or a FAILED status always wins over field differences. Field
    differences are reported in a fixed order, one sentence each.

    Args:
        desired: Validated landing zone configuration
        observed: Landing zone as reported by the provider

    Returns:
        ReconciliationDecision targeting the observed version
    """
    if requires_reset(observed):
        logger.info(f"Landing zone drift status {observed.drift_status}, status {observed.status}")
        return ReconciliationDecision(
            update_required=False,
            reset_required=True,
            target_version=observed.version,
            reason=RESET_REASON,
        )

    retention = desired.logging
    reasons: List[str] = []

    def compare(label: str, current: Any, wanted: Any) -> None:
        if current != wanted:
            reasons.append(f"Changes made in {label} from {_format(current)} to {_format(wanted)}")

    logging_block = observed.centralized_logging
    compare(
        "Centralized Logging AccessLoggingBucketRetentionDays",
        logging_block.access_logging_bucket_retention_days,
        retention.access_logging_bucket_retention_days,
    )
    compare(
        "Centralized Logging LoggingBucketRetentionDays",
        logging_block.logging_bucket_retention_days,
        retention.logging_bucket_retention_days,
    )

    # Legacy landing zones have no config hub block to compare.
    if observed.config_hub is not None:
        compare(
            "Config AccessLoggingBucketRetentionDays",
            observed.config_hub.access_logging_bucket_retention_days,
            retention.access_logging_bucket_retention_days,
        )
        compare(
            "Config LoggingBucketRetentionDays",
            observed.config_hub.logging_bucket_retention_days,
            retention.logging_bucket_retention_days,
        )

    compare(
        "EnableIdentityCenterAccess",
        observed.enable_identity_center_access,
        desired.enable_identity_center_access,
    )

    existing_regions = list(observed.governed_regions or [])
    if governed_regions_changed(existing_regions, desired.governed_regions):
        reasons.append(
            f"Changes made in governed regions from [{','.join(existing_regions)}] "
            f"to [{','.join(desired.governed_regions)}]"
        )

    if reasons:
        return ReconciliationDecision(
            update_required=True,
            reset_required=False,
            target_version=observed.version,
            reason=". ".join(reasons),
        )

    return ReconciliationDecision(
        update_required=False,
        reset_required=False,
        target_version=observed.version,
        reason=NO_CHANGES_REASON,
    )


def validate_landing_zone_version(
    configured_version: str,
    latest_version: Optional[str],
    reason: Optional[str] = None,
    operation_type: Optional[str] = None,
) -> None:
    """Ensure the configured version is the latest available version.

    Args:
        configured_version: Version in the configuration
        latest_version: Latest version the provider offers
        reason: Why the operation is needed, if known
        operation_type: 'update' or 'reset', if known

    Raises:
        VersionMismatchError: When the versions differ
    """
    if latest_version == configured_version:
        return

    if reason and operation_type:
        past_tense = "updated" if operation_type == "update" else operation_type
        raise VersionMismatchError(
            f'It is necessary to {operation_type} the AWS Control Tower Landing Zone because "{reason}". '
            f"AWS Control Tower Landing Zone's most recent version is {latest_version}, which is different "
            f"from the version {configured_version} provided. AWS Control Tower Landing Zone can be "
            f"{past_tense} when you specify the latest version in the configuration."
        )

    raise VersionMismatchError(
        f"AWS Control Tower Landing Zone's most recent version is {latest_version}, which is different "
        f"from the version {configured_version} provided, execution terminated."
    )
