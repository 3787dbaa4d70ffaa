"""AWS Control Tower landing zone manifest generation.

Manifests come in two schema generations. The legacy generation carries
an ``organizationStructure`` block; the current one carries
``securityRoles`` and ``backup`` instead. Prior manifests are migrated
to the current generation one transition at a time before being merged.
"""

import copy
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from ..core.exceptions import InvalidInputError
from .models import DesiredConfiguration, KmsKeyArns, OperationKind


class ManifestGeneration(Enum):
    """Recognized manifest schema generations, oldest first."""

    LEGACY = 1
    CURRENT = 2


def detect_generation(manifest: Dict[str, Any]) -> ManifestGeneration:
    """Detect the schema generation of a manifest.

    Args:
        manifest: Manifest document

    Returns:
        ManifestGeneration of the document
    """
    if "organizationStructure" in manifest:
        return ManifestGeneration.LEGACY
    return ManifestGeneration.CURRENT


def _legacy_to_current(manifest: Dict[str, Any]) -> Dict[str, Any]:
    migrated = {key: value for key, value in manifest.items() if key != "organizationStructure"}
    security_roles = dict(migrated.get("securityRoles") or {})
    security_roles.setdefault("enabled", True)
    migrated["securityRoles"] = security_roles
    return migrated


MIGRATIONS: Dict[ManifestGeneration, Tuple[ManifestGeneration, Callable[[Dict[str, Any]], Dict[str, Any]]]] = {
    ManifestGeneration.LEGACY: (ManifestGeneration.CURRENT, _legacy_to_current),
}


def migrate_manifest(manifest: Dict[str, Any]) -> Dict[str, Any]:
    """Bring a manifest to the current schema generation.

    The input is never mutated.

    Args:
        manifest: Manifest of any recognized generation

    Returns:
        Deep copy of the manifest in the current generation
    """
    migrated = copy.deepcopy(manifest)
    generation = detect_generation(migrated)
    while generation is not ManifestGeneration.CURRENT:
        generation, migrate = MIGRATIONS[generation]
        migrated = migrate(migrated)
    return migrated


def _bucket_configuration(desired: DesiredConfiguration, kms_key_arn: Optional[str]) -> Dict[str, Any]:
    configurations: Dict[str, Any] = {
        "loggingBucket": {"retentionDays": desired.logging.logging_bucket_retention_days},
        "accessLoggingBucket": {"retentionDays": desired.logging.access_logging_bucket_retention_days},
    }
    if kms_key_arn:
        configurations["kmsKeyArn"] = kms_key_arn
    return configurations


def build_manifest(
    desired: DesiredConfiguration,
    event: OperationKind,
    key_arns: KmsKeyArns,
    log_archive_account_id: str,
    audit_account_id: str,
    prior_manifest: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the manifest submitted with a create or update operation.

    The result never contains ``organizationStructure``. ``backup`` and
    ``securityRoles.enabled`` are carried forward from the prior manifest;
    other top-level blocks of the prior manifest are kept on update.

    Args:
        desired: Validated landing zone configuration
        event: OperationKind.CREATE or OperationKind.UPDATE
        key_arns: Customer-managed key ARNs
        log_archive_account_id: Log archive account id
        audit_account_id: Audit account id
        prior_manifest: Manifest currently deployed, if any

    Returns:
        Manifest document

    Raises:
        InvalidInputError: When event is not CREATE or UPDATE
    """
    if event not in (OperationKind.CREATE, OperationKind.UPDATE):
        raise InvalidInputError(f"Manifest can only be built for CREATE or UPDATE, not {event}")

    prior = migrate_manifest(prior_manifest) if prior_manifest else {}
    manifest: Dict[str, Any] = dict(prior) if event is OperationKind.UPDATE else {}

    manifest["accessManagement"] = {"enabled": desired.enable_identity_center_access}
    manifest["governedRegions"] = list(desired.governed_regions)
    manifest["centralizedLogging"] = {
        "accountId": log_archive_account_id,
        "configurations": _bucket_configuration(desired, key_arns.centralized_logging_key_arn),
        "enabled": desired.logging.organization_trail,
    }
    manifest["config"] = {
        "accountId": audit_account_id,
        "configurations": _bucket_configuration(desired, key_arns.config_hub_key_arn),
        "enabled": True,
    }
    manifest["securityRoles"] = {
        "enabled": prior.get("securityRoles", {}).get("enabled", True),
        "accountId": audit_account_id,
    }

    if "backup" in prior:
        manifest["backup"] = prior["backup"]
    elif event is OperationKind.CREATE:
        manifest["backup"] = {"enabled": False}

    return manifest
