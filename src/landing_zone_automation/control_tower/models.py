"""Value types for landing zone reconciliation.

``DesiredConfiguration.from_dict`` is the single validation pass that
turns loosely typed configuration into a typed value; nothing downstream
reads raw configuration dictionaries.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..core.exceptions import InvalidInputError


class LandingZoneStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PROCESSING = "PROCESSING"
    FAILED = "FAILED"


class DriftStatus(str, Enum):
    IN_SYNC = "IN_SYNC"
    DRIFTED = "DRIFTED"


class OperationStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class OperationKind(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    RESET = "RESET"


@dataclass(frozen=True)
class SharedAccount:
    """Name and email of a shared account."""

    name: str
    email: str


@dataclass(frozen=True)
class LoggingSettings:
    """Centralized logging settings."""

    organization_trail: bool
    logging_bucket_retention_days: int
    access_logging_bucket_retention_days: int


def _require(data: Dict[str, Any], key: str, path: str) -> Any:
    if not isinstance(data, dict):
        raise InvalidInputError(f"Configuration field '{path}' must be a mapping")
    if key not in data or data[key] is None:
        raise InvalidInputError(f"Required configuration field '{path}.{key}' is missing")
    return data[key]


def _require_bool(data: Dict[str, Any], key: str, path: str) -> bool:
    value = _require(data, key, path)
    if not isinstance(value, bool):
        raise InvalidInputError(f"Configuration field '{path}.{key}' must be a boolean")
    return value


def _require_days(data: Dict[str, Any], key: str, path: str) -> int:
    value = _require(data, key, path)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidInputError(f"Configuration field '{path}.{key}' must be a positive integer")
    return value


def _require_str(data: Dict[str, Any], key: str, path: str) -> str:
    value = _require(data, key, path)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"Configuration field '{path}.{key}' must be a non-empty string")
    return value


def _shared_account(data: Dict[str, Any], key: str) -> SharedAccount:
    path = f"shared_accounts.{key}"
    account = _require(data, key, "shared_accounts")
    email = _require_str(account, "email", path)
    if "@" not in email:
        raise InvalidInputError(f"Configuration field '{path}.email' is not a valid email address")
    return SharedAccount(name=_require_str(account, "name", path), email=email)


@dataclass(frozen=True)
class DesiredConfiguration:
    """Declared target state of the landing zone."""

    version: str
    governed_regions: Tuple[str, ...]
    logging: LoggingSettings
    enable_identity_center_access: bool
    management: SharedAccount
    log_archive: SharedAccount
    audit: SharedAccount

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DesiredConfiguration":
        """Validate a raw landing zone configuration.

        Args:
            data: ``landing_zone`` section of the configuration

        Returns:
            Validated DesiredConfiguration

        Raises:
            InvalidInputError: On any missing or mis-typed field
        """
        if not isinstance(data, dict):
            raise InvalidInputError("Landing zone configuration must be a mapping")

        regions = _require(data, "governed_regions", "landing_zone")
        if not isinstance(regions, list) or not regions:
            raise InvalidInputError("Configuration field 'landing_zone.governed_regions' must be a non-empty list")
        if not all(isinstance(region, str) and region for region in regions):
            raise InvalidInputError("Configuration field 'landing_zone.governed_regions' must contain region names")

        logging_section = _require(data, "logging", "landing_zone")
        retention = _require(logging_section, "retention", "landing_zone.logging")
        security = _require(data, "security", "landing_zone")
        accounts = _require(data, "shared_accounts", "landing_zone")

        return cls(
            version=_require_str(data, "version", "landing_zone"),
            governed_regions=tuple(dict.fromkeys(regions)),
            logging=LoggingSettings(
                organization_trail=_require_bool(logging_section, "organization_trail", "landing_zone.logging"),
                logging_bucket_retention_days=_require_days(
                    retention, "logging_bucket", "landing_zone.logging.retention"
                ),
                access_logging_bucket_retention_days=_require_days(
                    retention, "access_logging_bucket", "landing_zone.logging.retention"
                ),
            ),
            enable_identity_center_access=_require_bool(
                security, "enable_identity_center_access", "landing_zone.security"
            ),
            management=_shared_account(accounts, "management"),
            log_archive=_shared_account(accounts, "logging"),
            audit=_shared_account(accounts, "audit"),
        )

    def with_region(self, region: str) -> "DesiredConfiguration":
        """Return a copy that also governs ``region``."""
        if region in self.governed_regions:
            return self
        return replace(self, governed_regions=self.governed_regions + (region,))

    @property
    def shared_account_emails(self) -> Tuple[str, str, str]:
        return (self.management.email, self.log_archive.email, self.audit.email)


@dataclass(frozen=True)
class BucketRetention:
    """Retention and encryption settings of one logging block."""

    logging_bucket_retention_days: Optional[int]
    access_logging_bucket_retention_days: Optional[int]
    kms_key_arn: Optional[str] = None
    enabled: Optional[bool] = None


@dataclass(frozen=True)
class ObservedState:
    """Landing zone as reported by the provider."""

    landing_zone_identifier: str
    status: Optional[str]
    version: Optional[str]
    latest_available_version: Optional[str]
    drift_status: Optional[str]
    governed_regions: Optional[Tuple[str, ...]]
    enable_identity_center_access: Optional[bool]
    centralized_logging: BucketRetention
    config_hub: Optional[BucketRetention] = None
    security_ou_name: Optional[str] = None
    sandbox_ou_name: Optional[str] = None
    manifest: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ReconciliationDecision:
    """Outcome of comparing desired configuration with observed state."""

    update_required: bool
    reset_required: bool
    target_version: Optional[str]
    reason: str

    @property
    def operation_type(self) -> Optional[str]:
        if self.reset_required:
            return "reset"
        if self.update_required:
            return "update"
        return None


@dataclass
class OperationRecord:
    """Submitted provider operation and its last polled status."""

    identifier: str
    status: OperationStatus = OperationStatus.PENDING


@dataclass(frozen=True)
class KmsKeyArns:
    """Customer-managed key ARNs used by the landing zone."""

    centralized_logging_key_arn: Optional[str]
    config_hub_key_arn: Optional[str]
