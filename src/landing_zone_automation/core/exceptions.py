"""Exception taxonomy shared by every landing zone module.

Errors carry a closed ``ModuleExceptionKind`` so the top-level handler
can tell input problems apart from provider contract violations.
"""

from enum import Enum
from typing import Optional

from botocore.exceptions import ClientError


class ModuleExceptionKind(str, Enum):
    """Kinds of fatal module errors."""

    INVALID_INPUT = "INVALID_INPUT"
    SERVICE_EXCEPTION = "SERVICE_EXCEPTION"


class LandingZoneError(Exception):
    """Base exception for landing zone automation."""

    kind: ModuleExceptionKind = ModuleExceptionKind.SERVICE_EXCEPTION

    def __init__(self, message: str) -> None:
        self.detail = message
        super().__init__(f"{self.kind.value}: {message}")


class InvalidInputError(LandingZoneError):
    """Raised when configuration or parameters are malformed or contradictory."""

    kind = ModuleExceptionKind.INVALID_INPUT


class ServiceContractError(LandingZoneError):
    """Raised when a provider response omits a field this system requires."""

    kind = ModuleExceptionKind.SERVICE_EXCEPTION


class OperationFailedError(LandingZoneError):
    """Raised when a polled provider operation reaches the FAILED state."""

    def __init__(self, operation_identifier: str, status: str, description: str = "AWS Control Tower operation") -> None:
        self.operation_identifier = operation_identifier
        self.status = status
        super().__init__(
            f'{description} with identifier "{operation_identifier}" in "{status}" state !!!!. '
            "Before continuing, proceed to the AWS console and evaluate the status."
        )


class OperationTimeoutError(LandingZoneError):
    """Raised when a polled operation is still running after its attempt limit."""

    def __init__(
        self, operation_identifier: str, elapsed_minutes: float, description: str = "AWS Control Tower operation"
    ) -> None:
        self.operation_identifier = operation_identifier
        self.elapsed_minutes = elapsed_minutes
        super().__init__(
            f'{description} with identifier "{operation_identifier}" '
            f"did not complete within {elapsed_minutes:g} minutes."
        )


class ConflictError(LandingZoneError):
    """Raised when the landing zone is already running another operation."""

    def __init__(self, operation: str = "update") -> None:
        super().__init__(
            f"The Landing Zone {operation} operation failed with error - ConflictException - "
            "AWS Control Tower cannot begin landing zone setup while another execution is in progress."
        )


class VersionMismatchError(InvalidInputError):
    """Raised when the configured version is not the latest available version."""


MISSING_RESOURCE_CODES = frozenset(
    {
        "NoSuchEntity",
        "NotFoundException",
        "NotFoundFault",
        "ResourceNotFoundException",
        "AccountNotFoundException",
        "OrganizationalUnitNotFoundException",
    }
)


def error_code(error: BaseException) -> Optional[str]:
    """Return the provider error code of a botocore ``ClientError``.

    Args:
        error: Caught exception

    Returns:
        Error code string or None when the error carries none
    """
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code")
    return None


def is_resource_missing(error: BaseException) -> bool:
    """Check whether a lookup failure means the resource does not exist.

    Args:
        error: Caught exception

    Returns:
        True when the failure should be read as a normal "not found" result
    """
    code = error_code(error)
    if code in MISSING_RESOURCE_CODES:
        return True
    if code in ("ValidationError", "ValidationException"):
        message = error.response.get("Error", {}).get("Message", "")
        return "does not exist" in message
    return False
