"""Transient error classification and throttling backoff.

Provider calls are wrapped in ``BackoffRetrier.call`` so throttling and
other transient failures are retried with a linearly growing delay.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Union

from .exceptions import InvalidInputError, error_code

logger = logging.getLogger(__name__)


class ThrottlingCode(str, Enum):
    """Error identifiers recognized as transient."""

    THROTTLING = "ThrottlingException"
    TOO_MANY_REQUESTS = "TooManyRequestsException"
    CONCURRENT_MODIFICATION = "ConcurrentModificationException"
    INTERNAL_ERROR = "InternalErrorException"
    CONNECTION_RESET = "ECONNRESET"


THROTTLING_CODES = frozenset(code.value for code in ThrottlingCode)


def is_throttling_error(error: BaseException) -> bool:
    """Classify a caught failure as throttling-like.

    Args:
        error: Caught exception

    Returns:
        True when the failure should be retried
    """
    if getattr(error, "retryable", None) is True:
        return True

    if isinstance(error, ConnectionResetError):
        return True

    candidates = [error_code(error)]
    for attribute in ("code", "name"):
        value = getattr(error, attribute, None)
        if isinstance(value, str):
            candidates.append(value)

    return any(candidate in THROTTLING_CODES for candidate in candidates)


def retry_delay_seconds(attempt: int) -> float:
    """Delay before the retry following a 0-based ``attempt``."""
    return (100 + attempt * 1000) / 1000


Request = Callable[[], Union[Any, Awaitable[Any]]]


class BackoffRetrier:
    """Retries transient failures of a zero-argument operation.

    Blocking callables (boto3 client calls) run in the event loop's
    default executor so each provider call is a suspension point.
    Coroutine functions are awaited directly.
    """

    def __init__(
        self,
        max_attempts: int,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the retrier.

        Args:
            max_attempts: Total number of invocations allowed per call
            sleep: Awaitable sleep used between attempts

        Raises:
            InvalidInputError: When max_attempts is below 1
        """
        if not isinstance(max_attempts, int) or max_attempts < 1:
            raise InvalidInputError(f"Retry max attempts must be a positive integer, got {max_attempts!r}")
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def _invoke(self, request: Request) -> Any:
        if inspect.iscoroutinefunction(request):
            return await request()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, request)

    async def call(self, request: Request) -> Any:
        """Invoke ``request``, retrying throttling failures.

        Args:
            request: Zero-argument callable performing one provider call

        Returns:
            Whatever ``request`` returns

        Raises:
            Exception: The last failure, unchanged, once it is not retryable
                or the attempt ceiling is reached
        """
        attempt = 0
        while True:
            try:
                return await self._invoke(request)
            except Exception as e:
                if not is_throttling_error(e) or attempt + 1 >= self.max_attempts:
                    raise
                delay = retry_delay_seconds(attempt)
                logger.warning(
                    f"Transient failure on attempt {attempt + 1}/{self.max_attempts}, "
                    f"retrying in {delay:.1f}s: {e}"
                )
                await self._sleep(delay)
                attempt += 1
