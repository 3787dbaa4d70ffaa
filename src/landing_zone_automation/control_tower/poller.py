"""Submit-then-poll driver for long-running provider operations.

An operation is submitted once, then polled until it succeeds, fails or
exhausts the poller's attempt limit.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ..core.exceptions import (
    OperationFailedError,
    OperationTimeoutError,
    ServiceContractError,
)
from .models import OperationRecord, OperationStatus

logger = logging.getLogger(__name__)

LANDING_ZONE_POLL_INTERVAL_SECONDS = 5 * 60
BASELINE_POLL_INTERVAL_SECONDS = 2 * 60
BASELINE_MAX_POLL_ATTEMPTS = 30

RUNNING_STATUSES = (OperationStatus.PENDING.value, OperationStatus.IN_PROGRESS.value)


class AsyncOperationPoller:
    """Drives one submitted operation to a terminal status."""

    def __init__(
        self,
        poll_interval_seconds: float,
        max_attempts: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the poller.

        Args:
            poll_interval_seconds: Delay between polls
            max_attempts: Maximum number of polls, unbounded when None
            sleep: Awaitable sleep used between polls
        """
        self.poll_interval_seconds = poll_interval_seconds
        self.max_attempts = max_attempts
        self._sleep = sleep

    async def run(
        self,
        submit: Callable[[], Awaitable[Optional[str]]],
        poll: Callable[[str], Awaitable[Optional[str]]],
        description: str = "operation",
    ) -> OperationRecord:
        """Submit an operation and poll it to completion.

        Args:
            submit: Coroutine function returning the operation identifier
            poll: Coroutine function returning the status of an identifier
            description: Operation name used in messages

        Returns:
            OperationRecord in SUCCEEDED state

        Raises:
            ServiceContractError: When submit yields no identifier or a poll yields no status
            OperationFailedError: When the operation reaches FAILED
            OperationTimeoutError: When the attempt limit is exhausted
        """
        identifier = await submit()
        if not identifier:
            logger.warning(f"Submitting {description} did not return an operation identifier")
            raise ServiceContractError(f"Submitting {description} did not return an operation identifier")

        record = OperationRecord(identifier=identifier)
        logger.info(
            f"The {description} has started asynchronously (ID: {identifier}). "
            "The process will continue running independent of this session."
        )
        return await self.wait(record, poll, description)

    async def wait(
        self,
        record: OperationRecord,
        poll: Callable[[str], Awaitable[Optional[str]]],
        description: str = "operation",
    ) -> OperationRecord:
        """Poll an already submitted operation to completion.

        Args:
            record: Submitted operation
            poll: Coroutine function returning the status of an identifier
            description: Operation name used in messages

        Returns:
            The record in SUCCEEDED state
        """
        attempts = 0
        while True:
            status = await poll(record.identifier)
            attempts += 1
            if not status:
                logger.warning(f"Polling {description} {record.identifier} did not return a status")
                raise ServiceContractError(
                    f"Polling {description} with identifier {record.identifier} did not return a status"
                )

            if status == OperationStatus.SUCCEEDED.value:
                record.status = OperationStatus.SUCCEEDED
                return record

            if status == OperationStatus.FAILED.value:
                record.status = OperationStatus.FAILED
                logger.warning(f"The {description} with identifier {record.identifier} failed")
                raise OperationFailedError(record.identifier, status, description)

            if status not in RUNNING_STATUSES:
                raise ServiceContractError(
                    f"Polling {description} with identifier {record.identifier} returned unknown status {status}"
                )

            record.status = OperationStatus(status)
            if self.max_attempts is not None and attempts >= self.max_attempts:
                elapsed_minutes = self.max_attempts * self.poll_interval_seconds / 60
                raise OperationTimeoutError(record.identifier, elapsed_minutes, description)

            logger.info(
                f"The {description} with identifier {record.identifier} is currently in {status} state. "
                f"After {self.poll_interval_seconds / 60:g} minutes delay, the status will be rechecked."
            )
            await self._sleep(self.poll_interval_seconds)
