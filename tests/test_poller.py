"""Unit tests for the asynchronous operation poller."""

import asyncio

import pytest
from unittest.mock import AsyncMock

from landing_zone_automation.control_tower.models import OperationStatus
from landing_zone_automation.control_tower.poller import AsyncOperationPoller
from landing_zone_automation.core.exceptions import (
    OperationFailedError,
    OperationTimeoutError,
    ServiceContractError,
)


@pytest.fixture
def sleep():
    return AsyncMock()


class TestAsyncOperationPoller:
    """Test cases for AsyncOperationPoller."""

    def test_succeeds_on_first_poll(self, sleep):
        poller = AsyncOperationPoller(300, sleep=sleep)
        submit = AsyncMock(return_value="op-1")
        poll = AsyncMock(return_value="SUCCEEDED")

        record = asyncio.run(poller.run(submit, poll))

        assert record.identifier == "op-1"
        assert record.status is OperationStatus.SUCCEEDED
        poll.assert_awaited_once_with("op-1")
        sleep.assert_not_awaited()

    def test_polls_until_succeeded(self, sleep):
        poller = AsyncOperationPoller(120, sleep=sleep)
        submit = AsyncMock(return_value="op-2")
        poll = AsyncMock(side_effect=["IN_PROGRESS", "PENDING", "SUCCEEDED"])

        record = asyncio.run(poller.run(submit, poll))

        assert record.status is OperationStatus.SUCCEEDED
        assert poll.await_count == 3
        assert sleep.await_count == 2
        sleep.assert_awaited_with(120)

    def test_missing_identifier(self, sleep):
        poller = AsyncOperationPoller(60, sleep=sleep)
        poll = AsyncMock()

        with pytest.raises(ServiceContractError, match="did not return an operation identifier"):
            asyncio.run(poller.run(AsyncMock(return_value=None), poll))

        poll.assert_not_awaited()

    def test_failed_operation(self, sleep):
        poller = AsyncOperationPoller(60, sleep=sleep)
        poll = AsyncMock(side_effect=["IN_PROGRESS", "FAILED"])

        with pytest.raises(OperationFailedError) as excinfo:
            asyncio.run(poller.run(AsyncMock(return_value="op-3"), poll, "Landing Zone operation"))

        assert excinfo.value.operation_identifier == "op-3"
        assert excinfo.value.status == "FAILED"
        assert "op-3" in str(excinfo.value)
        assert "AWS console" in str(excinfo.value)

    def test_missing_status_is_contract_violation(self, sleep):
        poller = AsyncOperationPoller(60, sleep=sleep)

        with pytest.raises(ServiceContractError, match="did not return a status"):
            asyncio.run(poller.run(AsyncMock(return_value="op-4"), AsyncMock(return_value=None)))

    def test_timeout_names_elapsed_minutes(self, sleep):
        poller = AsyncOperationPoller(120, max_attempts=30, sleep=sleep)
        poll = AsyncMock(return_value="IN_PROGRESS")

        with pytest.raises(OperationTimeoutError, match="60 minutes") as excinfo:
            asyncio.run(poller.run(AsyncMock(return_value="op-5"), poll))

        assert poll.await_count == 30
        assert sleep.await_count == 29
        assert excinfo.value.elapsed_minutes == 60

    def test_unknown_status(self, sleep):
        poller = AsyncOperationPoller(60, sleep=sleep)

        with pytest.raises(ServiceContractError, match="unknown status"):
            asyncio.run(poller.run(AsyncMock(return_value="op-6"), AsyncMock(return_value="EXPLODED")))
