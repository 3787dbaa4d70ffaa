"""Tests for the prerequisite orchestrator."""

import asyncio

import pytest
from unittest.mock import AsyncMock, Mock

from landing_zone_automation.control_tower.models import KmsKeyArns
from landing_zone_automation.prerequisites.accounts import (
    ACCOUNT_CREATION_MAX_POLL_ATTEMPTS,
    ACCOUNT_CREATION_POLL_INTERVAL_SECONDS,
)
from landing_zone_automation.prerequisites.orchestrator import (
    ROLE_PROPAGATION_SECONDS,
    PrerequisiteOrchestrator,
)
from landing_zone_automation.prerequisites.organizations import PrerequisiteError

ACCOUNT_IDS = {
    "management@example.com": "111111111111",
    "log-archive@example.com": "222222222222",
    "audit@example.com": "333333333333",
}
KEY_ARNS = KmsKeyArns("arn:logging", "arn:config")


@pytest.fixture
def calls():
    return []


@pytest.fixture
def orchestrator(mock_aws_client, retrier, calls):
    sleep = AsyncMock(side_effect=lambda seconds: calls.append(("sleep", seconds)))
    orchestrator = PrerequisiteOrchestrator(mock_aws_client, retrier, "us-west-2", "us-east-1", sleep=sleep)

    def record(name, result=None):
        def step(*args, **kwargs):
            calls.append((name,) + args)
            return result

        return AsyncMock(side_effect=step)

    orchestrator.organizations.validate_organization = record("validate")
    orchestrator.organizations.get_account_id_by_email = AsyncMock(side_effect=lambda email: ACCOUNT_IDS[email])
    orchestrator.iam_roles.create_control_tower_roles = record("roles", ["AWSControlTowerAdmin"])
    orchestrator.accounts.create_shared_accounts = record("accounts", {})
    orchestrator.kms_keys.create_control_tower_keys = record("keys", KEY_ARNS)
    return orchestrator


class TestPrerequisiteOrchestrator:
    """Test PrerequisiteOrchestrator.complete_prerequisites."""

    def test_steps_run_in_order(self, orchestrator, desired, calls):
        resources = asyncio.run(orchestrator.complete_prerequisites(desired, "aws"))

        assert [call[0] for call in calls] == ["validate", "roles", "sleep", "accounts", "keys"]
        assert ("sleep", ROLE_PROPAGATION_SECONDS) in calls
        assert calls[0] == ("validate", "us-west-2", "aws", ("log-archive@example.com", "audit@example.com"))
        assert calls[-1] == ("keys", "aws", "111111111111")
        assert resources.management_account_id == "111111111111"
        assert resources.log_archive_account_id == "222222222222"
        assert resources.audit_account_id == "333333333333"
        assert resources.key_arns == KEY_ARNS

    def test_existing_roles(self, orchestrator, desired, calls):
        asyncio.run(orchestrator.complete_prerequisites(desired, "aws", use_existing_role=True))

        assert [call[0] for call in calls] == ["validate", "accounts", "keys"]

    def test_gov_cloud_skips_account_creation(self, orchestrator, desired, calls):
        asyncio.run(orchestrator.complete_prerequisites(desired, "aws-us-gov"))

        assert "accounts" not in [call[0] for call in calls]

    def test_validation_failure_stops_everything(self, orchestrator, desired, calls):
        orchestrator.organizations.validate_organization = AsyncMock(side_effect=PrerequisiteError("not ready"))

        with pytest.raises(PrerequisiteError):
            asyncio.run(orchestrator.complete_prerequisites(desired, "aws"))

        assert calls == []

    def test_managers_share_client_and_regions(self, mock_aws_client, retrier):
        orchestrator = PrerequisiteOrchestrator(mock_aws_client, retrier, "us-west-2", "us-east-1")

        assert orchestrator.organizations.global_region == "us-east-1"
        assert orchestrator.iam_roles.region == "us-west-2"
        assert orchestrator.kms_keys.region == "us-west-2"
        assert orchestrator.accounts.organizations is orchestrator.organizations

    def test_account_polling_uses_injected_sleep(self, mock_aws_client, retrier):
        sleep = AsyncMock()
        orchestrator = PrerequisiteOrchestrator(mock_aws_client, retrier, "us-west-2", "us-east-1", sleep=sleep)
        poller = orchestrator.accounts.poller
        statuses = iter(["IN_PROGRESS", "SUCCEEDED"])

        async def submit():
            return "car-12345"

        async def poll(identifier):
            return next(statuses)

        asyncio.run(poller.run(submit, poll, "account creation"))

        assert poller.poll_interval_seconds == ACCOUNT_CREATION_POLL_INTERVAL_SECONDS
        assert poller.max_attempts == ACCOUNT_CREATION_MAX_POLL_ATTEMPTS
        sleep.assert_awaited_once_with(ACCOUNT_CREATION_POLL_INTERVAL_SECONDS)
