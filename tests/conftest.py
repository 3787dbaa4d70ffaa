"""Shared fixtures for landing zone automation tests."""

import copy

import pytest
from unittest.mock import AsyncMock, Mock
from botocore.exceptions import ClientError

from landing_zone_automation.control_tower.models import DesiredConfiguration
from landing_zone_automation.core.aws_client import AWSClientManager
from landing_zone_automation.core.throttle import BackoffRetrier

LANDING_ZONE_ARN = "arn:aws:controltower:us-east-1:111111111111:landingzone/1A2B3C4D"

LANDING_ZONE_CONFIG = {
    "version": "3.3",
    "governed_regions": ["us-east-1", "us-west-2"],
    "logging": {
        "organization_trail": True,
        "retention": {"logging_bucket": 365, "access_logging_bucket": 3650},
    },
    "security": {"enable_identity_center_access": True},
    "shared_accounts": {
        "management": {"name": "Management", "email": "management@example.com"},
        "logging": {"name": "LogArchive", "email": "log-archive@example.com"},
        "audit": {"name": "Audit", "email": "audit@example.com"},
    },
}


def client_error(code, operation="Operation", message=None):
    return ClientError({"Error": {"Code": code, "Message": message or code}}, operation)


def landing_zone_manifest(**overrides):
    manifest = {
        "governedRegions": ["us-east-1", "us-west-2"],
        "accessManagement": {"enabled": True},
        "securityRoles": {"enabled": True, "accountId": "333333333333"},
        "backup": {"enabled": False},
        "centralizedLogging": {
            "accountId": "222222222222",
            "configurations": {
                "loggingBucket": {"retentionDays": 365},
                "accessLoggingBucket": {"retentionDays": 3650},
                "kmsKeyArn": "arn:aws:kms:us-east-1:111111111111:key/logging",
            },
            "enabled": True,
        },
        "config": {
            "accountId": "333333333333",
            "configurations": {
                "loggingBucket": {"retentionDays": 365},
                "accessLoggingBucket": {"retentionDays": 3650},
                "kmsKeyArn": "arn:aws:kms:us-east-1:111111111111:key/config",
            },
            "enabled": True,
        },
    }
    manifest.update(overrides)
    return manifest


def landing_zone_response(status="ACTIVE", drift="IN_SYNC", version="3.3", latest="3.3", manifest=None):
    return {
        "landingZone": {
            "arn": LANDING_ZONE_ARN,
            "status": status,
            "version": version,
            "latestAvailableVersion": latest,
            "driftStatus": {"status": drift},
            "manifest": manifest if manifest is not None else landing_zone_manifest(),
        }
    }


@pytest.fixture
def landing_zone_config():
    return copy.deepcopy(LANDING_ZONE_CONFIG)


@pytest.fixture
def desired(landing_zone_config):
    return DesiredConfiguration.from_dict(landing_zone_config)


@pytest.fixture
def retrier():
    """Retrier that never waits between attempts."""
    return BackoffRetrier(3, sleep=AsyncMock())


@pytest.fixture
def mock_aws_client():
    """Mock AWS client manager."""
    client = Mock(spec=AWSClientManager)
    client.get_current_region.return_value = "us-east-1"
    return client


def paginator_for(pages_by_operation):
    """Build a ``get_paginator`` side effect serving fixed pages per operation."""

    def get_paginator(operation):
        paginator = Mock()
        paginator.paginate.return_value = pages_by_operation.get(operation, [{}])
        return paginator

    return get_paginator
