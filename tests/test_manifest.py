"""Tests for landing zone manifest generation."""

import copy

import pytest

from landing_zone_automation.control_tower.manifest import (
    ManifestGeneration,
    build_manifest,
    detect_generation,
    migrate_manifest,
)
from landing_zone_automation.control_tower.models import KmsKeyArns, OperationKind
from landing_zone_automation.core.exceptions import InvalidInputError

from conftest import landing_zone_manifest

KEY_ARNS = KmsKeyArns(
    centralized_logging_key_arn="arn:aws:kms:us-east-1:111111111111:key/logging",
    config_hub_key_arn="arn:aws:kms:us-east-1:111111111111:key/config",
)


def legacy_manifest():
    manifest = landing_zone_manifest()
    del manifest["securityRoles"]
    del manifest["backup"]
    manifest["organizationStructure"] = {"security": {"name": "Security"}, "sandbox": {"name": "Sandbox"}}
    return manifest


class TestManifestMigration:
    """Test manifest schema generations."""

    def test_detect_generation(self):
        assert detect_generation(legacy_manifest()) is ManifestGeneration.LEGACY
        assert detect_generation(landing_zone_manifest()) is ManifestGeneration.CURRENT

    def test_migrate_legacy_manifest(self):
        prior = legacy_manifest()
        snapshot = copy.deepcopy(prior)

        migrated = migrate_manifest(prior)

        assert "organizationStructure" not in migrated
        assert migrated["securityRoles"] == {"enabled": True}
        assert prior == snapshot

    def test_migrate_current_manifest_is_a_copy(self):
        prior = landing_zone_manifest()
        migrated = migrate_manifest(prior)

        assert migrated == prior
        migrated["centralizedLogging"]["enabled"] = False
        assert prior["centralizedLogging"]["enabled"] is True


class TestBuildManifest:
    """Test build_manifest."""

    def test_create_manifest(self, desired):
        manifest = build_manifest(desired, OperationKind.CREATE, KEY_ARNS, "222222222222", "333333333333")

        assert manifest["accessManagement"] == {"enabled": True}
        assert manifest["governedRegions"] == ["us-east-1", "us-west-2"]
        assert manifest["centralizedLogging"] == {
            "accountId": "222222222222",
            "configurations": {
                "loggingBucket": {"retentionDays": 365},
                "accessLoggingBucket": {"retentionDays": 3650},
                "kmsKeyArn": KEY_ARNS.centralized_logging_key_arn,
            },
            "enabled": True,
        }
        assert manifest["config"]["accountId"] == "333333333333"
        assert manifest["config"]["configurations"]["kmsKeyArn"] == KEY_ARNS.config_hub_key_arn
        assert manifest["config"]["enabled"] is True
        assert manifest["securityRoles"] == {"enabled": True, "accountId": "333333333333"}
        assert manifest["backup"] == {"enabled": False}
        assert "organizationStructure" not in manifest

    def test_key_arn_omitted_when_absent(self, desired):
        manifest = build_manifest(
            desired, OperationKind.CREATE, KmsKeyArns(None, None), "222222222222", "333333333333"
        )

        assert "kmsKeyArn" not in manifest["centralizedLogging"]["configurations"]
        assert "kmsKeyArn" not in manifest["config"]["configurations"]

    def test_update_carries_backup_and_security_roles(self, desired):
        prior = landing_zone_manifest(
            backup={"enabled": True, "configurations": {"backupAdmin": {"accountId": "444444444444"}}},
            securityRoles={"enabled": False, "accountId": "333333333333"},
        )

        manifest = build_manifest(
            desired, OperationKind.UPDATE, KEY_ARNS, "222222222222", "333333333333", prior_manifest=prior
        )

        assert manifest["backup"] == prior["backup"]
        assert manifest["securityRoles"] == {"enabled": False, "accountId": "333333333333"}

    def test_update_from_legacy_manifest(self, desired):
        manifest = build_manifest(
            desired, OperationKind.UPDATE, KEY_ARNS, "222222222222", "333333333333", prior_manifest=legacy_manifest()
        )

        assert "organizationStructure" not in manifest
        assert manifest["securityRoles"]["enabled"] is True
        assert "backup" not in manifest

    def test_update_keeps_unknown_prior_blocks(self, desired):
        prior = landing_zone_manifest(futureFeature={"enabled": True})

        manifest = build_manifest(
            desired, OperationKind.UPDATE, KEY_ARNS, "222222222222", "333333333333", prior_manifest=prior
        )

        assert manifest["futureFeature"] == {"enabled": True}

    def test_desired_values_override_prior(self, desired):
        prior = landing_zone_manifest(governedRegions=["eu-west-1"], accessManagement={"enabled": False})

        manifest = build_manifest(
            desired, OperationKind.UPDATE, KEY_ARNS, "222222222222", "333333333333", prior_manifest=prior
        )

        assert manifest["governedRegions"] == ["us-east-1", "us-west-2"]
        assert manifest["accessManagement"] == {"enabled": True}

    def test_reset_is_rejected(self, desired):
        with pytest.raises(InvalidInputError, match="CREATE or UPDATE"):
            build_manifest(desired, OperationKind.RESET, KEY_ARNS, "222222222222", "333333333333")
