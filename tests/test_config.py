"""Unit tests for configuration management."""

import os
import tempfile
from unittest.mock import patch

import pytest
import yaml

from landing_zone_automation.core.config import (
    DEFAULT_SDK_MAX_ATTEMPTS,
    Configuration,
    ConfigurationError,
)
from landing_zone_automation.core.exceptions import InvalidInputError

from conftest import LANDING_ZONE_CONFIG


def write_config(data):
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        if isinstance(data, str):
            f.write(data)
        else:
            yaml.dump(data, f)
        return f.name


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for variable in ("AWS_REGION", "AWS_PARTITION", "ACCELERATOR_SDK_MAX_ATTEMPTS"):
        monkeypatch.delenv(variable, raising=False)


def valid_config():
    return {
        "aws": {"home_region": "us-east-1", "partition": "aws"},
        "landing_zone": yaml.safe_load(yaml.dump(LANDING_ZONE_CONFIG)),
    }


class TestConfiguration:
    """Test cases for Configuration class."""

    def test_load_valid_config(self):
        """Test loading valid configuration."""
        config_path = write_config(valid_config())

        try:
            config = Configuration(config_path)
            assert config.get_home_region() == "us-east-1"
            assert config.get_partition() == "aws"
            assert config.get_global_region() == "us-east-1"
            assert config.get_max_attempts() == DEFAULT_SDK_MAX_ATTEMPTS
            assert config.get("landing_zone.version") == "3.3"
        finally:
            os.unlink(config_path)

    def test_landing_zone_configuration(self):
        """Test the landing zone section becomes a typed value."""
        config_path = write_config(valid_config())

        try:
            desired = Configuration(config_path).get_landing_zone_configuration()
            assert desired.governed_regions == ("us-east-1", "us-west-2")
            assert desired.audit.email == "audit@example.com"
        finally:
            os.unlink(config_path)

    def test_invalid_landing_zone_field(self):
        """Test field errors surface when the landing zone section is read."""
        data = valid_config()
        del data["landing_zone"]["version"]
        config_path = write_config(data)

        try:
            config = Configuration(config_path)
            with pytest.raises(InvalidInputError, match="landing_zone.version"):
                config.get_landing_zone_configuration()
        finally:
            os.unlink(config_path)

    def test_config_file_not_found(self):
        """Test error when config file not found."""
        with pytest.raises(ConfigurationError, match="Configuration file not found"):
            Configuration("nonexistent.yaml")

    def test_invalid_yaml(self):
        """Test error with invalid YAML."""
        config_path = write_config("aws: [unclosed\n")

        try:
            with pytest.raises(ConfigurationError, match="Invalid YAML"):
                Configuration(config_path)
        finally:
            os.unlink(config_path)

    def test_missing_section(self):
        """Test error with missing required section."""
        data = valid_config()
        del data["landing_zone"]
        config_path = write_config(data)

        try:
            with pytest.raises(ConfigurationError, match="landing_zone"):
                Configuration(config_path)
        finally:
            os.unlink(config_path)

    def test_missing_home_region(self):
        """Test error with missing home region."""
        data = valid_config()
        data["aws"]["home_region"] = ""
        config_path = write_config(data)

        try:
            with pytest.raises(ConfigurationError, match="aws.home_region"):
                Configuration(config_path)
        finally:
            os.unlink(config_path)

    def test_invalid_max_attempts(self):
        """Test error with non-positive retry ceiling."""
        data = valid_config()
        data["sdk"] = {"max_attempts": 0}
        config_path = write_config(data)

        try:
            with pytest.raises(ConfigurationError, match="sdk.max_attempts"):
                Configuration(config_path)
        finally:
            os.unlink(config_path)

    def test_environment_overrides(self):
        """Test environment variable overrides."""
        config_path = write_config(valid_config())

        try:
            with patch.dict(
                os.environ,
                {
                    "AWS_REGION": "us-gov-west-1",
                    "AWS_PARTITION": "aws-us-gov",
                    "ACCELERATOR_SDK_MAX_ATTEMPTS": "5",
                },
            ):
                config = Configuration(config_path)

            assert config.get_home_region() == "us-gov-west-1"
            assert config.get_partition() == "aws-us-gov"
            assert config.get_global_region() == "us-gov-west-1"
            assert config.get_max_attempts() == 5
        finally:
            os.unlink(config_path)

    def test_explicit_global_region(self):
        """Test an explicit global region wins over the partition default."""
        data = valid_config()
        data["aws"]["global_region"] = "us-west-2"
        config_path = write_config(data)

        try:
            assert Configuration(config_path).get_global_region() == "us-west-2"
        finally:
            os.unlink(config_path)

    def test_get_with_default(self):
        """Test dot-notation lookup with default."""
        config_path = write_config(valid_config())

        try:
            config = Configuration(config_path)
            assert config.get("nonexistent.key", "default") == "default"
            assert config.get("landing_zone.logging.retention.logging_bucket") == 365
        finally:
            os.unlink(config_path)
