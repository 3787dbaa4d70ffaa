"""Tests for the command line entry point."""

import pytest
from unittest.mock import AsyncMock, patch

from landing_zone_automation import cli
from landing_zone_automation.core.config import ConfigurationError
from landing_zone_automation.core.exceptions import ConflictError


class TestParseArguments:
    """Test argument parsing."""

    def test_setup_arguments(self):
        args = cli.parse_arguments(["setup", "config.yaml", "--dry-run", "--use-existing-role"])

        assert args.command == "setup"
        assert args.config_file == "config.yaml"
        assert args.dry_run is True
        assert args.use_existing_role is True
        assert args.solution_id == cli.SOLUTION_ID

    def test_register_ou_requires_arn(self):
        with pytest.raises(SystemExit):
            cli.parse_arguments(["register-ou", "config.yaml"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.parse_arguments([])


class TestMain:
    """Test main exit codes."""

    @patch("landing_zone_automation.cli.Configuration")
    @patch("landing_zone_automation.cli.run", new_callable=AsyncMock)
    def test_success(self, mock_run, mock_config, capsys):
        mock_run.return_value = "The Landing Zone deployed successfully."

        assert cli.main(["setup", "config.yaml"]) == 0
        assert "✅ The Landing Zone deployed successfully." in capsys.readouterr().out
        mock_config.assert_called_once_with("config.yaml")

    @patch("landing_zone_automation.cli.Configuration")
    @patch("landing_zone_automation.cli.run", new_callable=AsyncMock)
    def test_module_error(self, mock_run, mock_config, capsys):
        mock_run.side_effect = ConflictError()

        assert cli.main(["setup", "config.yaml"]) == 1
        assert "ConflictException" in capsys.readouterr().out

    @patch("landing_zone_automation.cli.Configuration")
    def test_configuration_error(self, mock_config, capsys):
        mock_config.side_effect = ConfigurationError("Configuration file not found: config.yaml")

        assert cli.main(["setup"]) == 1
        assert "Configuration error" in capsys.readouterr().out

    @patch("landing_zone_automation.cli.Configuration")
    @patch("landing_zone_automation.cli.run", new_callable=AsyncMock)
    def test_keyboard_interrupt(self, mock_run, mock_config):
        mock_run.side_effect = KeyboardInterrupt()

        assert cli.main(["setup", "config.yaml"]) == 130
