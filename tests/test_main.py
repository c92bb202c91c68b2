# tests/test_main.py
# Tests for the command line entry point

import json
from unittest.mock import patch

import pytest

from mftagent_runner.__main__ import load_config, main, parse_args, parse_bool
from mftagent_runner.command_runner import ToolchainNotFoundError
from mftagent_runner.config import ConfigurationError


@pytest.fixture
def config_file(config_data, tmp_path):
    path = tmp_path / "agentconfig.json"
    path.write_text(json.dumps(config_data))
    return path


class TestParseBool:
    """Tests for parse_bool()."""

    @pytest.mark.parametrize("value", ["1", "t", "T", "TRUE", "true", "True"])
    def test_true(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", [None, "0", "false", "False", "yes", ""])
    def test_false(self, value):
        assert parse_bool(value) is False


class TestLoadConfig:
    """Tests for load_config()."""

    def test_from_arguments(self, config_file):
        config = load_config(parse_args([str(config_file), "true"]))

        assert config.agent.name == "SRC"
        assert config.start_only is True

    def test_from_environment(self, config_file, monkeypatch):
        """Should fall back to AGENT_CONFIG_FILE and START_ONLY."""
        monkeypatch.setenv("AGENT_CONFIG_FILE", str(config_file))
        monkeypatch.setenv("START_ONLY", "TRUE")

        config = load_config(parse_args([]))

        assert config.start_only is True

    def test_no_config(self, monkeypatch):
        monkeypatch.delenv("AGENT_CONFIG_FILE", raising=False)

        with pytest.raises(ConfigurationError, match="No agent configuration file"):
            load_config(parse_args([]))


class TestMain:
    """Tests for main()."""

    def test_invalid_config_runs_nothing(self, config_data, tmp_path):
        """Should exit before any command when a required field is missing."""
        del config_data["agent"]["credentialsFile"]
        path = tmp_path / "agentconfig.json"
        path.write_text(json.dumps(config_data))

        with patch("mftagent_runner.__main__.run_supervisor") as mock_run:
            assert main([str(path)]) == 1

        mock_run.assert_not_called()

    def test_runs_supervisor(self, config_file, monkeypatch):
        monkeypatch.delenv("START_ONLY", raising=False)

        with patch("mftagent_runner.__main__.run_supervisor", return_value=0) as mock_run:
            assert main([str(config_file)]) == 0

        config = mock_run.call_args[0][0]
        assert config.start_only is False

    def test_missing_toolchain(self, config_file):
        with patch(
            "mftagent_runner.__main__.run_supervisor",
            side_effect=ToolchainNotFoundError("fteStartAgent"),
        ):
            assert main([str(config_file)]) == 1
