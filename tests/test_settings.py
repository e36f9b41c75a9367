"""Tests for agentrelay.config.settings module."""

import logging
from pathlib import Path

import pytest

from agentrelay.config.platforms import AgentPlatform, parse_agent_platform
from agentrelay.config.settings import CONFIG_FILE, Settings, load_settings
from agentrelay.utils.env_utils import expand_env_vars, is_sensitive_key, redact_env
from agentrelay.utils.errors import ConfigError, ExitCode


class TestSettings:
    def test_default_values(self):
        settings = Settings()

        assert settings.default_model == ""
        assert settings.default_backend == ""
        assert settings.cursor_wsl_distribution == ""
        assert settings.probe_timeout_seconds == 10.0
        assert settings.version_timeout_seconds == 5.0
        assert settings.debug_raw_output is False

    def test_get_attribute_for_key(self):
        settings = Settings()

        assert settings.get_attribute_for_key("DEFAULT_MODEL") == "default_model"
        assert settings.get_attribute_for_key("CURSOR_WSL_DISTRIBUTION") == "cursor_wsl_distribution"
        assert settings.get_attribute_for_key("UNKNOWN_KEY") is None

    def test_get_config_keys(self):
        keys = Settings.get_config_keys()

        assert "DEFAULT_MODEL" in keys
        assert "DEFAULT_BACKEND" in keys
        assert "PROBE_TIMEOUT_SECONDS" in keys
        assert "DEBUG_RAW_OUTPUT" in keys

    def test_config_file_default_path(self):
        assert isinstance(CONFIG_FILE, Path)


class TestLoadSettings:
    def test_loads_values(self, temp_config_file):
        settings = load_settings(temp_config_file)

        assert settings.default_model == "cursor-auto"
        assert settings.default_backend == "cursor"
        assert settings.cursor_wsl_distribution == "Ubuntu-22.04"
        assert settings.probe_timeout_seconds == 3.0
        assert settings.version_timeout_seconds == 2.5
        assert settings.debug_raw_output is True

    def test_empty_file(self, empty_config_file):
        assert load_settings(empty_config_file) == Settings()

    def test_missing_file(self, tmp_path):
        assert load_settings(tmp_path / "nope") == Settings()

    def test_comments_and_junk_lines(self, tmp_path):
        config_file = tmp_path / "config"
        config_file.write_text("# comment\n\nnot a pair\nDEFAULT_MODEL='sonnet'\n")
        assert load_settings(config_file).default_model == "sonnet"

    def test_unknown_key_is_ignored(self, tmp_path, caplog):
        config_file = tmp_path / "config"
        config_file.write_text('PLANNING_MODEL="opus"\nDEFAULT_MODEL="opus"\n')
        with caplog.at_level(logging.WARNING, logger="agentrelay.config.settings"):
            settings = load_settings(config_file)
        assert settings.default_model == "opus"
        assert any("unknown config key" in r.message for r in caplog.records)

    @pytest.mark.parametrize(
        "line",
        ["PROBE_TIMEOUT_SECONDS=soon", "PROBE_TIMEOUT_SECONDS=0", "PROBE_TIMEOUT_SECONDS=-4"],
    )
    def test_bad_timeout_keeps_default(self, tmp_path, line):
        config_file = tmp_path / "config"
        config_file.write_text(line + "\n")
        assert load_settings(config_file).probe_timeout_seconds == 10.0

    def test_bad_boolean_keeps_default(self, tmp_path):
        config_file = tmp_path / "config"
        config_file.write_text("DEBUG_RAW_OUTPUT=maybe\n")
        assert load_settings(config_file).debug_raw_output is False

    def test_environment_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MY_DISTRO", "Debian")
        config_file = tmp_path / "config"
        config_file.write_text('CURSOR_WSL_DISTRIBUTION="${MY_DISTRO}"\n')
        assert load_settings(config_file).cursor_wsl_distribution == "Debian"

    def test_missing_variable_left_literal(self, tmp_path, monkeypatch):
        monkeypatch.delenv("AGENTRELAY_TEST_UNSET", raising=False)
        config_file = tmp_path / "config"
        config_file.write_text('DEFAULT_MODEL="${AGENTRELAY_TEST_UNSET}"\n')
        assert load_settings(config_file).default_model == "${AGENTRELAY_TEST_UNSET}"


class TestDefaultBackend:
    def test_configured(self):
        assert Settings(default_backend="Cursor").get_default_backend() is AgentPlatform.CURSOR

    def test_not_configured(self):
        assert Settings().get_default_backend() is None

    def test_unknown_backend(self):
        with pytest.raises(ConfigError) as exc_info:
            Settings(default_backend="gemini").get_default_backend()
        assert "DEFAULT_BACKEND" in str(exc_info.value)
        assert exc_info.value.exit_code == ExitCode.CONFIG_ERROR

    def test_parse_with_default(self):
        assert parse_agent_platform("  ", default=AgentPlatform.CLAUDE) is AgentPlatform.CLAUDE


class TestEnvUtils:
    def test_sensitive_keys(self):
        assert is_sensitive_key("GITHUB_TOKEN") is True
        assert is_sensitive_key("cursor_api_key") is True
        assert is_sensitive_key("DEFAULT_MODEL") is False

    def test_redact_env(self):
        env = {"OPENAI_API_KEY": "sk-123", "NODE_ENV": "production"}
        assert redact_env(env) == {"OPENAI_API_KEY": "***", "NODE_ENV": "production"}
        assert env["OPENAI_API_KEY"] == "sk-123"

    def test_nested_expansion(self, monkeypatch):
        monkeypatch.setenv("HOST", "example.org")
        value = {"servers": [{"url": "https://${HOST}/mcp"}]}
        assert expand_env_vars(value) == {"servers": [{"url": "https://example.org/mcp"}]}
