"""Tests for agentrelay.api module."""

from unittest.mock import patch

import pytest

from agentrelay import api
from agentrelay.config.settings import Settings
from agentrelay.providers.cursor import CursorProvider
from agentrelay.providers.errors import ProviderNotFoundError
from agentrelay.providers.types import ExecuteOptions, ResultMessage
from agentrelay.utils.errors import ExitCode


class TestDefaultRegistry:
    """Tests for get_registry / reset_registry."""

    def test_built_once_from_settings(self):
        settings = Settings(cursor_wsl_distribution="Ubuntu", probe_timeout_seconds=2.0)
        with patch("agentrelay.api.load_settings", return_value=settings) as mock_load:
            first = api.get_registry()
            second = api.get_registry()

        assert first is second
        mock_load.assert_called_once()
        assert first.names == ["claude", "cursor", "opencode", "codex"]

        cursor = first.get_provider_by_name("cursor")
        assert isinstance(cursor, CursorProvider)
        assert cursor.wsl_distribution == "Ubuntu"
        assert cursor.probe_timeout == 2.0

    def test_reset_rebuilds(self):
        with patch("agentrelay.api.load_settings", return_value=Settings()):
            first = api.get_registry()
            api.reset_registry()
            assert api.get_registry() is not first


class TestExecute:
    """Tests for api.execute."""

    def test_routes_to_resolved_provider(self, mock_registry):
        beta = mock_registry.get_provider_by_name("beta")
        beta.execute.return_value = iter([ResultMessage(result="ok")])
        options = ExecuteOptions(model="beta-1", prompt="hi")

        messages = list(api.execute(options, registry=mock_registry))

        beta.execute.assert_called_once_with(options)
        assert messages == [ResultMessage(result="ok")]

    def test_uses_default_registry(self, default_registry):
        alpha = default_registry.get_provider_by_name("alpha")
        alpha.execute.return_value = iter([])

        list(api.execute(ExecuteOptions(model="unknown-model", prompt="hi")))

        alpha.execute.assert_called_once()


class TestCheckInstallation:
    """Tests for api.check_installation."""

    def test_all_backends(self, mock_registry):
        statuses = api.check_installation(registry=mock_registry)
        assert list(statuses) == ["alpha", "beta"]
        assert statuses["beta"].installed is False

    def test_single_backend(self, mock_registry):
        status = api.check_installation("Alpha", registry=mock_registry)
        assert status.installed is True
        assert status.path == "/usr/bin/alpha"

    def test_unknown_backend(self, mock_registry):
        with pytest.raises(ProviderNotFoundError) as exc_info:
            api.check_installation("gemini", registry=mock_registry)
        assert "alpha, beta" in str(exc_info.value)
        assert exc_info.value.exit_code == ExitCode.CONFIG_ERROR


class TestModelHelpers:
    """Tests for list_models and resolve_backend_for_model."""

    def test_list_models(self, mock_registry):
        assert [m.id for m in api.list_models(registry=mock_registry)] == ["alpha-1", "beta-1"]

    def test_resolve_backend(self, default_registry):
        assert api.resolve_backend_for_model("b-anything") == "beta"
        assert api.resolve_backend_for_model("claude-opus") == "alpha"
