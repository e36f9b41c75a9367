"""Shared pytest fixtures for agentrelay tests."""

from pathlib import Path

import pytest

from agentrelay import api
from agentrelay.providers.registry import ProviderRegistry, register_all_backends
from agentrelay.providers.types import ModelDefinition, ProviderRegistration
from tests.fakes import make_mock_provider


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Keep host credentials and logging settings out of every test."""
    for var in (
        "ANTHROPIC_API_KEY",
        "CURSOR_API_KEY",
        "OPENAI_API_KEY",
        "AGENTRELAY_DEBUG_RAW_OUTPUT",
    ):
        monkeypatch.delenv(var, raising=False)
    yield
    api.reset_registry()


@pytest.fixture
def temp_config_file(tmp_path: Path) -> Path:
    """Create a temporary config file with sample values."""
    config_file = tmp_path / ".agentrelay-config"
    config_file.write_text(
        """# agentrelay configuration
DEFAULT_MODEL="cursor-auto"
DEFAULT_BACKEND="cursor"
CURSOR_WSL_DISTRIBUTION="Ubuntu-22.04"
PROBE_TIMEOUT_SECONDS="3"
VERSION_TIMEOUT_SECONDS=2.5
DEBUG_RAW_OUTPUT="true"
"""
    )
    return config_file


@pytest.fixture
def empty_config_file(tmp_path: Path) -> Path:
    """Create an empty config file."""
    config_file = tmp_path / ".agentrelay-config"
    config_file.write_text("")
    return config_file


@pytest.fixture
def builtin_registry() -> ProviderRegistry:
    """A registry holding the four built-in backends."""
    return register_all_backends(ProviderRegistry())


@pytest.fixture
def mock_registry() -> ProviderRegistry:
    """Registry of two mock backends: "alpha" (baseline) and "beta" (claims models starting with "b")."""
    registry = ProviderRegistry()
    alpha = make_mock_provider(
        "alpha",
        models=[ModelDefinition(id="alpha-1", name="Alpha 1", model_string="alpha-1", provider="alpha", default=True)],
    )
    beta = make_mock_provider(
        "beta",
        installed=False,
        models=[ModelDefinition(id="beta-1", name="Beta 1", model_string="b1", provider="beta", supports_vision=True)],
    )
    registry.register("alpha", ProviderRegistration(factory=lambda: alpha, aliases=("first",)))
    registry.register(
        "beta",
        ProviderRegistration(factory=lambda: beta, can_handle_model=lambda m: m.startswith("b"), priority=5),
    )
    return registry


@pytest.fixture
def default_registry(mock_registry, monkeypatch) -> ProviderRegistry:
    """Install ``mock_registry`` as the API's default registry."""
    monkeypatch.setattr(api, "_default_registry", mock_registry)
    return mock_registry
