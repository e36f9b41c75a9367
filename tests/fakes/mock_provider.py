"""MagicMock-based provider stand-ins for registry and API tests."""

from __future__ import annotations

from unittest.mock import MagicMock

from agentrelay.providers.types import InstallationStatus, ModelDefinition


def make_mock_provider(
    name: str,
    *,
    installed: bool = True,
    models: list[ModelDefinition] | None = None,
) -> MagicMock:
    """MagicMock standing in for a provider instance."""
    provider = MagicMock()
    provider.name = name
    provider.detect_installation.return_value = InstallationStatus(
        installed=installed,
        version="1.0.0" if installed else None,
        path=f"/usr/bin/{name}" if installed else None,
    )
    provider.available_models.return_value = models or []
    return provider
