"""Caller-facing entry points.

These functions route through a shared default registry unless one is
passed explicitly. The default registry is built on first use from the
user's settings file.

Example:
    >>> from agentrelay.api import execute
    >>> from agentrelay.providers import ExecuteOptions
    >>> for message in execute(ExecuteOptions(model="cursor-auto", prompt="Hello")):
    ...     print(message.to_dict())
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator

from agentrelay.config.settings import load_settings
from agentrelay.providers.errors import ProviderNotFoundError
from agentrelay.providers.registry import ProviderRegistry, register_all_backends
from agentrelay.providers.types import (
    ExecuteOptions,
    InstallationStatus,
    ModelDefinition,
    ProviderMessage,
)

logger = logging.getLogger(__name__)

_default_registry: ProviderRegistry | None = None
_registry_lock = threading.Lock()


def get_registry() -> ProviderRegistry:
    """The default registry, populated with the built-in backends once."""
    global _default_registry
    with _registry_lock:
        if _default_registry is None:
            registry = ProviderRegistry()
            register_all_backends(registry, settings=load_settings())
            _default_registry = registry
            logger.debug("Default registry initialised", extra={"providers": registry.names})
        return _default_registry


def reset_registry() -> None:
    """Forget the default registry; the next call rebuilds it."""
    global _default_registry
    with _registry_lock:
        _default_registry = None


def execute(options: ExecuteOptions, *, registry: ProviderRegistry | None = None) -> Iterator[ProviderMessage]:
    """Run ``options.prompt`` on the backend that serves ``options.model``.

    Raises:
        ProviderError: ``NOT_INSTALLED`` before the first message if the
            backend CLI is missing; other codes while iterating.
        ProviderConfigurationError: If no backend can be constructed.
    """
    registry = registry or get_registry()
    provider = registry.resolve_provider(options.model)
    return provider.execute(options)


def check_installation(
    backend_name: str | None = None,
    *,
    registry: ProviderRegistry | None = None,
) -> InstallationStatus | dict[str, InstallationStatus]:
    """Installation status of one backend, or of all of them when no name is given.

    Raises:
        ProviderNotFoundError: If ``backend_name`` matches no backend or alias.
    """
    registry = registry or get_registry()
    if backend_name is None:
        return registry.check_all_providers()

    provider = registry.get_provider_by_name(backend_name)
    if provider is None:
        raise ProviderNotFoundError(
            f"Unknown backend '{backend_name}'. Available: {', '.join(registry.names)}"
        )
    return provider.detect_installation()


def list_models(*, registry: ProviderRegistry | None = None) -> list[ModelDefinition]:
    return (registry or get_registry()).all_available_models()


def resolve_backend_for_model(model_id: str, *, registry: ProviderRegistry | None = None) -> str:
    return (registry or get_registry()).resolve_provider_name(model_id)


__all__ = [
    "execute",
    "check_installation",
    "list_models",
    "resolve_backend_for_model",
    "get_registry",
    "reset_registry",
]
