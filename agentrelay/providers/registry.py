"""Provider registry: backend registration, model routing and construction.

Backends are registered explicitly by ``register_all_backends()``; importing
a provider module has no side effects. The first registered backend is the
baseline that unroutable models fall back to.

Example:
    >>> registry = ProviderRegistry()
    >>> register_all_backends(registry)
    >>> registry.resolve_provider_name("cursor-auto")
    'cursor'
    >>> registry.resolve_provider_name("something-unknown")
    'claude'
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Any

from agentrelay.providers.base import BaseProvider
from agentrelay.providers.errors import ProviderConfigurationError
from agentrelay.providers.models import (
    CLAUDE_MODEL_MAP,
    is_codex_model,
    is_cursor_model,
    is_opencode_model,
    strip_provider_prefix,
)
from agentrelay.providers.types import InstallationStatus, ModelDefinition, ProviderRegistration

if TYPE_CHECKING:
    from agentrelay.config.settings import Settings

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Named provider registrations plus a per-name instance cache.

    Routing order is descending ``priority``; equal priorities keep
    registration order. Lookups never depend on dict hashing order.
    """

    def __init__(self) -> None:
        self._registrations: dict[str, ProviderRegistration] = {}
        self._instances: dict[str, BaseProvider] = {}

    def register(self, name: str, registration: ProviderRegistration) -> None:
        """Add or replace a registration.

        Replacing keeps the original position (so the baseline stays the
        baseline) and drops any cached instance.
        """
        key = name.lower()
        self._registrations[key] = registration
        self._instances.pop(key, None)
        logger.debug("Registered provider", extra={"provider": key, "priority": registration.priority})

    def unregister(self, name: str) -> None:
        key = name.lower()
        self._registrations.pop(key, None)
        self._instances.pop(key, None)

    @property
    def names(self) -> list[str]:
        """Registered names in registration order."""
        return list(self._registrations)

    @property
    def baseline_name(self) -> str | None:
        return next(iter(self._registrations), None)

    def _by_priority(self) -> list[tuple[str, ProviderRegistration]]:
        # sorted() is stable, so ties keep registration order
        return sorted(self._registrations.items(), key=lambda item: -item[1].priority)

    def resolve_provider_name(self, model: str) -> str:
        """Name of the backend that should serve ``model``.

        Raises:
            ProviderConfigurationError: If nothing is registered.
        """
        baseline = self.baseline_name
        if baseline is None:
            raise ProviderConfigurationError("No providers are registered")

        model_lower = (model or "").lower()
        for name, registration in self._by_priority():
            if registration.can_handle_model is not None and registration.can_handle_model(model_lower):
                return name

        for name in self._registrations:
            if model_lower.startswith(f"{name}-"):
                return name

        logger.debug("No provider claimed model, using baseline", extra={"model": model, "baseline": baseline})
        return baseline

    def _instantiate(self, name: str) -> BaseProvider:
        cached = self._instances.get(name)
        if cached is not None:
            return cached
        provider = self._registrations[name].factory()
        self._instances[name] = provider
        return provider

    def resolve_provider(self, model: str) -> BaseProvider:
        """Construct (or reuse) the backend for ``model``.

        Falls back to the baseline if the resolved backend's factory fails.

        Raises:
            ProviderConfigurationError: If the baseline cannot be built either.
        """
        name = self.resolve_provider_name(model)
        try:
            return self._instantiate(name)
        except Exception as e:
            logger.error(
                "Failed to construct provider",
                extra={"provider": name, "model": model, "error": str(e)},
            )
            baseline = self.baseline_name
            if baseline is None or baseline == name:
                raise ProviderConfigurationError(f"Could not construct provider '{name}': {e}") from e

        try:
            return self._instantiate(baseline)
        except Exception as e:
            raise ProviderConfigurationError(
                f"Could not construct provider '{name}' or fallback '{baseline}': {e}"
            ) from e

    def get_provider_by_name(self, name: str) -> BaseProvider | None:
        """Look up a backend by registered name, then by alias."""
        key = name.lower()
        if key not in self._registrations:
            key = next(
                (n for n, reg in self._registrations.items() if key in (a.lower() for a in reg.aliases)),
                "",
            )
            if not key:
                return None
        return self._instantiate(key)

    def check_all_providers(self) -> dict[str, InstallationStatus]:
        """Installation status of every backend, probed concurrently.

        A detector failure is recorded for that backend only.
        """
        names = self.names
        if not names:
            return {}

        def detect(name: str) -> InstallationStatus:
            return self._instantiate(name).detect_installation()

        results: dict[str, InstallationStatus] = {}
        with ThreadPoolExecutor(max_workers=len(names)) as executor:
            futures = {executor.submit(detect, name): name for name in names}
            for future in as_completed(futures):
                name = futures[future]
                try:
                    results[name] = future.result()
                except Exception as e:
                    logger.warning("Installation check failed", extra={"provider": name, "error": str(e)})
                    results[name] = InstallationStatus(installed=False, error=str(e))

        return {name: results[name] for name in names}

    def all_available_models(self) -> list[ModelDefinition]:
        models: list[ModelDefinition] = []
        for name in self.names:
            try:
                models.extend(self._instantiate(name).available_models())
            except Exception as e:
                logger.warning("Could not list models", extra={"provider": name, "error": str(e)})
        return models

    def model_supports_vision(self, model: str) -> bool:
        """Declared vision support for ``model`` on the backend that serves it.

        Unknown models, and backends whose models cannot be listed, return True.
        """
        name = self.resolve_provider_name(model)
        try:
            definitions = self._instantiate(name).available_models()
        except Exception as e:
            logger.warning("Could not list models", extra={"provider": name, "error": str(e)})
            return True

        stripped = strip_provider_prefix(model)
        for definition in definitions:
            if model in (definition.id, definition.model_string):
                return definition.supports_vision
            if stripped in (strip_provider_prefix(definition.id), strip_provider_prefix(definition.model_string)):
                return definition.supports_vision
        return True


# ── Default backends ─────────────────────────────────────────────────────────


def _claude_can_handle(model: str) -> bool:
    return (
        model.startswith("claude-")
        or any(family in model for family in ("opus", "sonnet", "haiku"))
        or model in CLAUDE_MODEL_MAP
    )


def register_all_backends(
    registry: ProviderRegistry | None = None,
    settings: Settings | None = None,
) -> ProviderRegistry:
    """Register the built-in backends in order: claude, cursor, opencode, codex.

    ``settings`` feeds probe timeouts, the Cursor WSL distribution and raw
    event logging into the constructed providers.
    """
    from agentrelay.providers.claude import ClaudeProvider
    from agentrelay.providers.codex import CodexProvider
    from agentrelay.providers.cursor import CursorProvider
    from agentrelay.providers.opencode import OpenCodeProvider

    registry = registry if registry is not None else ProviderRegistry()

    common: dict[str, Any] = {}
    cursor_distribution: str | None = None
    if settings is not None:
        common = {
            "probe_timeout": settings.probe_timeout_seconds,
            "version_timeout": settings.version_timeout_seconds,
            "debug_raw_output": settings.debug_raw_output or None,
        }
        cursor_distribution = settings.cursor_wsl_distribution or None

    registry.register(
        "claude",
        ProviderRegistration(
            factory=lambda: ClaudeProvider(**common),
            aliases=("anthropic",),
            can_handle_model=_claude_can_handle,
            priority=0,
        ),
    )
    registry.register(
        "cursor",
        ProviderRegistration(
            factory=lambda: CursorProvider(wsl_distribution=cursor_distribution, **common),
            can_handle_model=is_cursor_model,
            priority=10,
        ),
    )
    registry.register(
        "opencode",
        ProviderRegistration(
            factory=lambda: OpenCodeProvider(**common),
            can_handle_model=is_opencode_model,
            priority=8,
        ),
    )
    registry.register(
        "codex",
        ProviderRegistration(
            factory=lambda: CodexProvider(**common),
            aliases=("openai",),
            can_handle_model=is_codex_model,
            priority=5,
        ),
    )
    return registry


__all__ = [
    "ProviderRegistry",
    "register_all_backends",
]
