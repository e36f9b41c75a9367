"""Backend providers for agent CLIs.

This package provides:
- Canonical message and content-block types (types)
- Declared models per backend (models)
- The provider contract and shared CLI machinery (base)
- Event normalizers and the text dedup filter
- Error classification (errors)
- The registry that routes model ids to backends (registry)

Concrete providers (Claude, Cursor, OpenCode, Codex) are imported lazily.
"""

from agentrelay.providers.base import (
    BaseProvider,
    CliProvider,
    DiscoveryResult,
    SpawnConfig,
    SpawnStrategy,
)
from agentrelay.providers.dedup import TextDedupFilter
from agentrelay.providers.errors import (
    ErrorCode,
    ErrorInfo,
    ProviderConfigurationError,
    ProviderError,
    ProviderNotFoundError,
    classify_cli_error,
    matches_common_rate_limit,
)
from agentrelay.providers.normalizer import EventNormalizer, ToolUseIdCounter
from agentrelay.providers.registry import ProviderRegistry, register_all_backends
from agentrelay.providers.types import (
    AssistantMessage,
    ContentBlock,
    ErrorMessage,
    ExecuteOptions,
    InstallationStatus,
    ModelDefinition,
    ProviderMessage,
    ProviderRegistration,
    ResultMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)

_LAZY_PROVIDERS = {
    "ClaudeProvider": "agentrelay.providers.claude",
    "CodexProvider": "agentrelay.providers.codex",
    "CursorProvider": "agentrelay.providers.cursor",
    "OpenCodeProvider": "agentrelay.providers.opencode",
}


def __getattr__(name: str) -> type:
    if name in _LAZY_PROVIDERS:
        import importlib

        mod = importlib.import_module(_LAZY_PROVIDERS[name])
        cls: type = getattr(mod, name)
        return cls
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Types
    "TextBlock",
    "ToolUseBlock",
    "ToolResultBlock",
    "ContentBlock",
    "AssistantMessage",
    "ErrorMessage",
    "ResultMessage",
    "ProviderMessage",
    "ExecuteOptions",
    "InstallationStatus",
    "ModelDefinition",
    "ProviderRegistration",
    # Base classes
    "BaseProvider",
    "CliProvider",
    "DiscoveryResult",
    "SpawnConfig",
    "SpawnStrategy",
    # Stream processing
    "EventNormalizer",
    "ToolUseIdCounter",
    "TextDedupFilter",
    # Errors
    "ErrorCode",
    "ErrorInfo",
    "ProviderError",
    "ProviderConfigurationError",
    "ProviderNotFoundError",
    "classify_cli_error",
    "matches_common_rate_limit",
    # Registry
    "ProviderRegistry",
    "register_all_backends",
    # Providers
    "ClaudeProvider",
    "CodexProvider",
    "CursorProvider",
    "OpenCodeProvider",
]
