"""Static model and capability declarations for each backend.

Model ids are backend-qualified where the bare name would be ambiguous:
Cursor ids carry a ``cursor-`` prefix and Codex ids a ``codex-`` prefix,
which is stripped before the name is handed to the CLI (``model_string``).
"""

from __future__ import annotations

from dataclasses import dataclass

from agentrelay.providers.types import ModelDefinition

# Vendor prefixes stripped from public model ids before invoking a CLI
PROVIDER_PREFIXES: dict[str, str] = {
    "cursor": "cursor-",
    "codex": "codex-",
    "opencode": "opencode-",
}


def strip_provider_prefix(model: str, provider: str | None = None) -> str:
    """Remove the vendor prefix from ``model``.

    With ``provider`` only that provider's prefix is stripped, otherwise the
    first matching known prefix is.
    """
    if not model:
        return model
    prefixes = [PROVIDER_PREFIXES[provider]] if provider in PROVIDER_PREFIXES else PROVIDER_PREFIXES.values()
    for prefix in prefixes:
        if model.startswith(prefix):
            return model[len(prefix) :]
    return model


# ── Claude ───────────────────────────────────────────────────────────────────

CLAUDE_MODEL_MAP: dict[str, str] = {
    "haiku": "claude-haiku-4-5-20251001",
    "sonnet": "claude-sonnet-4-5-20250929",
    "opus": "claude-opus-4-5-20251101",
}

CLAUDE_DEFAULT_MODEL = "sonnet"

CLAUDE_MODELS: tuple[ModelDefinition, ...] = (
    ModelDefinition(
        id="claude-opus-4-5-20251101",
        name="Claude Opus 4.5",
        model_string="claude-opus-4-5-20251101",
        provider="claude",
        supports_vision=True,
        description="Most capable Claude model",
        tier="premium",
    ),
    ModelDefinition(
        id="claude-sonnet-4-5-20250929",
        name="Claude Sonnet 4.5",
        model_string="claude-sonnet-4-5-20250929",
        provider="claude",
        supports_vision=True,
        description="Balanced speed and intelligence",
        tier="standard",
        default=True,
    ),
    ModelDefinition(
        id="claude-haiku-4-5-20251001",
        name="Claude Haiku 4.5",
        model_string="claude-haiku-4-5-20251001",
        provider="claude",
        supports_vision=True,
        description="Fastest Claude model",
        tier="basic",
    ),
)


def resolve_claude_model(model: str) -> str:
    """Expand a Claude alias (``sonnet``) to its full model id."""
    return CLAUDE_MODEL_MAP.get(model.lower(), model)


# ── Cursor ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CursorModelConfig:
    label: str
    description: str
    has_thinking: bool = False
    supports_vision: bool = False


CURSOR_MODEL_MAP: dict[str, CursorModelConfig] = {
    "auto": CursorModelConfig("Auto (Recommended)", "Automatically selects the best model for each task"),
    "composer-1": CursorModelConfig("Composer 1", "Cursor Composer agent model optimized for multi-file edits"),
    "sonnet-4.5": CursorModelConfig("Claude Sonnet 4.5", "Anthropic Claude Sonnet 4.5 via Cursor"),
    "sonnet-4.5-thinking": CursorModelConfig(
        "Claude Sonnet 4.5 (Thinking)", "Claude Sonnet 4.5 with extended thinking enabled", has_thinking=True
    ),
    "opus-4.5": CursorModelConfig("Claude Opus 4.5", "Anthropic Claude Opus 4.5 via Cursor"),
    "opus-4.5-thinking": CursorModelConfig(
        "Claude Opus 4.5 (Thinking)", "Claude Opus 4.5 with extended thinking enabled", has_thinking=True
    ),
    "opus-4.1": CursorModelConfig("Claude Opus 4.1", "Anthropic Claude Opus 4.1 via Cursor"),
    "gemini-3-pro": CursorModelConfig("Gemini 3 Pro", "Google Gemini 3 Pro via Cursor"),
    "gemini-3-flash": CursorModelConfig("Gemini 3 Flash", "Google Gemini 3 Flash (faster)"),
    "gpt-5.2": CursorModelConfig("GPT-5.2", "OpenAI GPT-5.2 via Cursor"),
    "gpt-5.1": CursorModelConfig("GPT-5.1", "OpenAI GPT-5.1 via Cursor"),
    "gpt-5.2-high": CursorModelConfig("GPT-5.2 High", "OpenAI GPT-5.2 with high compute"),
    "gpt-5.1-high": CursorModelConfig("GPT-5.1 High", "OpenAI GPT-5.1 with high compute"),
    "gpt-5.1-codex": CursorModelConfig("GPT-5.1 Codex", "OpenAI GPT-5.1 Codex for code generation"),
    "gpt-5.1-codex-high": CursorModelConfig("GPT-5.1 Codex High", "OpenAI GPT-5.1 Codex with high compute"),
    "gpt-5.1-codex-max": CursorModelConfig("GPT-5.1 Codex Max", "OpenAI GPT-5.1 Codex Max capacity"),
    "gpt-5.1-codex-max-high": CursorModelConfig(
        "GPT-5.1 Codex Max High", "OpenAI GPT-5.1 Codex Max with high compute"
    ),
    "grok": CursorModelConfig("Grok", "xAI Grok via Cursor"),
}

CURSOR_DEFAULT_MODEL = "auto"


def is_cursor_model(model: str) -> bool:
    """True for ``cursor-`` prefixed ids and bare Cursor model ids."""
    if not model:
        return False
    return model.startswith(PROVIDER_PREFIXES["cursor"]) or model in CURSOR_MODEL_MAP


def cursor_models() -> list[ModelDefinition]:
    return [
        ModelDefinition(
            id=f"cursor-{model_id}",
            name=config.label,
            model_string=model_id,
            provider="cursor",
            supports_vision=config.supports_vision,
            description=config.description,
            default=model_id == CURSOR_DEFAULT_MODEL,
        )
        for model_id, config in CURSOR_MODEL_MAP.items()
    ]


# ── OpenCode ─────────────────────────────────────────────────────────────────

OPENCODE_MODELS: tuple[ModelDefinition, ...] = (
    ModelDefinition(
        id="opencode/big-pickle",
        name="Big Pickle (Free)",
        model_string="opencode/big-pickle",
        provider="opencode",
        description="OpenCode free tier model - great for general coding",
        tier="basic",
    ),
    ModelDefinition(
        id="opencode/gpt-5-nano",
        name="GPT-5 Nano (Free)",
        model_string="opencode/gpt-5-nano",
        provider="opencode",
        description="Fast and lightweight free tier model",
        tier="basic",
    ),
    ModelDefinition(
        id="opencode/grok-code",
        name="Grok Code (Free)",
        model_string="opencode/grok-code",
        provider="opencode",
        description="OpenCode free tier Grok model for coding",
        tier="basic",
    ),
    ModelDefinition(
        id="amazon-bedrock/anthropic.claude-sonnet-4-5-20250929-v1:0",
        name="Claude Sonnet 4.5 (Bedrock)",
        model_string="amazon-bedrock/anthropic.claude-sonnet-4-5-20250929-v1:0",
        provider="opencode",
        supports_vision=True,
        description="Latest Claude Sonnet via AWS Bedrock - fast and intelligent",
        tier="premium",
        default=True,
    ),
    ModelDefinition(
        id="amazon-bedrock/anthropic.claude-opus-4-5-20251101-v1:0",
        name="Claude Opus 4.5 (Bedrock)",
        model_string="amazon-bedrock/anthropic.claude-opus-4-5-20251101-v1:0",
        provider="opencode",
        supports_vision=True,
        description="Most capable Claude model via AWS Bedrock",
        tier="premium",
    ),
    ModelDefinition(
        id="amazon-bedrock/anthropic.claude-haiku-4-5-20251001-v1:0",
        name="Claude Haiku 4.5 (Bedrock)",
        model_string="amazon-bedrock/anthropic.claude-haiku-4-5-20251001-v1:0",
        provider="opencode",
        supports_vision=True,
        description="Fastest Claude model via AWS Bedrock",
        tier="standard",
    ),
    ModelDefinition(
        id="amazon-bedrock/deepseek.r1-v1:0",
        name="DeepSeek R1 (Bedrock)",
        model_string="amazon-bedrock/deepseek.r1-v1:0",
        provider="opencode",
        description="DeepSeek R1 reasoning model - excellent for coding",
        tier="premium",
    ),
    ModelDefinition(
        id="amazon-bedrock/amazon.nova-pro-v1:0",
        name="Amazon Nova Pro (Bedrock)",
        model_string="amazon-bedrock/amazon.nova-pro-v1:0",
        provider="opencode",
        supports_vision=True,
        description="Amazon Nova Pro - balanced performance",
        tier="standard",
    ),
    ModelDefinition(
        id="amazon-bedrock/meta.llama4-maverick-17b-instruct-v1:0",
        name="Llama 4 Maverick 17B (Bedrock)",
        model_string="amazon-bedrock/meta.llama4-maverick-17b-instruct-v1:0",
        provider="opencode",
        description="Meta Llama 4 Maverick via AWS Bedrock",
        tier="standard",
    ),
    ModelDefinition(
        id="amazon-bedrock/qwen.qwen3-coder-480b-a35b-v1:0",
        name="Qwen3 Coder 480B (Bedrock)",
        model_string="amazon-bedrock/qwen.qwen3-coder-480b-a35b-v1:0",
        provider="opencode",
        description="Qwen3 Coder 480B - excellent for coding",
        tier="premium",
    ),
)

OPENCODE_DEFAULT_MODEL = "amazon-bedrock/anthropic.claude-sonnet-4-5-20250929-v1:0"

_OPENCODE_MODEL_IDS = frozenset(m.id for m in OPENCODE_MODELS)


def is_opencode_model(model: str) -> bool:
    """True for ``opencode-``/``opencode/`` ids, Bedrock slugs and declared ids."""
    if not model:
        return False
    return (
        model.startswith(("opencode-", "opencode/", "amazon-bedrock/"))
        or model in _OPENCODE_MODEL_IDS
    )


# ── Codex ────────────────────────────────────────────────────────────────────

CODEX_MODELS: tuple[ModelDefinition, ...] = (
    ModelDefinition(
        id="codex-gpt-5.1-codex-max",
        name="GPT-5.1 Codex Max",
        model_string="gpt-5.1-codex-max",
        provider="codex",
        supports_vision=True,
        description="Flagship Codex model for long-running agentic coding",
        tier="premium",
        default=True,
    ),
    ModelDefinition(
        id="codex-gpt-5.1-codex",
        name="GPT-5.1 Codex",
        model_string="gpt-5.1-codex",
        provider="codex",
        supports_vision=True,
        description="Codex model optimized for code generation",
        tier="standard",
    ),
    ModelDefinition(
        id="codex-gpt-5.1-codex-mini",
        name="GPT-5.1 Codex Mini",
        model_string="gpt-5.1-codex-mini",
        provider="codex",
        supports_vision=True,
        description="Smaller, faster Codex model",
        tier="basic",
    ),
    ModelDefinition(
        id="codex-gpt-5.2",
        name="GPT-5.2",
        model_string="gpt-5.2",
        provider="codex",
        supports_vision=True,
        description="General-purpose GPT-5.2 through the Codex CLI",
        tier="premium",
    ),
)

CODEX_DEFAULT_MODEL = "gpt-5.1-codex-max"


def is_codex_model(model: str) -> bool:
    return bool(model) and model.startswith(PROVIDER_PREFIXES["codex"])


__all__ = [
    "PROVIDER_PREFIXES",
    "strip_provider_prefix",
    "CLAUDE_MODEL_MAP",
    "CLAUDE_MODELS",
    "CLAUDE_DEFAULT_MODEL",
    "resolve_claude_model",
    "CursorModelConfig",
    "CURSOR_MODEL_MAP",
    "CURSOR_DEFAULT_MODEL",
    "is_cursor_model",
    "cursor_models",
    "OPENCODE_MODELS",
    "OPENCODE_DEFAULT_MODEL",
    "is_opencode_model",
    "CODEX_MODELS",
    "CODEX_DEFAULT_MODEL",
    "is_codex_model",
]
