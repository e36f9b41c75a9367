"""Claude Code CLI backend (``claude``).

This is the baseline backend: any model the registry cannot place is routed
here. Short aliases (``sonnet``, ``opus``, ``haiku``) expand through
``CLAUDE_MODEL_MAP``.
"""

from __future__ import annotations

import json
from typing import Any, ClassVar

from agentrelay.config.platforms import AgentPlatform
from agentrelay.providers.base import CliProvider, SpawnConfig, SpawnStrategy
from agentrelay.providers.models import CLAUDE_MODELS, resolve_claude_model
from agentrelay.providers.normalizer import EventHandler, EventNormalizer
from agentrelay.providers.types import (
    AssistantMessage,
    ContentBlock,
    ExecuteOptions,
    ModelDefinition,
    ProviderMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)


def _flatten_tool_result(content: Any) -> str:
    """Tool results are either a string or a list of text blocks."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            block.get("text", "") for block in content if isinstance(block, dict) and block.get("type") == "text"
        )
    if content is None:
        return ""
    return json.dumps(content)


class ClaudeEventNormalizer(EventNormalizer):
    """Claude Code ``stream-json`` events (requires ``--verbose``)."""

    backend_name: ClassVar[str] = "claude"

    def handlers(self) -> dict[str, EventHandler]:
        return {
            "system": self.ignore,
            "assistant": self._assistant,
            "user": self._user,
            "result": self._result,
        }

    def _assistant(self, event: dict[str, Any]) -> ProviderMessage | None:
        blocks: list[ContentBlock] = []
        for block in event["message"]["content"]:
            block_type = block.get("type")
            if block_type == "text" and block.get("text"):
                blocks.append(TextBlock(text=block["text"]))
            elif block_type == "tool_use":
                blocks.append(ToolUseBlock(name=block["name"], tool_use_id=block.get("id"), input=block.get("input")))
        if not blocks:
            return None
        return AssistantMessage(content=blocks, session_id=event.get("session_id"))

    def _user(self, event: dict[str, Any]) -> ProviderMessage | None:
        content = event["message"]["content"]
        if not isinstance(content, list):
            return None
        blocks: list[ContentBlock] = [
            ToolResultBlock(tool_use_id=block.get("tool_use_id"), content=_flatten_tool_result(block.get("content")))
            for block in content
            if isinstance(block, dict) and block.get("type") == "tool_result"
        ]
        if not blocks:
            return None
        return AssistantMessage(content=blocks, session_id=event.get("session_id"))

    def _result(self, event: dict[str, Any]) -> ProviderMessage:
        subtype = event.get("subtype", "success")
        if event.get("is_error") or subtype != "success":
            return self.error(event.get("error") or event.get("result") or f"Claude run ended with {subtype}")
        return self.result(event.get("result"))


class ClaudeProvider(CliProvider):
    """Claude Code CLI backend."""

    name: ClassVar[str] = "claude"
    display_name: ClassVar[str] = "Claude Code"
    platform: ClassVar[AgentPlatform] = AgentPlatform.CLAUDE
    cli_name: ClassVar[str] = "claude"
    normalizer_class: ClassVar[type[EventNormalizer]] = ClaudeEventNormalizer

    api_key_env: ClassVar[str | None] = "ANTHROPIC_API_KEY"
    credential_files: ClassVar[tuple[str, ...]] = ("~/.claude/.credentials.json",)
    credential_fields: ClassVar[tuple[str, ...]] = ("claudeAiOauth.accessToken",)

    def spawn_config(self) -> SpawnConfig:
        return SpawnConfig(
            windows_strategy=SpawnStrategy.CMD,
            common_paths={
                "linux": ("~/.claude/local/claude", "~/.local/bin/claude", "/usr/local/bin/claude"),
                "darwin": (
                    "~/.claude/local/claude",
                    "~/.local/bin/claude",
                    "/usr/local/bin/claude",
                    "/opt/homebrew/bin/claude",
                ),
                "win32": ("~/AppData/Roaming/npm/claude.cmd",),
            },
        )

    def get_install_instructions(self) -> str:
        return "Install with: npm install -g @anthropic-ai/claude-code"

    def build_cli_args(self, options: ExecuteOptions) -> list[str]:
        args = ["-p", "--output-format", "stream-json", "--verbose"]
        if options.model:
            args += ["--model", resolve_claude_model(options.model)]
        if not options.read_only:
            args.append("--dangerously-skip-permissions")
        return args

    def available_models(self) -> list[ModelDefinition]:
        return list(CLAUDE_MODELS)


__all__ = [
    "ClaudeEventNormalizer",
    "ClaudeProvider",
]
