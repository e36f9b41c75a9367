"""OpenAI Codex CLI backend (``codex``).

``codex exec --json`` reports a thread of items. Agent messages and command
executions are the interesting items; reasoning items are dropped. The final
``turn.completed`` carries no text, so the last agent message is repeated as
the result.
"""

from __future__ import annotations

from typing import Any, ClassVar

from agentrelay.config.platforms import AgentPlatform
from agentrelay.providers.base import CliProvider, SpawnConfig, SpawnStrategy
from agentrelay.providers.models import CODEX_DEFAULT_MODEL, CODEX_MODELS, strip_provider_prefix
from agentrelay.providers.normalizer import EventHandler, EventNormalizer
from agentrelay.providers.types import (
    AssistantMessage,
    ExecuteOptions,
    ModelDefinition,
    ProviderMessage,
    ToolResultBlock,
    ToolUseBlock,
)


class CodexEventNormalizer(EventNormalizer):
    """Codex ``exec --json`` events."""

    backend_name: ClassVar[str] = "codex"
    tool_id_prefix: ClassVar[str] = "codex-tool"

    def __init__(self, *, debug_raw: bool | None = None) -> None:
        super().__init__(debug_raw=debug_raw)
        self.last_agent_message: str | None = None
        # Generated id of the command in flight, for items that carry no id
        self._pending_command_id: str | None = None

    def handlers(self) -> dict[str, EventHandler]:
        return {
            "thread.started": self._thread_started,
            "turn.started": self.ignore,
            "item.started": self._item_started,
            "item.updated": self.ignore,
            "item.completed": self._item_completed,
            "turn.completed": self._completed,
            "thread.completed": self._completed,
            "turn.failed": self._turn_failed,
            "error": self._error,
        }

    def _thread_started(self, event: dict[str, Any]) -> None:
        self.capture_session(event.get("thread_id"))
        return None

    def _item_id(self, item: dict[str, Any]) -> str:
        return item.get("id") or self.tool_ids.next_id()

    def _item_started(self, event: dict[str, Any]) -> ProviderMessage | None:
        item = event["item"]
        if item.get("type") != "command_execution":
            return None
        tool_use_id = self._item_id(item)
        if not item.get("id"):
            self._pending_command_id = tool_use_id
        return self.tool_use("Bash", tool_use_id, {"command": item.get("command")})

    def _item_completed(self, event: dict[str, Any]) -> ProviderMessage | None:
        item = event["item"]
        item_type = item.get("type")

        if item_type == "agent_message":
            text = item.get("text")
            if not text:
                return None
            self.last_agent_message = text
            return self.text(text)

        if item_type == "command_execution":
            tool_use_id = item.get("id") or self._pending_command_id or self.tool_ids.next_id()
            self._pending_command_id = None
            content = f"Exit code: {item.get('exit_code')}"
            if item.get("aggregated_output"):
                content += f"\n{item['aggregated_output']}"
            return AssistantMessage(
                content=[
                    ToolUseBlock(name="Bash", tool_use_id=tool_use_id, input={"command": item.get("command")}),
                    ToolResultBlock(tool_use_id=tool_use_id, content=content),
                ]
            )

        if item_type == "file_change":
            return self.tool_use("Edit", self._item_id(item), {"changes": item.get("changes")})

        # reasoning, todo_list, web_search, ...
        return None

    def _completed(self, event: dict[str, Any]) -> ProviderMessage:
        return self.result(self.last_agent_message)

    def _turn_failed(self, event: dict[str, Any]) -> ProviderMessage:
        error = event.get("error") or {}
        message = error.get("message") if isinstance(error, dict) else str(error)
        return self.error(message or "Codex turn failed")

    def _error(self, event: dict[str, Any]) -> ProviderMessage:
        return self.error(event.get("message") or "Codex reported an error")


class CodexProvider(CliProvider):
    """OpenAI Codex CLI backend."""

    name: ClassVar[str] = "codex"
    display_name: ClassVar[str] = "Codex"
    platform: ClassVar[AgentPlatform] = AgentPlatform.CODEX
    cli_name: ClassVar[str] = "codex"
    normalizer_class: ClassVar[type[EventNormalizer]] = CodexEventNormalizer

    api_key_env: ClassVar[str | None] = "OPENAI_API_KEY"
    credential_files: ClassVar[tuple[str, ...]] = ("~/.codex/auth.json",)
    credential_fields: ClassVar[tuple[str, ...]] = ("OPENAI_API_KEY", "tokens.access_token")

    def spawn_config(self) -> SpawnConfig:
        return SpawnConfig(
            windows_strategy=SpawnStrategy.CMD,
            common_paths={
                "linux": ("~/.npm-global/bin/codex", "~/.local/bin/codex", "/usr/local/bin/codex"),
                "darwin": (
                    "~/.npm-global/bin/codex",
                    "~/.local/bin/codex",
                    "/usr/local/bin/codex",
                    "/opt/homebrew/bin/codex",
                ),
                "win32": ("~/AppData/Roaming/npm/codex.cmd",),
            },
        )

    def get_install_instructions(self) -> str:
        return "Install with: npm install -g @openai/codex"

    def build_cli_args(self, options: ExecuteOptions) -> list[str]:
        model = strip_provider_prefix(options.model or CODEX_DEFAULT_MODEL, "codex")
        sandbox = "read-only" if options.read_only else "workspace-write"
        return ["exec", "--json", "--model", model, "--sandbox", sandbox, "-"]

    def available_models(self) -> list[ModelDefinition]:
        return list(CODEX_MODELS)


__all__ = [
    "CodexEventNormalizer",
    "CodexProvider",
]
