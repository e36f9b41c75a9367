"""Cursor Agent CLI backend (``cursor-agent``).

cursor-agent has no native Windows build, so on Windows it is discovered and
run inside WSL. The install script also places versioned copies under
``~/.local/share/cursor-agent/versions/<version>/cursor-agent``; these are
used when nothing is on PATH.

Streaming with ``--stream-partial-output`` repeats text, so this is the one
backend whose messages pass through ``TextDedupFilter``.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, ClassVar

from agentrelay.config.platforms import AgentPlatform
from agentrelay.providers.base import CliProvider, DiscoveryResult, SpawnConfig, SpawnStrategy
from agentrelay.providers.cursor_tools import PartialToolCall, format_tool_result, parse_tool_call
from agentrelay.providers.dedup import TextDedupFilter
from agentrelay.providers.errors import ErrorCode
from agentrelay.providers.models import CURSOR_DEFAULT_MODEL, cursor_models, strip_provider_prefix
from agentrelay.providers.normalizer import EventHandler, EventNormalizer
from agentrelay.providers.types import (
    AssistantMessage,
    ExecuteOptions,
    ModelDefinition,
    ProviderMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)

logger = logging.getLogger(__name__)

CURSOR_VERSIONS_DIR = Path.home() / ".local" / "share" / "cursor-agent" / "versions"

CURSOR_INSTALL_COMMAND = "curl https://cursor.com/install -fsS | bash"


class CursorEventNormalizer(EventNormalizer):
    """cursor-agent ``stream-json`` events.

    Event types: ``system`` (init, carries session_id), ``user`` (echo of the
    prompt), ``assistant`` (text), ``tool_call`` (started/completed) and
    ``result``.
    """

    backend_name: ClassVar[str] = "cursor"

    def handlers(self) -> dict[str, EventHandler]:
        return {
            "system": self.ignore,
            "user": self.ignore,
            "assistant": self._assistant,
            "tool_call": self._tool_call,
            "result": self._result,
        }

    def _assistant(self, event: dict[str, Any]) -> ProviderMessage | None:
        content = event["message"]["content"]
        blocks = [TextBlock(text=block.get("text") or "") for block in content]
        if not blocks:
            return None
        return AssistantMessage(content=blocks, session_id=event.get("session_id"))

    def _tool_call(self, event: dict[str, Any]) -> ProviderMessage | None:
        tool_call = event["tool_call"]
        call_id = event.get("call_id")
        subtype = event.get("subtype")

        try:
            parsed = parse_tool_call(tool_call)
        except PartialToolCall as e:
            logger.debug("Tool call without args yet", extra={"tool": str(e), "call_id": call_id})
            return None
        if parsed is None:
            return None

        tool_use = ToolUseBlock(name=parsed.name, tool_use_id=call_id, input=parsed.input)
        if subtype == "started":
            return AssistantMessage(content=[tool_use], session_id=event.get("session_id"))
        if subtype == "completed":
            result = ToolResultBlock(tool_use_id=call_id, content=format_tool_result(tool_call))
            return AssistantMessage(content=[tool_use, result], session_id=event.get("session_id"))
        return None

    def _result(self, event: dict[str, Any]) -> ProviderMessage:
        if event.get("is_error"):
            message = self.error(event.get("error") or event.get("result") or "Unknown error")
        else:
            message = self.result(event.get("result"))
        message.session_id = event.get("session_id")
        return message


class CursorProvider(CliProvider):
    """Cursor Agent CLI backend.

    Model ids are ``cursor-<model>``; the prefix is stripped before the
    model reaches the CLI, and ``auto`` is passed by omitting ``--model``.
    """

    name: ClassVar[str] = "cursor"
    display_name: ClassVar[str] = "Cursor"
    platform: ClassVar[AgentPlatform] = AgentPlatform.CURSOR
    cli_name: ClassVar[str] = "cursor-agent"
    normalizer_class: ClassVar[type[EventNormalizer]] = CursorEventNormalizer

    api_key_env: ClassVar[str | None] = "CURSOR_API_KEY"
    credential_files: ClassVar[tuple[str, ...]] = (
        "~/.cursor/credentials.json",
        "~/.config/cursor/credentials.json",
    )
    credential_fields: ClassVar[tuple[str, ...]] = ("accessToken", "token")

    error_messages: ClassVar[dict[ErrorCode, str]] = {
        ErrorCode.NOT_AUTHENTICATED: "Cursor CLI is not authenticated",
        ErrorCode.RATE_LIMITED: "Cursor API rate limit exceeded",
        ErrorCode.PROCESS_CRASHED: "Cursor agent process was terminated",
    }
    error_suggestions: ClassVar[dict[ErrorCode, str]] = {
        ErrorCode.NOT_AUTHENTICATED: 'Run "cursor-agent login" to authenticate with your browser',
        ErrorCode.RATE_LIMITED: "Wait a few minutes and try again, or upgrade to Cursor Pro",
        ErrorCode.MODEL_UNAVAILABLE: 'Try using "auto" mode or select a different model',
    }
    exit_message: ClassVar[str] = "Cursor agent exited with code {exit_code}"

    def __init__(self, *, wsl_distribution: str | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.wsl_distribution = wsl_distribution or None

    def spawn_config(self) -> SpawnConfig:
        return SpawnConfig(
            windows_strategy=SpawnStrategy.WSL,
            common_paths={
                "linux": ("~/.local/bin/cursor-agent", "/usr/local/bin/cursor-agent"),
                "darwin": ("~/.local/bin/cursor-agent", "/usr/local/bin/cursor-agent"),
                # Windows uses the WSL lookup instead
                "win32": (),
            },
            wsl_distribution=self.wsl_distribution,
        )

    def _detect_fallback(self) -> DiscoveryResult | None:
        if sys.platform == "win32" or not CURSOR_VERSIONS_DIR.is_dir():
            return None

        versions = sorted(
            (entry.name for entry in CURSOR_VERSIONS_DIR.iterdir() if not entry.name.startswith(".")),
            reverse=True,
        )
        for version in versions:
            candidate = CURSOR_VERSIONS_DIR / version / "cursor-agent"
            if candidate.is_file():
                logger.debug(f"Found cursor-agent version {version} at: {candidate}")
                return DiscoveryResult(cli_path=str(candidate))
        return None

    def get_install_instructions(self) -> str:
        if sys.platform == "win32":
            return f"cursor-agent requires WSL on Windows. Install WSL, then run in WSL: {CURSOR_INSTALL_COMMAND}"
        return f"Install with: {CURSOR_INSTALL_COMMAND}"

    def build_cli_args(self, options: ExecuteOptions) -> list[str]:
        model = strip_provider_prefix(options.model or CURSOR_DEFAULT_MODEL, "cursor")

        args = ["-p", "--output-format", "stream-json", "--stream-partial-output"]
        # Without --force cursor-agent only proposes edits
        if not options.read_only:
            args.append("--force")
        if model != CURSOR_DEFAULT_MODEL:
            args += ["--model", model]
        args.append("-")
        return args

    def create_message_filter(self) -> TextDedupFilter:
        return TextDedupFilter()

    def available_models(self) -> list[ModelDefinition]:
        return cursor_models()


__all__ = [
    "CURSOR_VERSIONS_DIR",
    "CursorEventNormalizer",
    "CursorProvider",
]
