"""OpenCode CLI backend (``opencode``).

OpenCode routes to many upstream providers; model ids are passed through
in its own ``<provider>/<model>`` form (``opencode/big-pickle``,
``amazon-bedrock/...``). On Windows it is launched through ``npx`` when no
global install is found.
"""

from __future__ import annotations

import json
from typing import Any, ClassVar

from agentrelay.config.platforms import AgentPlatform
from agentrelay.providers.base import CliProvider, SpawnConfig, SpawnStrategy
from agentrelay.providers.models import OPENCODE_MODELS, strip_provider_prefix
from agentrelay.providers.normalizer import EventHandler, EventNormalizer
from agentrelay.providers.types import ExecuteOptions, ModelDefinition, ProviderMessage

OPENCODE_NPX_PACKAGE = "opencode-ai@latest"


class OpenCodeEventNormalizer(EventNormalizer):
    """OpenCode ``stream-json`` events.

    ``init``/``session``/``start-step`` open a run and only carry the
    session id. Text arrives as ``text-delta`` chunks; a run ends with
    ``finish-step`` (or ``finish``).
    """

    backend_name: ClassVar[str] = "opencode"
    tool_id_prefix: ClassVar[str] = "opencode-tool"

    def handlers(self) -> dict[str, EventHandler]:
        return {
            "init": self.ignore,
            "session": self.ignore,
            "start-step": self.ignore,
            "step-start": self.ignore,
            "text-delta": self._text_delta,
            "text-end": self.ignore,
            "tool-call": self._tool_call,
            "tool-result": self._tool_result,
            "tool-error": self._tool_error,
            "finish-step": self._finish,
            "finish": self._finish,
        }

    def _text_delta(self, event: dict[str, Any]) -> ProviderMessage | None:
        text = event.get("text")
        if not text:
            return None
        return self.text(text)

    def _tool_call(self, event: dict[str, Any]) -> ProviderMessage:
        tool_use_id = event.get("call_id") or self.tool_ids.next_id()
        return self.tool_use(event["name"], tool_use_id, event.get("args"))

    def _tool_result(self, event: dict[str, Any]) -> ProviderMessage:
        output = event.get("output")
        if not isinstance(output, str):
            output = "" if output is None else json.dumps(output)
        return self.tool_result(event.get("call_id"), output)

    def _tool_error(self, event: dict[str, Any]) -> ProviderMessage:
        return self.error(event.get("error") or "Tool execution failed")

    def _finish(self, event: dict[str, Any]) -> ProviderMessage:
        if event.get("success") is False or event.get("error"):
            return self.error(event.get("error") or "Step execution failed")
        return self.result(event.get("result"))


class OpenCodeProvider(CliProvider):
    """OpenCode CLI backend."""

    name: ClassVar[str] = "opencode"
    display_name: ClassVar[str] = "OpenCode"
    platform: ClassVar[AgentPlatform] = AgentPlatform.OPENCODE
    cli_name: ClassVar[str] = "opencode"
    normalizer_class: ClassVar[type[EventNormalizer]] = OpenCodeEventNormalizer

    credential_files: ClassVar[tuple[str, ...]] = ("~/.local/share/opencode/auth.json",)

    def spawn_config(self) -> SpawnConfig:
        return SpawnConfig(
            windows_strategy=SpawnStrategy.NPX,
            npx_package=OPENCODE_NPX_PACKAGE,
            common_paths={
                "linux": (
                    "~/.npm-global/bin/opencode",
                    "/usr/local/bin/opencode",
                    "/usr/bin/opencode",
                    "~/.local/bin/opencode",
                ),
                "darwin": (
                    "~/.npm-global/bin/opencode",
                    "/usr/local/bin/opencode",
                    "/opt/homebrew/bin/opencode",
                    "~/.local/bin/opencode",
                ),
                "win32": (
                    "~/AppData/Roaming/npm/opencode.cmd",
                    "~/AppData/Roaming/npm/opencode",
                ),
            },
        )

    def _credentials_valid(self, data: Any) -> bool:
        # auth.json maps provider id -> credential record
        if not isinstance(data, dict):
            return False
        return any(
            isinstance(entry, dict) and any(entry.get(k) for k in ("key", "access", "token"))
            for entry in data.values()
        )

    def build_cli_args(self, options: ExecuteOptions) -> list[str]:
        args = ["run", "--format", "stream-json", "-q"]
        if options.cwd:
            args += ["-c", options.cwd]
        if options.model:
            args += ["--model", strip_provider_prefix(options.model, "opencode")]
        args.append("-")
        return args

    def available_models(self) -> list[ModelDefinition]:
        return list(OPENCODE_MODELS)


__all__ = [
    "OPENCODE_NPX_PACKAGE",
    "OpenCodeEventNormalizer",
    "OpenCodeProvider",
]
