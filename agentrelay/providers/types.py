"""Canonical types shared by every provider.

``ProviderMessage`` is the only thing callers consume from an execution;
backend-specific event fields never leak into it. Each message and block
renders to its wire shape with ``to_dict()``::

    {"type": "assistant", "session_id": "s1",
     "message": {"role": "assistant", "content": [{"type": "text", "text": "Hi"}]}}
    {"type": "result", "subtype": "success", "session_id": "s1", "result": "..."}
    {"type": "error", "session_id": "s1", "error": "..."}
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, Union

if TYPE_CHECKING:
    from agentrelay.providers.base import BaseProvider


# ── Content blocks ───────────────────────────────────────────────────────────


@dataclass
class TextBlock:
    text: str
    type: Literal["text"] = "text"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "text": self.text}


@dataclass
class ToolUseBlock:
    name: str
    tool_use_id: str | None
    input: Any = None
    type: Literal["tool_use"] = "tool_use"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "tool_use_id": self.tool_use_id,
            "input": self.input,
        }


@dataclass
class ToolResultBlock:
    tool_use_id: str | None
    content: str
    type: Literal["tool_result"] = "tool_result"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "tool_use_id": self.tool_use_id, "content": self.content}


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock]


# ── Provider messages ────────────────────────────────────────────────────────


@dataclass
class AssistantMessage:
    content: list[ContentBlock]
    session_id: str | None = None
    role: str = "assistant"
    type: Literal["assistant"] = "assistant"

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "session_id": self.session_id,
            "message": {"role": self.role, "content": [b.to_dict() for b in self.content]},
        }


@dataclass
class ErrorMessage:
    error: str
    session_id: str | None = None
    type: Literal["error"] = "error"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "session_id": self.session_id, "error": self.error}


@dataclass
class ResultMessage:
    result: str | None = None
    session_id: str | None = None
    subtype: str = "success"
    type: Literal["result"] = "result"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "subtype": self.subtype,
            "session_id": self.session_id,
            "result": self.result,
        }


ProviderMessage = Union[AssistantMessage, ErrorMessage, ResultMessage]


# ── Execution request ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ExecuteOptions:
    """One execution request.

    Attributes:
        model: Public model identifier (e.g. "cursor-auto", "sonnet")
        prompt: Plain text, or a list of content fragments of which only
            ``{"type": "text", "text": ...}`` entries are used
        cwd: Working directory for the backend process (default: current)
        read_only: Suppress every flag that lets the backend modify files
        mcp_servers: Auxiliary MCP server definitions; backends that cannot
            use them log a warning and ignore them
        cancel_event: Set it to stop the execution; the stream then ends
            without an error
    """

    model: str
    prompt: str | list[dict[str, Any]]
    cwd: str | None = None
    read_only: bool = False
    mcp_servers: dict[str, Any] | None = None
    cancel_event: threading.Event | None = field(default=None, compare=False)

    def prompt_text(self) -> str:
        """Text delivered to the backend over stdin."""
        if isinstance(self.prompt, str):
            return self.prompt
        if isinstance(self.prompt, list):
            return "\n".join(
                block["text"]
                for block in self.prompt
                if isinstance(block, dict) and block.get("type") == "text" and block.get("text")
            )
        raise TypeError("Invalid prompt format: expected str or list of content blocks")


# ── Discovery and capability data ────────────────────────────────────────────


@dataclass
class InstallationStatus:
    """Point-in-time snapshot of a backend's installation and auth state.

    Attributes:
        installed: Whether an executable (or package runner) was found
        version: Output of ``--version`` when available
        path: Executable path; WSL paths render as ``(WSL:<distro>) /path``
        method: "cli" (native), "wsl" (compatibility layer) or "npm" (npx)
        has_api_key: Whether the backend's API key variable is set
        authenticated: Whether any auth signal was found
        error: Set when the detector itself failed
    """

    installed: bool
    version: str | None = None
    path: str | None = None
    method: str = "cli"
    has_api_key: bool = False
    authenticated: bool | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "installed": self.installed,
            "version": self.version,
            "path": self.path,
            "method": self.method,
            "hasApiKey": self.has_api_key,
            "authenticated": self.authenticated,
            "error": self.error,
        }


@dataclass(frozen=True)
class ModelDefinition:
    id: str
    name: str
    model_string: str
    provider: str
    supports_tools: bool = True
    supports_vision: bool = False
    description: str = ""
    tier: str | None = None
    default: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "modelString": self.model_string,
            "provider": self.provider,
            "supportsTools": self.supports_tools,
            "supportsVision": self.supports_vision,
            "description": self.description,
            "tier": self.tier,
            "default": self.default,
        }


@dataclass
class ProviderRegistration:
    """How the registry builds and routes to one backend.

    Attributes:
        factory: Constructs a provider instance
        aliases: Alternate names accepted by ``get_provider_by_name``
        can_handle_model: Predicate over the lowercased model string
        priority: Higher values are checked first
    """

    factory: Callable[[], BaseProvider]
    aliases: tuple[str, ...] = ()
    can_handle_model: Callable[[str], bool] | None = None
    priority: int = 0


__all__ = [
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
]
