"""Base machinery for turning raw backend events into ProviderMessages.

Each backend subclasses ``EventNormalizer`` and declares a dispatch table
keyed on the event's ``type`` field. A fresh normalizer is created per
execution, so the session id, the pending-backfill list and the tool id
counter never leak between runs.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, ClassVar

from agentrelay.providers.types import (
    AssistantMessage,
    ErrorMessage,
    ProviderMessage,
    ResultMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from agentrelay.utils.logging import raw_output_debug_enabled

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict[str, Any]], "ProviderMessage | None"]

# Exceptions a handler may raise on a payload that does not have the
# documented shape; the event is skipped instead of ending the stream.
MALFORMED_EVENT_ERRORS = (KeyError, TypeError, AttributeError, ValueError)


class ToolUseIdCounter:
    """Generates ``<prefix>-N`` ids for tool calls that arrive without one."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix
        self._count = 0

    def next_id(self) -> str:
        self._count += 1
        return f"{self.prefix}-{self._count}"


class EventNormalizer:
    """Maps one backend's raw events to canonical messages.

    Subclasses implement ``handlers()``; each handler returns a message or
    None for "no message". Events whose type has no handler are logged at
    debug level and dropped.

    Session handling: the first non-empty ``session_id`` seen on any event
    (or passed to ``capture_session`` by a handler) becomes the session id.
    Messages normalized before that point are remembered and patched in
    place once it arrives, so a consumer that collects the whole sequence
    sees the id on every message.
    """

    backend_name: ClassVar[str] = "backend"
    tool_id_prefix: ClassVar[str] = "tool"

    def __init__(self, *, debug_raw: bool | None = None) -> None:
        self.session_id: str | None = None
        self.tool_ids = ToolUseIdCounter(self.tool_id_prefix)
        self._pending: list[ProviderMessage] = []
        self._debug_raw = raw_output_debug_enabled() if debug_raw is None else debug_raw
        self._handlers = self.handlers()

    def handlers(self) -> dict[str, EventHandler]:
        """Dispatch table: event ``type`` -> handler."""
        raise NotImplementedError

    def normalize(self, event: Any) -> ProviderMessage | None:
        if not isinstance(event, dict):
            logger.debug(
                "Ignoring non-object event",
                extra={"backend": self.backend_name, "event_type": type(event).__name__},
            )
            return None

        event_type = event.get("type")
        if self._debug_raw:
            logger.info(
                f"[RAW EVENT] backend={self.backend_name} type={event_type} "
                f"subtype={event.get('subtype', 'none')}"
            )

        session_id = event.get("session_id")
        if isinstance(session_id, str):
            self.capture_session(session_id)

        handler = self._handlers.get(event_type) if isinstance(event_type, str) else None
        if handler is None:
            logger.debug(
                "Unhandled event type",
                extra={"backend": self.backend_name, "event_type": event_type},
            )
            return None

        try:
            message = handler(event)
        except MALFORMED_EVENT_ERRORS as e:
            logger.warning(
                "Skipping malformed event",
                extra={"backend": self.backend_name, "event_type": event_type, "error": str(e)},
            )
            return None

        if message is None:
            if self._debug_raw:
                logger.info(f"[DROPPED EVENT] type={event_type}")
            return None
        return self._stamp(message)

    def capture_session(self, session_id: str | None) -> None:
        """Record the session id and backfill messages that lacked one."""
        if not session_id or self.session_id:
            return
        self.session_id = session_id
        logger.debug("Session started", extra={"backend": self.backend_name, "session_id": session_id})
        for message in self._pending:
            message.session_id = session_id
        self._pending.clear()

    def _stamp(self, message: ProviderMessage) -> ProviderMessage:
        if message.session_id is None:
            if self.session_id:
                message.session_id = self.session_id
            else:
                self._pending.append(message)
        return message

    # Message constructors shared by the backends

    @staticmethod
    def text(text: str) -> AssistantMessage:
        return AssistantMessage(content=[TextBlock(text=text)])

    @staticmethod
    def tool_use(name: str, tool_use_id: str | None, tool_input: Any) -> AssistantMessage:
        return AssistantMessage(content=[ToolUseBlock(name=name, tool_use_id=tool_use_id, input=tool_input)])

    @staticmethod
    def tool_result(tool_use_id: str | None, content: str) -> AssistantMessage:
        return AssistantMessage(content=[ToolResultBlock(tool_use_id=tool_use_id, content=content)])

    @staticmethod
    def error(message: str) -> ErrorMessage:
        return ErrorMessage(error=message)

    @staticmethod
    def result(text: str | None = None) -> ResultMessage:
        return ResultMessage(result=text)

    @staticmethod
    def ignore(event: dict[str, Any]) -> None:
        """Handler for event types that are part of the protocol but yield nothing."""
        return None


__all__ = [
    "MALFORMED_EVENT_ERRORS",
    "EventHandler",
    "ToolUseIdCounter",
    "EventNormalizer",
]
