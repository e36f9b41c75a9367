"""Text deduplication for streams that repeat themselves.

cursor-agent with ``--stream-partial-output`` sometimes emits the same text
block twice in a row, and usually finishes with one large block that replays
everything already streamed. ``TextDedupFilter`` drops both.
"""

from __future__ import annotations

import re

from agentrelay.providers.types import AssistantMessage, ContentBlock, ProviderMessage, TextBlock

_WHITESPACE_RE = re.compile(r"\s+")

# A fragment must be at least this large relative to the accumulated text
# to be considered a replay.
REPLAY_LENGTH_RATIO = 0.8

# Length of the accumulated-text prefix compared against a candidate replay
REPLAY_PREFIX_CHARS = 100


def _normalize(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


class TextDedupFilter:
    """Per-execution filter over assistant text blocks.

    Only text blocks are inspected; tool blocks pass through. Messages that
    end up with no content are dropped entirely.
    """

    def __init__(self) -> None:
        self.last_text_block = ""
        self.accumulated_text = ""

    def is_replay(self, text: str) -> bool:
        accumulated = self.accumulated_text
        if not accumulated or len(text) <= len(accumulated) * REPLAY_LENGTH_RATIO:
            return False

        normalized_text = _normalize(text)
        normalized_accum = _normalize(accumulated)
        if len(accumulated) > REPLAY_PREFIX_CHARS:
            return normalized_accum[:REPLAY_PREFIX_CHARS] in normalized_text
        return len(normalized_text) > len(normalized_accum) and normalized_text.startswith(normalized_accum)

    def accept(self, text: str) -> bool:
        """Decide whether a text fragment is new, updating state if so."""
        if not text.strip():
            return False
        if text == self.last_text_block:
            return False
        if self.is_replay(text):
            return False
        self.last_text_block = text
        self.accumulated_text += text
        return True

    def filter(self, message: ProviderMessage) -> ProviderMessage | None:
        if not isinstance(message, AssistantMessage):
            return message

        kept: list[ContentBlock] = [
            block for block in message.content if not isinstance(block, TextBlock) or self.accept(block.text)
        ]
        if not kept:
            return None
        message.content = kept
        return message


__all__ = ["TextDedupFilter"]
