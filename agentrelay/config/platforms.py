"""Backend platform identifiers."""

from enum import Enum

from agentrelay.utils.errors import ConfigError


class AgentPlatform(Enum):
    """Supported agent CLI backends.

    Attributes:
        CLAUDE: Claude Code CLI (``claude``)
        CURSOR: Cursor Agent CLI (``cursor-agent``)
        OPENCODE: OpenCode CLI (``opencode``)
        CODEX: OpenAI Codex CLI (``codex``)
    """

    CLAUDE = "claude"
    CURSOR = "cursor"
    OPENCODE = "opencode"
    CODEX = "codex"


def parse_agent_platform(
    value: str | None,
    default: AgentPlatform | None = None,
    context: str = "",
) -> AgentPlatform | None:
    """Safely parse an AgentPlatform from a string value.

    Args:
        value: The string value to parse (e.g., "cursor", "Codex")
        default: Value to return if value is None or empty
        context: Context string for error messages (e.g., "DEFAULT_BACKEND")

    Returns:
        Parsed AgentPlatform enum member, or ``default``

    Raises:
        ConfigError: If value is not a known backend
    """
    if value is None or value.strip() == "":
        return default

    value_lower = value.strip().lower()
    valid_values = [e.value for e in AgentPlatform]

    try:
        return AgentPlatform(value_lower)
    except ValueError:
        context_msg = f" in {context}" if context else ""
        raise ConfigError(
            f"Invalid backend '{value}'{context_msg}. Allowed values: {', '.join(valid_values)}"
        ) from None


__all__ = [
    "AgentPlatform",
    "parse_agent_platform",
]
