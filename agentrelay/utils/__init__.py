"""Utility modules for agentrelay."""

from agentrelay.utils.errors import (
    AgentRelayError,
    ConfigError,
    ExitCode,
    UserCancelledError,
)
from agentrelay.utils.logging import (
    get_logger,
    log_backend_metadata,
    log_command,
    log_message,
    setup_logging,
)

__all__ = [
    # Errors
    "ExitCode",
    "AgentRelayError",
    "ConfigError",
    "UserCancelledError",
    # Logging
    "setup_logging",
    "get_logger",
    "log_message",
    "log_command",
    "log_backend_metadata",
]
