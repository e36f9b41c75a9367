"""Custom exceptions and exit codes for agentrelay.

This module defines the exit codes and the base exception hierarchy used
throughout the package. Provider-specific failures live in
agentrelay.providers.errors and build on these classes.
"""

from enum import IntEnum
from typing import ClassVar


class ExitCode(IntEnum):
    """Process exit codes reported by the agentrelay CLI.

    These codes are used for consistent error reporting and can be
    checked by calling scripts or CI systems.
    """

    SUCCESS = 0
    GENERAL_ERROR = 1
    BACKEND_NOT_INSTALLED = 2
    BACKEND_NOT_AUTHENTICATED = 3
    USER_CANCELLED = 4
    RATE_LIMITED = 5
    CONFIG_ERROR = 6


class AgentRelayError(Exception):
    """Base exception for agentrelay errors.

    All custom exceptions in this package inherit from this class.
    Each exception type has an associated exit code for proper error reporting.
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.GENERAL_ERROR

    def __init__(self, message: str, exit_code: ExitCode | None = None) -> None:
        """Initialize the exception."""
        super().__init__(message)
        self._exit_code = exit_code

    @property
    def exit_code(self) -> ExitCode:
        """Get the exit code for this exception."""
        if self._exit_code is not None:
            return self._exit_code
        return self.__class__._default_exit_code


class ConfigError(AgentRelayError):
    """Configuration is invalid.

    Raised when:
    - A backend name in the config file or on the command line is unknown
    - An MCP server file does not contain a mapping
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.CONFIG_ERROR


class UserCancelledError(AgentRelayError):
    """User cancelled the operation (Ctrl+C at a prompt)."""

    _default_exit_code: ClassVar[ExitCode] = ExitCode.USER_CANCELLED


__all__ = [
    "ExitCode",
    "AgentRelayError",
    "ConfigError",
    "UserCancelledError",
]
