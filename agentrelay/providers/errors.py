"""Provider errors and CLI failure classification.

A failed backend process is turned into an ``ErrorInfo`` by matching its
stderr against known patterns, then surfaced to callers as ``ProviderError``.
Backends supply their own messages and suggestions on top of the generic
ones (see ``classify_cli_error``).
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from agentrelay.utils.errors import AgentRelayError, ExitCode

# ── Shared rate-limit detection ──────────────────────────────────────────────
# Only match the rate-limit status code with word boundaries so ids such as
# "PROJ-4290" do not trigger it.
_HTTP_RATE_LIMIT_STATUS_RE = re.compile(r"\b429\b")

_COMMON_RATE_LIMIT_KEYWORDS: tuple[str, ...] = (
    "rate limit",
    "rate_limit",
    "too many requests",
    "quota exceeded",
    "throttl",
)


def matches_common_rate_limit(
    output: str,
    *,
    extra_keywords: tuple[str, ...] = (),
    extra_status_re: re.Pattern[str] | None = None,
) -> bool:
    """Check if output matches common rate-limit patterns.

    Backends layer provider-specific patterns on top of the common set with
    ``extra_keywords`` / ``extra_status_re``.
    """
    if not output:
        return False
    output_lower = output.lower()
    if _HTTP_RATE_LIMIT_STATUS_RE.search(output_lower):
        return True
    if extra_status_re and extra_status_re.search(output_lower):
        return True
    all_keywords = _COMMON_RATE_LIMIT_KEYWORDS + extra_keywords
    return any(kw in output_lower for kw in all_keywords)


class ErrorCode(str, Enum):
    """Failure categories shared by every backend."""

    NOT_INSTALLED = "not_installed"
    NOT_AUTHENTICATED = "not_authenticated"
    RATE_LIMITED = "rate_limited"
    MODEL_UNAVAILABLE = "model_unavailable"
    NETWORK_ERROR = "network_error"
    PROCESS_CRASHED = "process_crashed"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


@dataclass
class ErrorInfo:
    code: ErrorCode
    message: str
    recoverable: bool
    suggestion: str | None = None


_AUTH_PATTERNS = ("not authenticated", "please log in", "unauthorized")
_MODEL_PATTERNS = ("model not available", "invalid model", "unknown model")
_NETWORK_PATTERNS = ("network", "connection", "econnrefused", "timeout")
_CRASH_PATTERNS = ("killed", "sigterm")

# Shell-style exit codes for SIGKILL (128 + 9) and SIGTERM (128 + 15).
# Popen reports the same kills as -9 and -15.
_FORCED_EXIT_CODES = (137, 143)


def _default_texts(cli_name: str) -> dict[ErrorCode, tuple[str, str | None]]:
    return {
        ErrorCode.NOT_AUTHENTICATED: (
            f"{cli_name} is not authenticated",
            f'Run "{cli_name} login" to authenticate',
        ),
        ErrorCode.RATE_LIMITED: ("API rate limit exceeded", "Wait a few minutes and try again"),
        ErrorCode.MODEL_UNAVAILABLE: ("Requested model is not available", "Select a different model"),
        ErrorCode.NETWORK_ERROR: (
            "Network connection error",
            "Check your internet connection and try again",
        ),
        ErrorCode.PROCESS_CRASHED: (
            "Process was terminated",
            "The process may have run out of memory. Try a simpler task.",
        ),
    }


def _was_killed(exit_code: int | None) -> bool:
    if exit_code is None:
        return False
    return exit_code < 0 or exit_code in _FORCED_EXIT_CODES


def _match_code(stderr_lower: str, exit_code: int | None) -> ErrorCode:
    if any(p in stderr_lower for p in _AUTH_PATTERNS):
        return ErrorCode.NOT_AUTHENTICATED
    if matches_common_rate_limit(stderr_lower):
        return ErrorCode.RATE_LIMITED
    if any(p in stderr_lower for p in _MODEL_PATTERNS):
        return ErrorCode.MODEL_UNAVAILABLE
    if any(p in stderr_lower for p in _NETWORK_PATTERNS):
        return ErrorCode.NETWORK_ERROR
    if _was_killed(exit_code) or any(p in stderr_lower for p in _CRASH_PATTERNS):
        return ErrorCode.PROCESS_CRASHED
    return ErrorCode.UNKNOWN


def classify_cli_error(
    stderr: str,
    exit_code: int | None,
    *,
    cli_name: str,
    messages: Mapping[ErrorCode, str] | None = None,
    suggestions: Mapping[ErrorCode, str] | None = None,
    exit_message: str = "Process exited with code {exit_code}",
) -> ErrorInfo:
    """Classify a failed CLI run from its stderr and exit code.

    Patterns are checked in order: authentication, rate limit, model
    availability, network, crash. Anything else is ``UNKNOWN`` and not
    recoverable.

    Args:
        stderr: Everything the process wrote to stderr
        exit_code: Process exit code, if it exited
        cli_name: Executable name used in the generic messages
        messages: Per-code message overrides
        suggestions: Per-code suggestion overrides
        exit_message: Message for an unrecognised failure with empty stderr;
            formatted with ``exit_code``

    Example:
        >>> classify_cli_error("HTTP 429 Too Many Requests", 1, cli_name="x").code
        <ErrorCode.RATE_LIMITED: 'rate_limited'>
    """
    messages = messages or {}
    suggestions = suggestions or {}
    code = _match_code((stderr or "").lower(), exit_code)

    if code is ErrorCode.UNKNOWN:
        return ErrorInfo(
            code=code,
            message=(stderr or "").strip() or exit_message.format(exit_code=exit_code),
            recoverable=False,
            suggestion=suggestions.get(code),
        )

    default_message, default_suggestion = _default_texts(cli_name)[code]
    return ErrorInfo(
        code=code,
        message=messages.get(code, default_message),
        recoverable=True,
        suggestion=suggestions.get(code, default_suggestion),
    )


_EXIT_CODES: dict[ErrorCode, ExitCode] = {
    ErrorCode.NOT_INSTALLED: ExitCode.BACKEND_NOT_INSTALLED,
    ErrorCode.NOT_AUTHENTICATED: ExitCode.BACKEND_NOT_AUTHENTICATED,
    ErrorCode.RATE_LIMITED: ExitCode.RATE_LIMITED,
}


class ProviderError(AgentRelayError):
    """A backend execution failed.

    Terminal for the execution that raised it; nothing is retried.

    Attributes:
        code: Failure category
        recoverable: Whether retrying (after the suggested fix) may succeed
        suggestion: Actionable hint for the user
        backend_name: Registry name of the failing backend
        stderr: Raw stderr of the process, if any
        process_exit_code: Exit code of the backend process, if any
    """

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode = ErrorCode.UNKNOWN,
        recoverable: bool = False,
        suggestion: str | None = None,
        backend_name: str | None = None,
        stderr: str = "",
        process_exit_code: int | None = None,
    ) -> None:
        super().__init__(message, _EXIT_CODES.get(code))
        self.code = code
        self.recoverable = recoverable
        self.suggestion = suggestion
        self.backend_name = backend_name
        self.stderr = stderr
        self.process_exit_code = process_exit_code

    @classmethod
    def from_info(
        cls,
        info: ErrorInfo,
        *,
        backend_name: str | None = None,
        stderr: str = "",
        process_exit_code: int | None = None,
    ) -> ProviderError:
        return cls(
            info.message,
            code=info.code,
            recoverable=info.recoverable,
            suggestion=info.suggestion,
            backend_name=backend_name,
            stderr=stderr,
            process_exit_code=process_exit_code,
        )


class ProviderConfigurationError(AgentRelayError):
    """No usable backend could be constructed.

    Raised when:
    - The registry has no registrations at all
    - Both the resolved backend and the baseline fail to construct
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.CONFIG_ERROR


class ProviderNotFoundError(AgentRelayError):
    """No backend is registered under the requested name or alias."""

    _default_exit_code: ClassVar[ExitCode] = ExitCode.CONFIG_ERROR


__all__ = [
    "matches_common_rate_limit",
    "ErrorCode",
    "ErrorInfo",
    "classify_cli_error",
    "ProviderError",
    "ProviderConfigurationError",
    "ProviderNotFoundError",
]
