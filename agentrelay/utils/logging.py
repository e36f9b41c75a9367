"""Logging configuration for agentrelay.

Logging is off by default and controlled by environment variables.

Environment Variables:
    AGENTRELAY_LOG: Set to "true" to enable logging (default: "false")
    AGENTRELAY_LOG_FILE: Path to log file (default: ~/.agentrelay.log)
    AGENTRELAY_LOG_LEVEL: Level name for the file handler (default: "INFO")
    AGENTRELAY_DEBUG_RAW_OUTPUT: Set to "true" to log every raw backend event
"""

import logging
import os
from pathlib import Path

# Environment variable configuration
LOG_ENABLED = os.environ.get("AGENTRELAY_LOG", "false").lower() == "true"
LOG_FILE = Path(os.environ.get("AGENTRELAY_LOG_FILE", str(Path.home() / ".agentrelay.log")))
LOG_LEVEL = os.environ.get("AGENTRELAY_LOG_LEVEL", "INFO").upper()

# Module-level logger instance
_logger: logging.Logger | None = None


def setup_logging() -> logging.Logger:
    """Configure logging based on environment variables.

    Creates a logger that writes to the configured log file when
    AGENTRELAY_LOG is set to "true". Otherwise, uses a NullHandler
    to suppress all log output.

    Returns:
        Configured logger instance
    """
    global _logger

    if _logger is not None:
        return _logger

    logger = logging.getLogger("agentrelay")

    # Clear any existing handlers
    logger.handlers.clear()

    if LOG_ENABLED:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

        handler = logging.FileHandler(LOG_FILE)
        handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    else:
        logger.addHandler(logging.NullHandler())

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Get the configured logger instance, creating it if necessary."""
    global _logger
    if _logger is None:
        return setup_logging()
    return _logger


def raw_output_debug_enabled() -> bool:
    """Whether every raw backend event should be logged."""
    return os.environ.get("AGENTRELAY_DEBUG_RAW_OUTPUT", "").lower() in ("true", "1")


def log_message(message: str) -> None:
    """Log a message if logging is enabled.

    Args:
        message: Message to log
    """
    logger = get_logger()
    logger.info(message)


def log_command(command: str, exit_code: int | None = 0) -> None:
    """Log external command execution with its exit code.

    Args:
        command: The command that was executed (never includes prompt text)
        exit_code: The exit code returned by the command
    """
    logger = get_logger()
    logger.info(f"COMMAND: {command} | EXIT_CODE: {exit_code}")


def log_backend_metadata(
    backend_name: str,
    *,
    model: str | None = None,
    cwd: str | None = None,
    read_only: bool | None = None,
) -> None:
    """Log sanitized execution metadata for debugging.

    Used by providers to log model/cwd info without leaking prompt contents.

    Args:
        backend_name: Name of the backend (e.g. "cursor", "codex")
        model: Model name if specified
        cwd: Working directory of the execution
        read_only: Whether the execution was read-only
    """
    parts: list[str] = []
    if model:
        parts.append(f"model={model}")
    if cwd:
        parts.append(f"cwd={cwd}")
    if read_only is not None:
        parts.append(f"read_only={read_only}")
    if parts:
        log_message(f"  {backend_name} metadata: {', '.join(parts)}")


__all__ = [
    "LOG_ENABLED",
    "LOG_FILE",
    "setup_logging",
    "get_logger",
    "raw_output_debug_enabled",
    "log_message",
    "log_command",
    "log_backend_metadata",
]
