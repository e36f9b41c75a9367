"""Environment variable helpers.

Expands ``${VAR}`` references in configuration values and keeps secrets
(API keys, tokens) out of log output.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any

# Keys containing these substrings are considered sensitive and should not be logged
SENSITIVE_KEY_PATTERNS = ("TOKEN", "KEY", "SECRET", "PASSWORD", "CREDENTIAL", "AUTH")

_ENV_REF_RE = re.compile(r"\$\{([^}]+)\}")

logger = logging.getLogger(__name__)


def is_sensitive_key(key: str) -> bool:
    """Check if an environment or configuration key holds sensitive data."""
    key_upper = key.upper()
    return any(pattern in key_upper for pattern in SENSITIVE_KEY_PATTERNS)


def redact_env(env: dict[str, str]) -> dict[str, str]:
    """Return a copy of ``env`` safe for logging."""
    return {k: ("***" if is_sensitive_key(k) else v) for k, v in env.items()}


def expand_env_vars(value: Any, context: str = "") -> Any:
    """Recursively expand ${VAR} references to environment variables.

    Supports nested dicts and lists (as loaded from MCP server YAML files).
    Missing variables are left as the literal ``${VAR}`` text and reported
    with a warning, without naming sensitive keys.

    Args:
        value: The value to expand (string, dict, list, or other)
        context: Key path used in warnings (e.g., "servers.github.env")

    Returns:
        The value with ${VAR} references replaced with environment values
    """
    if isinstance(value, str):

        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                if context and not is_sensitive_key(context):
                    logger.warning(f"Environment variable '{var_name}' not set in {context}")
                else:
                    logger.warning(f"Environment variable '{var_name}' not set")
                return match.group(0)
            return env_value

        return _ENV_REF_RE.sub(replace, value)
    if isinstance(value, dict):
        return {
            k: expand_env_vars(v, context=f"{context}.{k}" if context else str(k))
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [
            expand_env_vars(v, context=f"{context}[{i}]" if context else f"[{i}]")
            for i, v in enumerate(value)
        ]
    return value


__all__ = [
    "SENSITIVE_KEY_PATTERNS",
    "expand_env_vars",
    "is_sensitive_key",
    "redact_env",
]
