"""Settings dataclass and config file loader for agentrelay.

The configuration file is a flat list of ``KEY="value"`` lines::

    # agentrelay configuration
    DEFAULT_MODEL="cursor-auto"
    CURSOR_WSL_DISTRIBUTION="Ubuntu"
    PROBE_TIMEOUT_SECONDS="10"

Values may reference environment variables with ``${VAR}``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path

from agentrelay.config.platforms import AgentPlatform, parse_agent_platform
from agentrelay.utils.env_utils import expand_env_vars

logger = logging.getLogger(__name__)

# Default configuration file path
CONFIG_FILE = Path(os.environ.get("AGENTRELAY_CONFIG", str(Path.home() / ".agentrelay-config")))

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off", "")


@dataclass
class Settings:
    """Configuration settings for agentrelay.

    All settings have defaults; the config file only needs the keys
    that differ.

    Attributes:
        default_model: Model used by ``agentrelay run`` when none is given
        default_backend: Backend whose default model is used when no model is configured
        cursor_wsl_distribution: WSL distribution to search for cursor-agent on Windows
        probe_timeout_seconds: Timeout for auth self-checks and WSL probes
        version_timeout_seconds: Timeout for ``--version`` probes
        debug_raw_output: Log every raw backend event (same as AGENTRELAY_DEBUG_RAW_OUTPUT)
    """

    default_model: str = ""
    default_backend: str = ""
    cursor_wsl_distribution: str = ""
    probe_timeout_seconds: float = 10.0
    version_timeout_seconds: float = 5.0
    debug_raw_output: bool = False

    # Config key to attribute mapping
    _key_mapping: dict[str, str] = field(
        default_factory=lambda: {
            "DEFAULT_MODEL": "default_model",
            "DEFAULT_BACKEND": "default_backend",
            "CURSOR_WSL_DISTRIBUTION": "cursor_wsl_distribution",
            "PROBE_TIMEOUT_SECONDS": "probe_timeout_seconds",
            "VERSION_TIMEOUT_SECONDS": "version_timeout_seconds",
            "DEBUG_RAW_OUTPUT": "debug_raw_output",
        },
        repr=False,
    )

    def get_attribute_for_key(self, key: str) -> str | None:
        """Get the attribute name for a config key."""
        return self._key_mapping.get(key)

    @classmethod
    def get_config_keys(cls) -> list[str]:
        """Get list of all valid configuration keys."""
        temp = cls()
        return list(temp._key_mapping.keys())

    def get_default_backend(self) -> AgentPlatform | None:
        """Get the default backend as an AgentPlatform, or None if not configured.

        Raises:
            ConfigError: If DEFAULT_BACKEND names an unknown backend
        """
        return parse_agent_platform(self.default_backend, context="DEFAULT_BACKEND")

    def apply(self, key: str, raw_value: str) -> None:
        """Set the attribute for ``key`` from its raw string value.

        Unknown keys and unparseable values are logged and ignored.
        """
        attr = self.get_attribute_for_key(key)
        if attr is None:
            logger.warning("Ignoring unknown config key", extra={"key": key})
            return

        value = expand_env_vars(raw_value, context=key)
        current = getattr(self, attr)
        if isinstance(current, bool):
            lowered = value.strip().lower()
            if lowered in _TRUE_VALUES:
                setattr(self, attr, True)
            elif lowered in _FALSE_VALUES:
                setattr(self, attr, False)
            else:
                logger.warning(f"Invalid boolean for {key}: '{value}', keeping {current}")
        elif isinstance(current, float):
            try:
                parsed = float(value)
            except ValueError:
                logger.warning(f"Invalid number for {key}: '{value}', keeping {current}")
                return
            if parsed <= 0:
                logger.warning(f"{key} must be positive, keeping {current}")
                return
            setattr(self, attr, parsed)
        else:
            setattr(self, attr, value)


def _parse_line(line: str) -> tuple[str, str] | None:
    stripped = line.strip()
    if not stripped or stripped.startswith("#") or "=" not in stripped:
        return None
    key, _, value = stripped.partition("=")
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1]
    return key.strip(), value


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from the config file.

    A missing file yields defaults. Lines that are not ``KEY=value`` pairs
    are skipped.

    Args:
        path: Config file to read (default: CONFIG_FILE)

    Returns:
        Populated Settings instance
    """
    settings = Settings()
    config_path = path or CONFIG_FILE
    try:
        content = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return settings
    except OSError as e:
        logger.warning(f"Could not read config file {config_path}: {e}")
        return settings

    for line in content.splitlines():
        parsed = _parse_line(line)
        if parsed is None:
            continue
        settings.apply(*parsed)

    logger.debug(
        "Loaded settings",
        extra={"path": str(config_path), "keys": [f.name for f in fields(settings)]},
    )
    return settings


__all__ = [
    "Settings",
    "CONFIG_FILE",
    "load_settings",
]
