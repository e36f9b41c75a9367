"""Loader for MCP server configuration files.

MCP server definitions are passed through ``ExecuteOptions.mcp_servers``.
Backends that cannot forward them to their CLI log a warning and ignore
them. The file may hold the server mapping directly or under an
``mcpServers`` key (the layout Claude Code and Cursor use)::

    mcpServers:
      github:
        command: npx
        args: ["-y", "@modelcontextprotocol/server-github"]
        env:
          GITHUB_TOKEN: ${GITHUB_TOKEN}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from agentrelay.utils.env_utils import expand_env_vars
from agentrelay.utils.errors import ConfigError


def load_mcp_servers(path: Path) -> dict[str, Any]:
    """Read an MCP server file (YAML or JSON) into a mapping.

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML, or does
            not contain a mapping of server definitions.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read MCP config {path}: {e}") from e

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in MCP config {path}: {e}") from e

    if isinstance(data, dict) and "mcpServers" in data:
        data = data["mcpServers"]

    if not isinstance(data, dict):
        raise ConfigError(f"MCP config {path} must contain a mapping of servers")

    for name, server in data.items():
        if not isinstance(server, dict):
            raise ConfigError(f"MCP server '{name}' in {path} must be a mapping")

    return expand_env_vars(data, context="mcpServers")


__all__ = ["load_mcp_servers"]
