"""Configuration for agentrelay."""

from agentrelay.config.mcp import load_mcp_servers
from agentrelay.config.platforms import AgentPlatform, parse_agent_platform
from agentrelay.config.settings import CONFIG_FILE, Settings, load_settings

__all__ = [
    "AgentPlatform",
    "parse_agent_platform",
    "Settings",
    "CONFIG_FILE",
    "load_settings",
    "load_mcp_servers",
]
