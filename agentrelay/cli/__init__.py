"""Command-line interface for agentrelay.

Usage:
    agentrelay check [BACKEND] [--json]
    agentrelay models [--backend NAME] [--json]
    agentrelay resolve MODEL
    agentrelay run [PROMPT] [--model MODEL] [--cwd DIR] [--read-only] [--timeout SECONDS] [--json]
"""

from agentrelay.cli.app import app, main, version_callback

__all__ = [
    "app",
    "main",
    "version_callback",
]
