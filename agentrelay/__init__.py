"""agentrelay - one streaming interface over several AI coding-agent CLIs.

This package routes a model identifier to the right backend CLI (Claude Code,
Cursor Agent, OpenCode, Codex), runs it as a subprocess, and normalizes its
newline-delimited JSON output into a single stream of typed messages.
"""

__version__ = "0.1.0"
SCRIPT_NAME = "agentrelay"

__all__ = [
    "__version__",
    "SCRIPT_NAME",
]
