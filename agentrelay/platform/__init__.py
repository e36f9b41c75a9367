"""OS boundary: subprocess streaming and WSL indirection."""

from agentrelay.platform.process import (
    ProcessError,
    ProcessResult,
    ProcessSpawnError,
    SubprocessOptions,
    run_process,
    stream_jsonl,
    terminate_process,
)
from agentrelay.platform.wsl import (
    WslCliResult,
    create_wsl_command,
    find_cli_in_wsl,
    is_wsl_available,
    windows_to_wsl_path,
    wsl_to_windows_path,
)

__all__ = [
    # Process
    "SubprocessOptions",
    "ProcessResult",
    "ProcessError",
    "ProcessSpawnError",
    "stream_jsonl",
    "run_process",
    "terminate_process",
    # WSL
    "WslCliResult",
    "create_wsl_command",
    "find_cli_in_wsl",
    "is_wsl_available",
    "windows_to_wsl_path",
    "wsl_to_windows_path",
]
