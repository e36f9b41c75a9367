"""Windows Subsystem for Linux helpers.

Some backend CLIs (cursor-agent) ship no native Windows build. On Windows
hosts they are discovered and launched inside a WSL distribution instead.
Every probe here is best-effort: failures return None/False/[] and never
raise.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import sys
from dataclasses import dataclass

from agentrelay.platform.process import ProcessError, SubprocessOptions, run_process

logger = logging.getLogger(__name__)

DEFAULT_WSL_TIMEOUT = 10.0

# Distributions searched first, in this order (substring, case-insensitive)
PRIORITY_DISTRIBUTIONS = ("Ubuntu", "Debian", "openSUSE", "Fedora", "Arch")

# Directories probed inside WSL when ``which`` finds nothing
WSL_COMMON_DIRS = ("$HOME/.local/bin", "/usr/local/bin", "/usr/bin")

_DRIVE_PATH_RE = re.compile(r"^([A-Za-z]):\\(.*)$")
_MNT_PATH_RE = re.compile(r"^/mnt/([a-z])/(.*)$")


@dataclass
class WslCliResult:
    """Location of a CLI inside WSL.

    Attributes:
        wsl_path: Linux path of the executable inside the distribution
        distribution: Distribution it was found in (None = default distro)
    """

    wsl_path: str
    distribution: str | None = None


def get_wsl_exe_path() -> str:
    """Full path to wsl.exe (System32 is not always on PATH for child processes)."""
    system_root = os.environ.get("SystemRoot") or os.environ.get("SYSTEMROOT") or "C:\\Windows"
    return f"{system_root}\\System32\\wsl.exe"


def _wsl_prefix(distribution: str | None) -> list[str]:
    if distribution:
        return ["wsl.exe", "-d", distribution]
    return ["wsl.exe"]


def exec_in_wsl(
    args: list[str],
    *,
    distribution: str | None = None,
    timeout: float = DEFAULT_WSL_TIMEOUT,
) -> str | None:
    """Run a command inside WSL and return its stripped stdout, or None on failure."""
    command, *prefix_args = _wsl_prefix(distribution)
    options = SubprocessOptions(command=command, args=[*prefix_args, *args])
    try:
        result = run_process(options, timeout=timeout)
    except ProcessError as e:
        logger.debug("WSL command failed", extra={"wsl_args": args[:3], "error": str(e)})
        return None
    if result.exit_code != 0:
        return None
    return result.stdout.strip()


def is_wsl_available(timeout: float = 5.0) -> bool:
    """Check whether WSL can run commands on this host (Windows only)."""
    if sys.platform != "win32":
        return False

    if exec_in_wsl(["echo", "ok"], timeout=timeout) is not None:
        logger.debug("WSL is available")
        return True

    try:
        result = run_process(SubprocessOptions(command="wsl.exe", args=["--status"]), timeout=timeout)
    except ProcessError:
        logger.debug("WSL is not available")
        return False
    available = result.exit_code == 0
    logger.debug("WSL availability via --status", extra={"available": available})
    return available


def _decode_wsl_listing(raw: bytes) -> str:
    # ``wsl -l`` writes UTF-16LE unless WSL_UTF8=1 is set
    if b"\x00" in raw:
        return raw.decode("utf-16le", errors="replace")
    return raw.decode("utf-8", errors="replace")


def list_wsl_distributions(timeout: float = 5.0) -> list[str]:
    """Installed WSL distributions, excluding minimal docker-desktop ones."""
    try:
        result = subprocess.run(
            ["wsl.exe", "-l", "-q"],
            capture_output=True,
            stdin=subprocess.DEVNULL,
            timeout=timeout,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("Could not list WSL distributions", extra={"error": str(e)})
        return []
    if result.returncode != 0:
        return []

    text = _decode_wsl_listing(result.stdout)
    distributions = [
        line.replace("\0", "").strip()
        for line in text.splitlines()
        if line.replace("\0", "").strip()
    ]
    return [d for d in distributions if "docker-desktop" not in d]


def sort_distributions(distributions: list[str]) -> list[str]:
    """Order distributions by PRIORITY_DISTRIBUTIONS, unknown ones last (stable)."""

    def rank(name: str) -> int:
        lowered = name.lower()
        for index, preferred in enumerate(PRIORITY_DISTRIBUTIONS):
            if preferred.lower() in lowered:
                return index
        return len(PRIORITY_DISTRIBUTIONS)

    return sorted(distributions, key=rank)


def _search_distribution(
    cli_name: str, distribution: str | None, timeout: float
) -> WslCliResult | None:
    label = distribution or "default"

    found = exec_in_wsl(["which", cli_name], distribution=distribution, timeout=timeout)
    if found and "not found" not in found and found.startswith("/"):
        logger.debug(f"Found {cli_name} in WSL ({label}) via which: {found}")
        return WslCliResult(wsl_path=found.splitlines()[0], distribution=distribution)

    for base_dir in WSL_COMMON_DIRS:
        candidate = f"{base_dir}/{cli_name}"
        found = exec_in_wsl(
            ["sh", "-c", f"test -x {candidate} && echo {candidate}"],
            distribution=distribution,
            timeout=timeout,
        )
        if found and found.startswith("/"):
            logger.debug(f"Found {cli_name} in WSL ({label}) at: {found}")
            return WslCliResult(wsl_path=found, distribution=distribution)

    return None


def find_cli_in_wsl(
    cli_name: str,
    *,
    distribution: str | None = None,
    timeout: float = DEFAULT_WSL_TIMEOUT,
) -> WslCliResult | None:
    """Locate ``cli_name`` inside WSL.

    When ``distribution`` is given only that distribution is searched.
    Otherwise the installed distributions are searched in priority order,
    then the default distribution as a last resort.
    """
    if not is_wsl_available(timeout=timeout):
        return None

    if distribution:
        return _search_distribution(cli_name, distribution, timeout)

    distributions = sort_distributions(list_wsl_distributions(timeout=timeout))
    logger.debug(f"Searching for {cli_name} in WSL distributions: {', '.join(distributions)}")

    for distro in distributions:
        result = _search_distribution(cli_name, distro, timeout)
        if result:
            return result

    result = _search_distribution(cli_name, None, timeout)
    if result is None:
        logger.debug(f"{cli_name} not found in any WSL distribution")
    return result


def create_wsl_command(
    wsl_cli_path: str,
    args: list[str],
    *,
    distribution: str | None = None,
    cwd: str | None = None,
) -> tuple[str, list[str]]:
    """Build (command, argv) that runs ``wsl_cli_path`` inside WSL.

    ``cwd`` is a Windows path; it is translated and passed with ``--cd``.
    """
    wsl_args: list[str] = []
    if distribution:
        wsl_args += ["-d", distribution]
    if cwd:
        wsl_args += ["--cd", windows_to_wsl_path(cwd)]
    return get_wsl_exe_path(), [*wsl_args, wsl_cli_path, *args]


def windows_to_wsl_path(windows_path: str) -> str:
    """Translate ``C:\\Users\\me`` to ``/mnt/c/Users/me``.

    UNC paths are returned unchanged; other paths only get their
    separators converted.
    """
    if windows_path.startswith("\\\\"):
        return windows_path

    match = _DRIVE_PATH_RE.match(windows_path)
    if match:
        drive, rest = match.groups()
        rest = rest.replace("\\", "/")
        return f"/mnt/{drive.lower()}/{rest}"

    return windows_path.replace("\\", "/")


def wsl_to_windows_path(wsl_path: str) -> str:
    """Translate ``/mnt/c/Users/me`` back to ``C:\\Users\\me``."""
    match = _MNT_PATH_RE.match(wsl_path)
    if match:
        drive, rest = match.groups()
        rest = rest.replace("/", "\\")
        return f"{drive.upper()}:\\{rest}"
    return wsl_path


__all__ = [
    "WslCliResult",
    "PRIORITY_DISTRIBUTIONS",
    "get_wsl_exe_path",
    "exec_in_wsl",
    "is_wsl_available",
    "list_wsl_distributions",
    "sort_distributions",
    "find_cli_in_wsl",
    "create_wsl_command",
    "windows_to_wsl_path",
    "wsl_to_windows_path",
]
