"""Subprocess helpers for backend CLIs.

``stream_jsonl`` owns the OS process boundary for an execution: it spawns
one process, feeds the prompt through stdin, and yields one parsed JSON value
per stdout line. It is a plain generator, so nothing is read from the process
until the consumer asks for the next value.

``run_process`` is the short-lived counterpart used by discovery probes
(``--version``, ``which`` inside WSL, credential reads).
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
import threading
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from agentrelay.utils.env_utils import redact_env
from agentrelay.utils.logging import log_command

logger = logging.getLogger(__name__)

# Grace period between SIGTERM and SIGKILL when stopping a process
TERMINATE_GRACE_SECONDS = 5.0

# How often the cancel watcher re-checks for process exit
_CANCEL_POLL_SECONDS = 0.1


@dataclass
class SubprocessOptions:
    """Everything needed to spawn one backend process.

    Attributes:
        command: Executable to run (resolved path, ``wsl.exe`` or ``npx``)
        args: Argument vector, never containing the prompt
        cwd: Working directory for the process
        env: Extra environment variables layered over ``os.environ``
        stdin_data: Text written to stdin before it is closed
        cancel_event: When set, the process is terminated and the stream ends
    """

    command: str
    args: list[str] = field(default_factory=list)
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    stdin_data: str | None = None
    cancel_event: threading.Event | None = None

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.args]

    def describe(self, max_args: int = 6) -> str:
        """Short command description for logs."""
        shown = " ".join(self.args[:max_args])
        suffix = " ..." if len(self.args) > max_args else ""
        return f"{self.command} {shown}{suffix}".strip()


@dataclass
class ProcessResult:
    """Captured output of a finished process."""

    stdout: str
    stderr: str
    exit_code: int | None


class ProcessError(Exception):
    """A backend process failed.

    Attributes:
        stderr: Everything the process wrote to stderr
        exit_code: Process exit code (None if it never started or timed out)
        timed_out: True when a probe exceeded its timeout
    """

    def __init__(
        self,
        message: str,
        *,
        stderr: str = "",
        exit_code: int | None = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.stderr = stderr
        self.exit_code = exit_code
        self.timed_out = timed_out


class ProcessSpawnError(ProcessError):
    """The executable could not be started at all."""


def _decode(data: str | bytes | None) -> str:
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data or ""


def _merged_env(extra: dict[str, str]) -> dict[str, str] | None:
    if not extra:
        return None
    return {**os.environ, **extra}


def terminate_process(process: subprocess.Popen, grace_seconds: float = TERMINATE_GRACE_SECONDS) -> None:
    """Stop a process: SIGTERM, then SIGKILL if it outlives the grace period."""
    if process.poll() is not None:
        return
    process.terminate()
    try:
        process.wait(timeout=grace_seconds)
    except subprocess.TimeoutExpired:
        logger.warning("Process did not terminate, sending SIGKILL", extra={"pid": process.pid})
        process.kill()
        process.wait()


def stream_jsonl(options: SubprocessOptions) -> Iterator[Any]:
    """Spawn a process and lazily yield parsed JSON values from its stdout.

    Blank lines are skipped and malformed lines are logged and skipped.
    There is no execution timeout; agent runs may be long.

    Cancellation: when ``options.cancel_event`` is set the process is
    terminated and the generator returns without raising. If the event is
    already set, nothing is spawned.

    Closing the generator early (``close()`` or garbage collection) kills a
    process that is still running.

    Raises:
        ProcessSpawnError: If the executable cannot be started.
        ProcessError: If the process exits non-zero without being cancelled.
    """
    cancel_event = options.cancel_event
    if cancel_event is not None and cancel_event.is_set():
        logger.debug("Execution cancelled before spawn", extra={"cmd": options.command})
        return

    logger.debug(
        "Spawning backend process",
        extra={
            "cmd": options.describe(),
            "cwd": options.cwd,
            "env": redact_env(options.env),
            "stdin_bytes": len(options.stdin_data) if options.stdin_data is not None else 0,
        },
    )

    try:
        process = subprocess.Popen(
            options.argv,
            cwd=options.cwd,
            env=_merged_env(options.env),
            stdin=subprocess.PIPE if options.stdin_data is not None else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,  # Line-buffered
        )
    except OSError as e:
        log_command(options.describe(), None)
        raise ProcessSpawnError(
            f"Failed to start {options.command}: {e}",
            stderr=str(e),
        ) from e

    stderr_chunks: list[str] = []
    finished = threading.Event()
    cancelled = threading.Event()
    helpers: list[threading.Thread] = []

    def feed_stdin() -> None:
        assert process.stdin is not None
        try:
            process.stdin.write(options.stdin_data or "")
        except (BrokenPipeError, OSError) as e:
            logger.debug("Process closed stdin early", extra={"error": str(e)})
        finally:
            try:
                process.stdin.close()
            except (BrokenPipeError, OSError):
                pass

    def drain_stderr() -> None:
        assert process.stderr is not None
        for line in process.stderr:
            stderr_chunks.append(line)
            logger.debug("Backend stderr", extra={"line": line.rstrip()})

    def watch_cancel() -> None:
        assert cancel_event is not None
        while not finished.is_set():
            if cancel_event.wait(timeout=_CANCEL_POLL_SECONDS):
                cancelled.set()
                logger.debug("Cancel signal received, terminating process", extra={"pid": process.pid})
                terminate_process(process)
                return

    if options.stdin_data is not None:
        helpers.append(threading.Thread(target=feed_stdin, daemon=True))
    helpers.append(threading.Thread(target=drain_stderr, daemon=True))
    if cancel_event is not None:
        helpers.append(threading.Thread(target=watch_cancel, daemon=True))
    for thread in helpers:
        thread.start()

    try:
        assert process.stdout is not None
        for line in process.stdout:
            if cancelled.is_set():
                break
            stripped = line.strip()
            if not stripped:
                continue
            try:
                value = json.loads(stripped)
            except json.JSONDecodeError as e:
                logger.warning(
                    "Skipping malformed JSONL line",
                    extra={"error": str(e), "line": stripped[:200]},
                )
                continue
            yield value

        process.wait()
        finished.set()
        for thread in helpers:
            thread.join(timeout=1)

        exit_code = process.returncode
        log_command(options.describe(), exit_code)

        if cancelled.is_set() or (cancel_event is not None and cancel_event.is_set()):
            logger.debug("Backend process ended by cancellation", extra={"exit_code": exit_code})
            return

        if exit_code != 0:
            stderr_text = "".join(stderr_chunks).strip()
            message = stderr_text or f"Process exited with code {exit_code}"
            logger.warning(
                "Backend process failed",
                extra={"exit_code": exit_code, "cmd": options.command},
            )
            raise ProcessError(message, stderr=stderr_text, exit_code=exit_code)

    finally:
        finished.set()
        if process.poll() is None:
            process.kill()
            process.wait()
        for stream in (process.stdout, process.stderr):
            if stream is not None:
                try:
                    stream.close()
                except OSError:
                    pass


def run_process(options: SubprocessOptions, timeout: float) -> ProcessResult:
    """Run a short command to completion and capture its output.

    Raises:
        ProcessSpawnError: If the executable cannot be started.
        ProcessError: With ``timed_out=True`` if ``timeout`` elapses.
    """
    try:
        result = subprocess.run(
            options.argv,
            cwd=options.cwd,
            env=_merged_env(options.env),
            input=options.stdin_data,
            stdin=None if options.stdin_data is not None else subprocess.DEVNULL,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        log_command(options.describe(), None)
        raise ProcessError(
            f"{options.command} timed out after {timeout}s",
            stderr=_decode(e.stderr),
            timed_out=True,
        ) from e
    except OSError as e:
        raise ProcessSpawnError(f"Failed to start {options.command}: {e}", stderr=str(e)) from e

    log_command(options.describe(), result.returncode)
    return ProcessResult(stdout=result.stdout, stderr=result.stderr, exit_code=result.returncode)


__all__ = [
    "SubprocessOptions",
    "ProcessResult",
    "ProcessError",
    "ProcessSpawnError",
    "stream_jsonl",
    "run_process",
    "terminate_process",
]
