"""Provider contract and the shared CLI-backed implementation.

This module defines:
- BaseProvider: the interface every backend exposes to the registry
- CliProvider: discovery, authentication probing, command construction and
  the execute pipeline shared by all subprocess-backed CLIs
- SpawnStrategy / SpawnConfig / DiscoveryResult: how a CLI is located and
  launched on each OS

The execute pipeline is::

    build_command() -> stream_jsonl() -> normalizer.normalize() -> [filter] -> caller

Every step is lazy: nothing is read from the process until the caller pulls
the next message.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import sys
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar

from agentrelay.config.platforms import AgentPlatform
from agentrelay.platform.process import (
    ProcessError,
    ProcessSpawnError,
    SubprocessOptions,
    run_process,
    stream_jsonl,
)
from agentrelay.platform.wsl import create_wsl_command, exec_in_wsl, find_cli_in_wsl
from agentrelay.providers.dedup import TextDedupFilter
from agentrelay.providers.errors import (
    ErrorCode,
    ErrorInfo,
    ProviderError,
    classify_cli_error,
)
from agentrelay.providers.normalizer import EventNormalizer
from agentrelay.providers.types import (
    ExecuteOptions,
    InstallationStatus,
    ModelDefinition,
    ProviderMessage,
)
from agentrelay.utils.logging import log_backend_metadata

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 10.0
DEFAULT_VERSION_TIMEOUT = 5.0

# Stderr fragments from an auth probe that mean "installed but logged out"
_UNAUTHENTICATED_MARKERS = ("not authenticated", "log in")


class SpawnStrategy(str, Enum):
    """How a CLI is launched."""

    NATIVE = "native"  # Linux/macOS, executable found directly
    WSL = "wsl"  # Inside a WSL distribution via wsl.exe
    NPX = "npx"  # Through the npm package runner
    DIRECT = "direct"  # Native Windows executable
    CMD = "cmd"  # Native Windows .cmd shim


@dataclass(frozen=True)
class SpawnConfig:
    """Per-backend discovery configuration.

    Attributes:
        windows_strategy: Strategy used on Windows hosts
        common_paths: Candidate executable paths keyed by "linux", "darwin"
            or "win32"; ``~`` is expanded
        npx_package: Package spec for the NPX strategy
        wsl_distribution: Preferred distribution for the WSL strategy
    """

    windows_strategy: SpawnStrategy
    common_paths: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    npx_package: str | None = None
    wsl_distribution: str | None = None


@dataclass(frozen=True)
class DiscoveryResult:
    """Where (and how) a CLI was found. ``cli_path`` is None when it wasn't."""

    cli_path: str | None
    strategy: SpawnStrategy = SpawnStrategy.NATIVE
    wsl_cli_path: str | None = None
    wsl_distribution: str | None = None
    npx_package: str | None = None

    @property
    def found(self) -> bool:
        return self.cli_path is not None

    @property
    def use_wsl(self) -> bool:
        return self.strategy is SpawnStrategy.WSL and self.wsl_cli_path is not None

    @property
    def method(self) -> str:
        if self.strategy is SpawnStrategy.WSL:
            return "wsl"
        if self.strategy is SpawnStrategy.NPX:
            return "npm"
        return "cli"

    @property
    def display_path(self) -> str | None:
        if self.use_wsl:
            label = f"WSL:{self.wsl_distribution}" if self.wsl_distribution else "WSL"
            return f"({label}) {self.wsl_cli_path}"
        return self.cli_path


def current_os_key() -> str:
    """Key into ``SpawnConfig.common_paths`` for the running OS."""
    if sys.platform == "win32":
        return "win32"
    if sys.platform == "darwin":
        return "darwin"
    return "linux"


def lookup_dotted(data: Any, dotted_key: str) -> Any:
    """Resolve ``"a.b.c"`` against nested dicts, returning None if absent."""
    current = data
    for part in dotted_key.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


class BaseProvider(ABC):
    """Interface every backend exposes to the registry and the API layer.

    Example:
        >>> provider = registry.resolve_provider("cursor-auto")
        >>> for message in provider.execute(ExecuteOptions(model="cursor-auto", prompt="hi")):
        ...     print(message.to_dict())
    """

    name: ClassVar[str]
    display_name: ClassVar[str]
    platform: ClassVar[AgentPlatform]

    @abstractmethod
    def execute(self, options: ExecuteOptions) -> Iterator[ProviderMessage]:
        """Run one query and return a lazy sequence of normalized messages.

        Raises:
            ProviderError: If the backend cannot be started or fails.
        """
        ...

    @abstractmethod
    def detect_installation(self) -> InstallationStatus:
        """Probe installation and authentication. Never raises."""
        ...

    @abstractmethod
    def available_models(self) -> list[ModelDefinition]:
        """Models this backend declares."""
        ...


class CliProvider(BaseProvider):
    """A backend that is a local CLI speaking JSONL on stdout.

    Subclasses declare the class attributes below and implement
    ``spawn_config()``, ``build_cli_args()`` and ``available_models()``.

    The discovery result is computed on first use and cached on the
    instance. Version and authentication are re-probed on every
    ``detect_installation()`` call.
    """

    cli_name: ClassVar[str]
    normalizer_class: ClassVar[type[EventNormalizer]]

    # Environment variable holding an API key, if the backend has one
    api_key_env: ClassVar[str | None] = None
    # Credential JSON files (``~``-relative) and the dotted token fields to look for
    credential_files: ClassVar[tuple[str, ...]] = ()
    credential_fields: ClassVar[tuple[str, ...]] = ()

    # Per-code overrides applied on top of the generic classifier texts
    error_messages: ClassVar[Mapping[ErrorCode, str]] = {}
    error_suggestions: ClassVar[Mapping[ErrorCode, str]] = {}
    exit_message: ClassVar[str] = "Process exited with code {exit_code}"

    def __init__(
        self,
        *,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        version_timeout: float = DEFAULT_VERSION_TIMEOUT,
        debug_raw_output: bool | None = None,
    ) -> None:
        self.probe_timeout = probe_timeout
        self.version_timeout = version_timeout
        self.debug_raw_output = debug_raw_output
        self._discovery: DiscoveryResult | None = None

    # ── Subclass hooks ───────────────────────────────────────────────────

    @abstractmethod
    def spawn_config(self) -> SpawnConfig:
        ...

    @abstractmethod
    def build_cli_args(self, options: ExecuteOptions) -> list[str]:
        """CLI arguments for one execution.

        Never contains the prompt; the CLI must read it from stdin.
        """
        ...

    def create_normalizer(self) -> EventNormalizer:
        return self.normalizer_class(debug_raw=self.debug_raw_output)

    def create_message_filter(self) -> TextDedupFilter | None:
        """Post-normalization filter, or None when the backend needs none."""
        return None

    def backend_env(self, options: ExecuteOptions) -> dict[str, str]:
        """Variables layered over the inherited environment."""
        return {}

    def _detect_fallback(self) -> DiscoveryResult | None:
        """Last-resort discovery step for backends with unusual layouts."""
        return None

    def _credentials_valid(self, data: Any) -> bool:
        return any(lookup_dotted(data, key) for key in self.credential_fields)

    # ── Discovery ────────────────────────────────────────────────────────

    @property
    def discovery(self) -> DiscoveryResult:
        if self._discovery is None:
            self._discovery = self.detect_cli()
        return self._discovery

    def reset_discovery(self) -> None:
        self._discovery = None

    def _find_in_common_paths(self, config: SpawnConfig) -> str | None:
        for candidate in config.common_paths.get(current_os_key(), ()):
            expanded = Path(candidate).expanduser()
            try:
                if expanded.is_file():
                    logger.debug(f"Found {self.cli_name} at: {expanded}")
                    return str(expanded)
            except OSError:
                continue
        return None

    def detect_cli(self) -> DiscoveryResult:
        """Locate the CLI: PATH, common paths, Windows strategy, then fallback.

        Never raises; probe failures count as "not found".
        """
        config = self.spawn_config()
        native = SpawnStrategy.NATIVE
        if sys.platform == "win32":
            # An executable found directly on Windows runs without WSL or npx
            native = SpawnStrategy.CMD if config.windows_strategy is SpawnStrategy.CMD else SpawnStrategy.DIRECT

        try:
            on_path = shutil.which(self.cli_name)
            if on_path:
                logger.debug(f"Found {self.cli_name} in PATH: {on_path}")
                return DiscoveryResult(cli_path=on_path, strategy=native)

            common = self._find_in_common_paths(config)
            if common:
                return DiscoveryResult(cli_path=common, strategy=native)

            if sys.platform == "win32":
                result = self._detect_windows(config)
                if result is not None:
                    return result

            fallback = self._detect_fallback()
            if fallback is not None:
                return fallback
        except (OSError, ValueError) as e:
            logger.debug(
                "CLI discovery failed",
                extra={"cli": self.cli_name, "error": str(e)},
            )

        logger.debug(f"{self.cli_name} not found")
        return DiscoveryResult(cli_path=None, strategy=native)

    def _detect_windows(self, config: SpawnConfig) -> DiscoveryResult | None:
        if config.windows_strategy is SpawnStrategy.WSL:
            found = find_cli_in_wsl(
                self.cli_name,
                distribution=config.wsl_distribution,
                timeout=self.probe_timeout,
            )
            if found is None:
                logger.debug(f"{self.cli_name} not found (WSL not available or CLI not installed in WSL)")
                return None
            logger.debug(
                f"Using {self.cli_name} via WSL ({found.distribution or 'default'}): {found.wsl_path}"
            )
            return DiscoveryResult(
                cli_path="wsl.exe",
                strategy=SpawnStrategy.WSL,
                wsl_cli_path=found.wsl_path,
                wsl_distribution=found.distribution,
            )

        if config.windows_strategy is SpawnStrategy.NPX and config.npx_package:
            npx = shutil.which("npx")
            if npx is None:
                return None
            logger.debug(f"Using {self.cli_name} via npx (package: {config.npx_package})")
            return DiscoveryResult(cli_path=npx, strategy=SpawnStrategy.NPX, npx_package=config.npx_package)

        return None

    # ── Command construction ─────────────────────────────────────────────

    def extract_prompt_text(self, options: ExecuteOptions) -> str:
        """Text written to the process's stdin."""
        return options.prompt_text()

    def _launch_target(self, args: list[str], cwd: str | None) -> tuple[str, list[str]]:
        discovery = self.discovery
        if discovery.cli_path is None:
            raise self.not_installed_error()

        if discovery.use_wsl:
            assert discovery.wsl_cli_path is not None
            return create_wsl_command(
                discovery.wsl_cli_path,
                args,
                distribution=discovery.wsl_distribution,
                cwd=cwd,
            )
        if discovery.strategy is SpawnStrategy.NPX:
            return discovery.cli_path, [discovery.npx_package or self.cli_name, *args]
        return discovery.cli_path, list(args)

    def build_command(self, options: ExecuteOptions) -> SubprocessOptions:
        """Full subprocess description for one execution.

        Raises:
            ProviderError: ``NOT_INSTALLED`` if the CLI was not found.
        """
        cwd = options.cwd or os.getcwd()
        command, args = self._launch_target(self.build_cli_args(options), cwd)
        return SubprocessOptions(
            command=command,
            args=args,
            cwd=cwd,
            env=self.backend_env(options),
            stdin_data=self.extract_prompt_text(options),
            cancel_event=options.cancel_event,
        )

    # ── Installation status ──────────────────────────────────────────────

    def get_install_instructions(self) -> str:
        config = self.spawn_config()
        if sys.platform == "win32":
            if config.windows_strategy is SpawnStrategy.WSL:
                return f"{self.cli_name} requires WSL on Windows. Install WSL, then run inside WSL to install."
            if config.windows_strategy is SpawnStrategy.NPX:
                return f"Install with: npm install -g {config.npx_package or self.cli_name}"
        return f"{self.cli_name} is not installed. Check the documentation for installation instructions."

    def not_installed_error(self) -> ProviderError:
        instructions = self.get_install_instructions()
        return ProviderError(
            f"{self.cli_name} CLI not found. {instructions}",
            code=ErrorCode.NOT_INSTALLED,
            recoverable=False,
            suggestion=instructions,
            backend_name=self.name,
        )

    def _run_probe(self, args: list[str], timeout: float) -> tuple[int | None, str, str] | None:
        """Run the CLI with ``args``; returns (exit_code, stdout, stderr) or None."""
        try:
            command, argv = self._launch_target(args, None)
            result = run_process(SubprocessOptions(command=command, args=argv), timeout=timeout)
        except (ProviderError, ProcessError) as e:
            logger.debug("Probe failed", extra={"cli": self.cli_name, "probe_args": args, "error": str(e)})
            return None
        return result.exit_code, result.stdout, result.stderr

    def get_version(self) -> str | None:
        if not self.discovery.found:
            return None
        probe = self._run_probe(["--version"], self.version_timeout)
        if probe is None:
            return None
        exit_code, stdout, _ = probe
        version = stdout.strip()
        if exit_code != 0 or not version:
            return None
        return version.splitlines()[0]

    def has_api_key(self) -> bool:
        return bool(self.api_key_env and os.environ.get(self.api_key_env))

    def _read_credential_file(self, path: str) -> Any:
        if self.discovery.use_wsl:
            raw = exec_in_wsl(
                ["sh", "-c", f"cat {path}"],
                distribution=self.discovery.wsl_distribution,
                timeout=self.probe_timeout,
            )
            if not raw:
                return None
        else:
            file_path = Path(path).expanduser()
            if not file_path.is_file():
                return None
            raw = file_path.read_text(encoding="utf-8")
        return json.loads(raw)

    def has_stored_credentials(self) -> bool:
        for path in self.credential_files:
            try:
                data = self._read_credential_file(path)
            except (OSError, ValueError) as e:
                logger.debug("Unreadable credential file", extra={"path": path, "error": str(e)})
                continue
            if data is not None and self._credentials_valid(data):
                logger.debug("Found stored credentials", extra={"cli": self.cli_name, "path": path})
                return True
        return False

    def check_auth(self) -> bool:
        """Whether any authentication signal is present.

        Checked in order: API key variable, credential files, then a
        ``--version`` run whose stderr is inspected for login prompts.
        """
        if self.has_api_key() or self.has_stored_credentials():
            return True
        if not self.discovery.found:
            return False

        probe = self._run_probe(["--version"], self.probe_timeout)
        if probe is None:
            return False
        exit_code, _, stderr = probe
        if any(marker in stderr.lower() for marker in _UNAUTHENTICATED_MARKERS):
            return False
        return exit_code == 0

    def detect_installation(self) -> InstallationStatus:
        discovery = self.discovery
        has_api_key = self.has_api_key()
        authenticated = self.check_auth()
        if not discovery.found:
            return InstallationStatus(
                installed=False,
                method=discovery.method,
                has_api_key=has_api_key,
                authenticated=authenticated,
            )
        return InstallationStatus(
            installed=True,
            version=self.get_version(),
            path=discovery.display_path,
            method=discovery.method,
            has_api_key=has_api_key,
            authenticated=authenticated,
        )

    # ── Execution ────────────────────────────────────────────────────────

    def classify_error(self, stderr: str, exit_code: int | None) -> ErrorInfo:
        return classify_cli_error(
            stderr,
            exit_code,
            cli_name=self.cli_name,
            messages=self.error_messages,
            suggestions=self.error_suggestions,
            exit_message=self.exit_message,
        )

    def execute(self, options: ExecuteOptions) -> Iterator[ProviderMessage]:
        """Start one execution.

        The installation check and command construction happen eagerly, so
        a missing CLI raises here rather than on the first ``next()``.

        Raises:
            ProviderError: ``NOT_INSTALLED`` immediately; any other code
                while iterating, after the process fails.
        """
        subprocess_options = self.build_command(options)

        if options.mcp_servers:
            logger.warning(
                f"{self.display_name} does not support MCP servers; ignoring them",
                extra={"server_count": len(options.mcp_servers)},
            )
        log_backend_metadata(
            self.name,
            model=options.model,
            cwd=subprocess_options.cwd,
            read_only=options.read_only,
        )
        return self._stream(subprocess_options)

    def _stream(self, subprocess_options: SubprocessOptions) -> Iterator[ProviderMessage]:
        normalizer = self.create_normalizer()
        message_filter = self.create_message_filter()

        try:
            for event in stream_jsonl(subprocess_options):
                message = normalizer.normalize(event)
                if message is not None and message_filter is not None:
                    message = message_filter.filter(message)
                if message is not None:
                    yield message
        except ProcessSpawnError as e:
            instructions = self.get_install_instructions()
            raise ProviderError(
                str(e),
                code=ErrorCode.NOT_INSTALLED,
                suggestion=instructions,
                backend_name=self.name,
                stderr=e.stderr,
            ) from e
        except ProcessError as e:
            info = self.classify_error(e.stderr, e.exit_code)
            logger.warning(
                "Backend execution failed",
                extra={"backend": self.name, "code": info.code.value, "exit_code": e.exit_code},
            )
            raise ProviderError.from_info(
                info,
                backend_name=self.name,
                stderr=e.stderr,
                process_exit_code=e.exit_code,
            ) from e


__all__ = [
    "SpawnStrategy",
    "SpawnConfig",
    "DiscoveryResult",
    "BaseProvider",
    "CliProvider",
    "current_os_key",
    "lookup_dotted",
]
