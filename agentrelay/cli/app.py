"""Typer application and commands for the CLI.

Contains the Typer app, the version callback and the check, models,
resolve and run commands.
"""

import json
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from agentrelay import SCRIPT_NAME
from agentrelay.api import (
    check_installation,
    execute,
    get_registry,
    list_models,
    resolve_backend_for_model,
)
from agentrelay.config.mcp import load_mcp_servers
from agentrelay.config.settings import Settings, load_settings
from agentrelay.providers.errors import ErrorCode, ProviderError, ProviderNotFoundError
from agentrelay.providers.models import CLAUDE_DEFAULT_MODEL
from agentrelay.providers.types import (
    AssistantMessage,
    ErrorMessage,
    ExecuteOptions,
    InstallationStatus,
    ModelDefinition,
    ProviderMessage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from agentrelay.utils.console import (
    console,
    print_error,
    print_info,
    print_tool,
    print_warning,
    show_version,
)
from agentrelay.utils.errors import AgentRelayError, ExitCode, UserCancelledError
from agentrelay.utils.logging import setup_logging

# Create Typer app
app = typer.Typer(
    name=SCRIPT_NAME,
    help="agentrelay - Run AI coding-agent CLIs behind one message stream",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Display version and exit."""
    if value:
        show_version()
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version information",
        ),
    ] = None,
) -> None:
    """agentrelay - Run AI coding-agent CLIs behind one message stream."""
    setup_logging()


@contextmanager
def _cli_errors() -> Iterator[None]:
    """Turn package errors into exit codes."""
    try:
        yield
    except UserCancelledError as e:
        print_info(f"\n{e}")
        raise typer.Exit(ExitCode.USER_CANCELLED) from e

    except ProviderError as e:
        print_error(str(e))
        if e.suggestion:
            print_info(e.suggestion)
        raise typer.Exit(e.exit_code) from e

    except AgentRelayError as e:
        print_error(str(e))
        raise typer.Exit(e.exit_code) from e


# ── check ────────────────────────────────────────────────────────────────────


def _status_table(statuses: dict[str, InstallationStatus]) -> Table:
    table = Table(title="Backends")
    table.add_column("Backend", style="bold")
    table.add_column("Installed")
    table.add_column("Method")
    table.add_column("Version")
    table.add_column("Path")
    table.add_column("Auth")

    for name, status in statuses.items():
        installed = "[green]yes[/green]" if status.installed else "[red]no[/red]"
        if status.error:
            installed = f"[red]error: {escape(status.error)}[/red]"
        auth = "api key" if status.has_api_key else ("yes" if status.authenticated else "no")
        table.add_row(
            name,
            installed,
            status.method,
            status.version or "-",
            status.path or "-",
            auth,
        )
    return table


@app.command()
def check(
    backend: Annotated[
        str | None,
        typer.Argument(help="Backend name or alias (default: all backends)"),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the status as JSON"),
    ] = False,
) -> None:
    """Show installation and authentication status of the backends."""
    with _cli_errors():
        result = check_installation(backend)
        statuses = result if isinstance(result, dict) else {backend or "": result}

        if as_json:
            typer.echo(json.dumps({name: s.to_dict() for name, s in statuses.items()}, indent=2))
            return
        console.print(_status_table(statuses))


# ── models ───────────────────────────────────────────────────────────────────


def _models_table(models: list[ModelDefinition]) -> Table:
    table = Table(title="Models")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Backend")
    table.add_column("Vision")
    table.add_column("Default")
    for model in models:
        table.add_row(
            model.id,
            model.name,
            model.provider,
            "yes" if model.supports_vision else "no",
            "*" if model.default else "",
        )
    return table


@app.command()
def models(
    backend: Annotated[
        str | None,
        typer.Option("--backend", "-b", help="Only list models of this backend"),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the models as JSON"),
    ] = False,
) -> None:
    """List the models every backend declares."""
    with _cli_errors():
        if backend:
            provider = get_registry().get_provider_by_name(backend)
            if provider is None:
                raise ProviderNotFoundError(f"Unknown backend '{backend}'")
            declared = provider.available_models()
        else:
            declared = list_models()

        if as_json:
            typer.echo(json.dumps([m.to_dict() for m in declared], indent=2))
            return
        console.print(_models_table(declared))


# ── resolve ──────────────────────────────────────────────────────────────────


@app.command()
def resolve(
    model: Annotated[str, typer.Argument(help="Model identifier, e.g. cursor-auto or sonnet")],
) -> None:
    """Print the backend a model identifier routes to."""
    with _cli_errors():
        typer.echo(resolve_backend_for_model(model))


# ── run ──────────────────────────────────────────────────────────────────────


def _default_model(settings: Settings) -> str:
    """DEFAULT_MODEL, else the default model of DEFAULT_BACKEND, else Claude's."""
    if settings.default_model:
        return settings.default_model

    platform = settings.get_default_backend()
    if platform is not None:
        provider = get_registry().get_provider_by_name(platform.value)
        if provider is not None:
            for definition in provider.available_models():
                if definition.default:
                    return definition.id
    return CLAUDE_DEFAULT_MODEL


def _read_prompt(prompt: str | None) -> str:
    if prompt is not None and prompt != "-":
        return prompt
    if sys.stdin is None or sys.stdin.isatty():
        raise typer.BadParameter("No prompt given and nothing to read from stdin", param_hint="PROMPT")
    return sys.stdin.read()


def _render(message: ProviderMessage) -> bool:
    """Print one message; returns False for error messages."""
    if isinstance(message, AssistantMessage):
        for block in message.content:
            if isinstance(block, TextBlock):
                console.print(block.text, end="", markup=False, highlight=False, soft_wrap=True)
            elif isinstance(block, ToolUseBlock):
                print_tool(escape(f"{block.name} {json.dumps(block.input) if block.input else ''}".rstrip()))
            elif isinstance(block, ToolResultBlock) and block.content:
                first_line = block.content.splitlines()[0]
                print_tool(f"[muted]{escape(first_line[:120])}[/muted]")
        return True
    if isinstance(message, ErrorMessage):
        console.print()
        print_error(message.error)
        return False
    console.print()
    return True


@app.command()
def run(
    prompt: Annotated[
        str | None,
        typer.Argument(help="Prompt text; omit or pass '-' to read it from stdin"),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model identifier (default: DEFAULT_MODEL from config)"),
    ] = None,
    cwd: Annotated[
        Path | None,
        typer.Option("--cwd", help="Working directory for the backend", file_okay=False, exists=True),
    ] = None,
    read_only: Annotated[
        bool,
        typer.Option("--read-only", help="Do not let the backend modify files"),
    ] = False,
    mcp_config: Annotated[
        Path | None,
        typer.Option("--mcp-config", help="YAML or JSON file with MCP server definitions"),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", help="Cancel the run after this many seconds"),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print every message as a JSON line"),
    ] = False,
) -> None:
    """Run a prompt on the backend that serves the model."""
    with _cli_errors():
        settings = load_settings()
        model_id = model or _default_model(settings)
        prompt_text = _read_prompt(prompt)
        mcp_servers = load_mcp_servers(mcp_config) if mcp_config else None

        cancel_event = threading.Event()
        timed_out = threading.Event()
        options = ExecuteOptions(
            model=model_id,
            prompt=prompt_text,
            cwd=str(cwd) if cwd else None,
            read_only=read_only,
            mcp_servers=mcp_servers,
            cancel_event=cancel_event,
        )

        def on_timeout() -> None:
            timed_out.set()
            cancel_event.set()

        timer: threading.Timer | None = None
        if timeout:
            timer = threading.Timer(timeout, on_timeout)
            timer.daemon = True

        failed = False
        stream = execute(options)
        try:
            if timer is not None:
                timer.start()
            for message in stream:
                if as_json:
                    typer.echo(json.dumps(message.to_dict()))
                elif not _render(message):
                    failed = True
        except KeyboardInterrupt as e:
            cancel_event.set()
            raise UserCancelledError("Run cancelled by user") from e
        finally:
            if timer is not None:
                timer.cancel()
            close = getattr(stream, "close", None)
            if close is not None:
                close()

        if timed_out.is_set():
            raise ProviderError(
                f"Run timed out after {timeout:g}s",
                code=ErrorCode.TIMEOUT,
                recoverable=True,
                suggestion="Increase --timeout or split the task",
                backend_name=resolve_backend_for_model(model_id),
            )
        if failed:
            print_warning("Backend reported an error")
            raise typer.Exit(ExitCode.GENERAL_ERROR)
