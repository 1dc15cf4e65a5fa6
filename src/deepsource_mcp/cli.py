"""deepsource-mcp command line interface.

Commands:
- ``serve``: run the MCP server over stdio
- ``tools``: list the registered tools as a Rich table
- ``config``: show the effective configuration, API key masked
- ``health``: show circuit breaker and retry budget state as JSON

Global options (``--log-level``, ``--log-format``) are applied on top of the
environment configuration by every command.
"""

from __future__ import annotations

import asyncio
import json
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from deepsource_mcp import __version__
from deepsource_mcp.client import DeepSourceClient, GraphQLTransport, build_executor
from deepsource_mcp.core.config import ServerConfig, load_config
from deepsource_mcp.core.errors import ClassifiedError, ConfigurationError, ErrorClassifier
from deepsource_mcp.core.logging import configure_logging, get_logger
from deepsource_mcp.execution import DirectExecutor
from deepsource_mcp.mcp import MCPServer, build_registry, run_stdio

# stdout belongs to the MCP protocol while serving
console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="deepsource-mcp",
    help="Model Context Protocol server for the DeepSource API",
    add_completion=False,
)

_overrides: dict[str, Any] = {}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"deepsource-mcp v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", "-L", help="Logging level (DEBUG, INFO, WARNING, ERROR)"),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option("--log-format", help="Log format: json or console"),
    ] = None,
) -> None:
    """DeepSource MCP server - code quality data for AI agents."""
    _overrides.clear()
    if log_level:
        _overrides["level"] = log_level.upper()
    if log_format:
        _overrides["format"] = log_format.lower()


def _load() -> ServerConfig:
    """Environment config with CLI logging overrides applied."""
    try:
        config = load_config()
        if _overrides:
            logging_config = config.logging.model_validate(
                {**config.logging.model_dump(), **_overrides}
            )
            config = config.model_copy(update={"logging": logging_config})
    except (ConfigurationError, ValueError) as exc:
        err_console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(1) from exc
    return config


def _configure_logging(config: ServerConfig) -> None:
    log = config.logging
    configure_logging(
        level=log.level,
        format=log.format,
        file_path=log.file_path,
        max_file_size_mb=log.max_file_size_mb,
        backup_count=log.backup_count,
        include_timestamps=log.include_timestamps,
        include_context=log.include_context,
    )


@app.command()
def serve() -> None:
    """Start the MCP server on stdio.

    Requires DEEPSOURCE_API_KEY. Retry, circuit breaker and logging settings
    are read from the environment (see ``deepsource-mcp config``).
    """
    config = _load()
    _configure_logging(config)
    logger = get_logger("server")

    try:
        server = MCPServer(config, logger=logger)
    except ConfigurationError as exc:
        err_console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(1) from exc

    logger.info("server_starting", name=config.name, version=config.version, transport="stdio")
    try:
        asyncio.run(run_stdio(server))
    except KeyboardInterrupt:
        err_console.print("\n[yellow]MCP Server stopped.[/yellow]")


@app.command()
def tools() -> None:
    """List the tools this server exposes."""
    config = _load()
    # Listing never reaches the API, so a missing key is fine here
    api_key = config.client.api_key.get_secret_value() if config.client.api_key else "unset"
    transport = GraphQLTransport(api_key, api_url=config.client.api_url)
    client = DeepSourceClient(transport, DirectExecutor(transport, ErrorClassifier()))
    registry = build_registry(client)

    table = Table(title=f"DeepSource MCP tools ({len(registry)})")
    table.add_column("Tool", style="cyan", no_wrap=True)
    table.add_column("Required inputs", style="magenta")
    table.add_column("Description")

    for definition in registry.list_tools():
        table.add_row(
            definition.name,
            ", ".join(definition.required_inputs) or "-",
            definition.description,
        )

    console.print(table)


@app.command(name="config")
def show_config(
    as_json: Annotated[bool, typer.Option("--json", help="Output raw JSON")] = False,
) -> None:
    """Show the effective configuration (API key masked)."""
    config = _load()
    data = config.masked()

    if as_json:
        console.print_json(json.dumps(data, default=str))
        return

    table = Table(title="DeepSource MCP configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    for section, values in data.items():
        if isinstance(values, dict):
            for key, value in values.items():
                table.add_row(f"{section}.{key}", _display(value))
        else:
            table.add_row(section, _display(values))

    console.print(table)


@app.command()
def health(
    check: Annotated[
        bool,
        typer.Option("--check", help="List projects once before reporting (needs an API key)"),
    ] = False,
) -> None:
    """Show the executor kind, circuit breaker states and retry budgets as JSON."""
    config = _load()
    _configure_logging(config)

    if check:
        try:
            client = DeepSourceClient.from_config(config, get_logger("client"))
        except ConfigurationError as exc:
            err_console.print(f"[red]Configuration error:[/red] {exc}")
            raise typer.Exit(1) from exc
    else:
        api_key = config.client.api_key.get_secret_value() if config.client.api_key else "unset"
        transport = GraphQLTransport(api_key, api_url=config.client.api_url)
        client = DeepSourceClient(transport, build_executor(transport, config))

    report = asyncio.run(_health_report(client, check))
    console.print_json(json.dumps(report, default=str))


async def _health_report(client: DeepSourceClient, check: bool) -> dict[str, Any]:
    async with client:
        if not check:
            return client.health()
        try:
            projects = await client.projects.list_projects()
        except ClassifiedError as exc:
            outcome: dict[str, Any] = {
                "ok": False,
                "category": exc.category.value,
                "error": exc.message,
            }
        else:
            outcome = {"ok": True, "projects": len(projects)}
        return {**client.health(), "check": outcome}


def _display(value: Any) -> str:
    if value is None:
        return "[dim]not set[/dim]"
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


if __name__ == "__main__":
    app()
