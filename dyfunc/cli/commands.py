"""CLI commands for dyfunc.

In the overall architecture: the CLI is the process entry point. ``serve``
builds a registry from setup hooks and runs the HTTP gateway; ``call`` posts a
one-item batch through the client; ``config`` manages ~/.dyfunc/config.json.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from dyfunc import __logo__, __version__
from dyfunc.cli.shared.arg_utils import parse_args
from dyfunc.cli.shared.logging_utils import configure_console_logging, ensure_rotating_log_file

app = typer.Typer(
    name="dyfunc",
    help=f"{__logo__} dyfunc - batch remote function calls over HTTP",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Show or initialise the config file")
app.add_typer(config_app, name="config")

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} dyfunc v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """dyfunc - batch remote function calls over HTTP."""
    pass


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Bind host (default: gateway.host)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (default: gateway.port)"),
    path: Optional[str] = typer.Option(None, "--path", help="Batch endpoint path (default: gateway.path)"),
    setup: Optional[list[str]] = typer.Option(
        None, "--setup", "-s", help="module:function called with the registry; repeatable"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
):
    """Start the gateway and serve registered functions."""
    from dyfunc.api.server import create_app, run_server
    from dyfunc.cli.bootstrap import build_registry
    from dyfunc.config.loader import load_config

    config = _load_config_or_exit(load_config)
    overrides = {k: v for k, v in {"host": host, "port": port, "path": path}.items() if v is not None}
    if overrides:
        config = config.model_copy(update={"gateway": config.gateway.model_copy(update=overrides)})

    level = "DEBUG" if verbose else config.logging.level
    configure_console_logging(level)
    if config.logging.file:
        log_path = ensure_rotating_log_file("serve", level=level)
        console.print(f"[dim]Logs: {log_path}[/dim]")

    try:
        registry = build_registry(config, setup or [])
    except (ImportError, AttributeError, ValueError, TypeError) as e:
        console.print(f"[red]Setup failed:[/red] {e}")
        raise typer.Exit(1)

    gw = config.gateway
    console.print(f"{__logo__} Serving {len(registry)} functions on http://{gw.host}:{gw.port}{gw.path}")
    run_server(create_app(registry=registry, config=config), host=gw.host, port=gw.port)


@app.command()
def call(
    url: str = typer.Argument(..., help="Gateway endpoint, e.g. http://localhost:5001/call-remote"),
    func: str = typer.Argument(..., help="Registered function name"),
    args: Optional[list[str]] = typer.Argument(None, help="Arguments; each parsed as JSON, else kept as a string"),
    call_id: Optional[str] = typer.Option(None, "--id", help="Request identifier (default: batch position)"),
    username: str = typer.Option("", "--username", "-u", envvar="DYFUNC_AUTH__USERNAME"),
    password: str = typer.Option("", "--password", "-P", envvar="DYFUNC_AUTH__PASSWORD"),
    timeout: float = typer.Option(30.0, "--timeout", help="Request timeout in seconds"),
):
    """Call one function on a running gateway."""
    from dyfunc.client import BatchClient, GatewayResponseError, GatewayUnavailableError

    with BatchClient(url, username=username, password=password, timeout=timeout) as client:
        try:
            response = client.send(call_id, func, parse_args(args))
        except GatewayResponseError as e:
            console.print(f"[red]Batch rejected ({e.status_code}):[/red] {e.message}")
            raise typer.Exit(1)
        except GatewayUnavailableError as e:
            console.print(f"[red]Gateway unavailable:[/red] {e}")
            raise typer.Exit(1)

    console.print_json(data=response)
    if any("error" in item for item in response.values() if isinstance(item, dict)):
        raise typer.Exit(1)


@config_app.command("show")
def config_show(
    as_json: bool = typer.Option(False, "--json", help="Print the raw config as JSON"),
):
    """Print the effective configuration."""
    from dyfunc.config.loader import convert_to_camel, get_config_path, load_config

    config = _load_config_or_exit(load_config)
    data = convert_to_camel(config.model_dump())
    if as_json:
        console.print_json(json.dumps(data))
        return

    table = Table(title=f"Config ({get_config_path()})")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for section, values in data.items():
        for key, value in values.items():
            if key == "password" and value:
                value = "********"
            table.add_row(f"{section}.{key}", json.dumps(value))
    console.print(table)


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config with defaults"),
    path: Optional[Path] = typer.Option(None, "--path", help="Write to this file instead of the default"),
):
    """Write a config file with default values."""
    from dyfunc.config.loader import get_config_path, save_config
    from dyfunc.config.schema import Config

    target = path or get_config_path()
    if target.exists() and not force:
        console.print(f"[yellow]Config already exists at {target}[/yellow] (use --force to overwrite)")
        raise typer.Exit(1)
    written = save_config(Config(), target)
    console.print(f"[green]✓[/green] Created config at {written}")


def _load_config_or_exit(loader):
    try:
        return loader()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
