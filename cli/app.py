from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_history, render_reading


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for querying the TTY sensor hub service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Sensor hub base URL (defaults to API_BASE_URL env or http://localhost:3000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, request_timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("current")
def current_command(ctx: typer.Context) -> None:
    """Show the most recent sensor reading."""
    state = _get_state(ctx)
    payload = state.client.get_current()
    if payload is None:
        typer.secho("No data yet.", fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)
    render_reading(payload)


@app.command("history")
def history_command(
    ctx: typer.Context,
    hours: Optional[float] = typer.Option(
        None,
        "--hours",
        min=0.0,
        help="Look-back in hours (defaults to the server's window).",
    ),
) -> None:
    """List sampled history, oldest first."""
    state = _get_state(ctx)
    rows = state.client.get_history(hours=hours)
    render_history(rows)
