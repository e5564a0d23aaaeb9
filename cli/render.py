from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(payload: Dict[str, Any]) -> None:
    echo_heading("Current Reading")
    echo_key_values(
        [
            ("temperature", payload.get("temperature")),
            ("humidity", payload.get("humidity")),
            ("observed_at", payload.get("observed_at")),
        ]
    )


def render_history(rows: List[Dict[str, Any]]) -> None:
    echo_heading("History")
    if not rows:
        typer.echo("No samples recorded in this window.")
        return
    for row in rows:
        typer.echo(
            f"  - {row.get('created_at')}: "
            f"temperature={row.get('temperature')} humidity={row.get('humidity')}"
        )
    typer.echo()
    typer.echo(f"{len(rows)} samples")
