from __future__ import annotations

import asyncio
from typing import Optional

import typer

from .bootstrap import run_tjbot, write_default_config

app = typer.Typer(add_completion=False)


@app.command()
def run(session_name: Optional[str] = typer.Option(None, help="Optional session name")) -> None:
    """Start listening, take the photo and greet."""
    try:
        asyncio.run(run_tjbot(session_name=session_name))
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        typer.echo("Interrupted by user")


@app.command("init-config")
def init_config() -> None:
    """Write runtime/config.json with the current defaults."""
    path = write_default_config()
    typer.echo(f"Runtime configuration available at {path}")


if __name__ == "__main__":
    app()
