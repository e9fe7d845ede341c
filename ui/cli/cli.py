"""CLI entrypoint for relational-statestore."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from ui.cli import commands

app = typer.Typer(help="In-memory relational state store")
config_app = typer.Typer(help="Configuration commands")


@app.command("run")
def run_cmd(
    script: Path = typer.Argument(..., exists=True, dir_okay=False, help="Scenario YAML file"),
    journal: Optional[Path] = typer.Option(None, "--journal", help="Append events as JSON lines"),
    root: Optional[Path] = typer.Option(None, "--root", help="Directory holding config/"),
) -> None:
    """Replay a scenario against a fresh store."""
    commands.run_scenario(script=script, journal=journal, root=root)


@config_app.command("show")
def config_show_cmd(
    root: Optional[Path] = typer.Option(None, "--root", help="Directory holding config/"),
) -> None:
    """Show effective configuration."""
    commands.config_show(root=root)


app.add_typer(config_app, name="config")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
