"""Typer command handlers."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import typer

from core.orchestrator import Orchestrator, RuntimeBundle, ScenarioRunner


def _runtime(root: Path | None = None, journal: Path | None = None) -> RuntimeBundle:
    bundle = Orchestrator(root=root).build(journal_path=journal)
    logging.basicConfig(level=bundle.settings.logging.level)
    return bundle


def config_show(root: Path | None = None) -> None:
    """Show effective runtime config."""
    bundle = _runtime(root)
    typer.echo(json.dumps(bundle.settings.model_dump(), indent=2))


def run_scenario(script: Path, journal: Path | None = None, root: Path | None = None) -> None:
    """Replay a scenario file and print events plus the final adjacency."""
    bundle = _runtime(root, journal)
    try:
        result = ScenarioRunner(bundle.store).run_file(script)
    except ValueError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        if bundle.journal is not None:
            bundle.journal.detach()

    for line in result.events:
        typer.echo(line)
    typer.echo(f"Steps: {result.steps} | Nodes: {len(bundle.store)}")
    for label, edges in result.adjacency.items():
        typer.echo(f"- {label}: {', '.join(edges) if edges else '(no edges)'}")
