"""``starkstage dockerfile`` — render the multi-stage Dockerfile."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from starkstage.config import config
from starkstage.core.dockerfile import render_dockerfile

console = Console()


def dockerfile_cmd(
    output: Path = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the Dockerfile here instead of printing it.",
    ),
    repository: str = typer.Option(
        None,
        "--repository",
        help="Upstream image repository (defaults to STARKSTAGE_SOURCE_REPOSITORY).",
    ),
) -> None:
    """Render the Dockerfile that copies the prover bundle into ``scratch``."""
    text = render_dockerfile(repository=repository or config.source_repository)
    if output is None:
        # Plain stdout so the output can be piped straight into docker build.
        typer.echo(text, nl=False)
        return
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]Wrote[/green] {output}")
