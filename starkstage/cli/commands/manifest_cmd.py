"""``starkstage manifest`` — list the staged files."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from starkstage.config import config
from starkstage.models.manifest import DEFAULT_MANIFEST, TAG_PARAMETER

console = Console()


def manifest_cmd(
    tag: str = typer.Option(
        None,
        "--tag",
        "-t",
        help=f"Render destinations for this tag (defaults to {TAG_PARAMETER}).",
    ),
) -> None:
    """Show the (source -> destination) table."""
    tag = tag or config.prover_tag
    prefix = tag if tag and tag.strip() else f"${{{TAG_PARAMETER}}}"

    table = Table(title="Prover bundle manifest")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Source", style="cyan")
    table.add_column("Destination", style="green")
    for index, entry in enumerate(DEFAULT_MANIFEST.entries, start=1):
        table.add_row(str(index), entry.source, f"{prefix}/{entry.destination}")

    console.print(table)
    console.print(f"[dim]manifest sha256 {DEFAULT_MANIFEST.manifest_hash}[/dim]")
