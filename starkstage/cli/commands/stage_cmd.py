"""``starkstage stage`` — copy the prover bundle into a layer.

Resolves ``{repository}:{tag}``, copies every manifest entry out of it and
writes ``{output}/{tag}.layer.tar``. Any failure exits with code 1 and
leaves no layer behind.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from starkstage.config import config
from starkstage.core.errors import StagerError
from starkstage.core.sources import DirectorySource
from starkstage.core.stager import ArtifactStager

console = Console()


def stage_cmd(
    tag: str = typer.Option(
        None,
        "--tag",
        "-t",
        help="Prover version tag (defaults to PROVER_TAG).",
    ),
    output: Path = typer.Option(
        None,
        "--output",
        "-o",
        help="Directory for the finished layer (defaults to STARKSTAGE_OUTPUT_DIR).",
    ),
    source_dir: Path = typer.Option(
        None,
        "--source-dir",
        help="Stage from an extracted image root instead of pulling with docker.",
    ),
    pull: bool = typer.Option(
        config.pull,
        "--pull/--no-pull",
        help="Pull the upstream image before staging.",
    ),
    publish: bool = typer.Option(
        config.publish,
        "--publish/--no-publish",
        help="Also store the layer in the content-addressed store.",
    ),
    workers: int = typer.Option(
        config.copy_workers,
        "--workers",
        "-w",
        min=1,
        help="Parallel copy workers.",
    ),
) -> None:
    """Stage the prover bundle for a tag."""
    updates: dict[str, object] = {
        "pull": pull,
        "publish": publish,
        "copy_workers": workers,
    }
    if output is not None:
        updates["output_dir"] = output
    settings = config.model_copy(update=updates)

    overrides: dict[str, object] = {}
    if source_dir is not None:
        overrides["source_factory"] = lambda ref: DirectorySource(source_dir, ref=ref)

    stager = ArtifactStager.from_settings(settings, **overrides)
    try:
        layer = stager.stage(tag or settings.prover_tag)
    except StagerError as exc:
        console.print(f"[bold red]Staging failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    table = Table(title=f"Layer {layer.workdir}")
    table.add_column("Path", style="cyan")
    table.add_column("Source")
    table.add_column("Size", justify="right")
    table.add_column("Mode", justify="right")
    for entry in layer.entries:
        table.add_row(entry.path, entry.source_path, str(entry.size_bytes), oct(entry.mode))

    console.print(table)
    console.print(
        Panel(
            "\n".join([
                f"[bold]Source:[/bold]  {layer.source_ref}",
                f"[bold]Workdir:[/bold] {layer.workdir}",
                f"[bold]Layer:[/bold]   {layer.layer_path}",
                f"[bold]Digest:[/bold]  {layer.layer_digest}",
                f"[bold]Store:[/bold]   {layer.store_address or '-'}",
            ]),
            title="[bold green]Staged[/bold green]",
            border_style="green",
            padding=(1, 2),
        )
    )
