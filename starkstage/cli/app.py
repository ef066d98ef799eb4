"""Main Typer application — imports and registers all CLI commands.

Entry point: ``starkstage`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import typer

from starkstage.cli.commands.dockerfile_cmd import dockerfile_cmd
from starkstage.cli.commands.manifest_cmd import manifest_cmd
from starkstage.cli.commands.stage_cmd import stage_cmd
from starkstage.config import config
from starkstage.log import configure_logging

app = typer.Typer(
    name="starkstage",
    help="Starkstage: stage the Groth16 prover bundle into a scratch layer.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def _main(
    log_level: str = typer.Option(
        None, "--log-level", help="Override STARKSTAGE_LOG_LEVEL."
    ),
) -> None:
    configure_logging(log_level or config.log_level)


# Register subcommands
app.command(name="stage", help="Copy the prover bundle into a layer for a tag.")(stage_cmd)
app.command(name="dockerfile", help="Render the equivalent multi-stage Dockerfile.")(dockerfile_cmd)
app.command(name="manifest", help="List the files staged into the layer.")(manifest_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
