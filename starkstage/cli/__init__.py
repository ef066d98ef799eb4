"""Starkstage CLI — Typer-based command-line interface.

Provides the ``starkstage`` command with subcommands for staging a prover
layer, rendering the equivalent Dockerfile, and listing the manifest.

All output uses Rich for formatted terminal display.
"""
