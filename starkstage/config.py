"""Stager configuration — env-driven.

Settings come from STARKSTAGE_* environment variables or a .env file. The
version tag additionally honours the bare ``PROVER_TAG`` build parameter.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from starkstage.models.manifest import SOURCE_REPOSITORY


class StagerSettings(BaseSettings):
    """Configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export PROVER_TAG=v2.0.1
        export STARKSTAGE_OUTPUT_DIR=/build/layers
        export STARKSTAGE_LOG_LEVEL=DEBUG

    Or via .env file::

        STARKSTAGE_PUBLISH=true
        STARKSTAGE_ARTIFACT_STORE_PATH=/data/layers
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="STARKSTAGE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"

    # Build parameter — no default; absence fails the run
    prover_tag: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "prover_tag", "STARKSTAGE_PROVER_TAG", "PROVER_TAG"
        ),
    )

    # Upstream image
    source_repository: str = SOURCE_REPOSITORY
    docker_binary: str = "docker"
    pull: bool = True

    # Output
    output_dir: Path = Path("dist")
    artifact_store_path: Path = Path(".starkstage/layers")
    publish: bool = False
    copy_workers: int = Field(default=1, ge=1)


# Module-level singleton — import as `from starkstage.config import config`
config = StagerSettings()
