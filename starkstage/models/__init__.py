"""Starkstage data models — all Pydantic v2, all frozen (immutable)."""

from starkstage.models.layer import LayerEntry, OutputLayer
from starkstage.models.manifest import (
    DEFAULT_MANIFEST,
    SOURCE_REPOSITORY,
    TAG_PARAMETER,
    ArtifactManifest,
    ArtifactMapping,
    require_tag,
    resolve_source_ref,
    workdir_for,
)

__all__ = [
    # manifest
    "ArtifactMapping",
    "ArtifactManifest",
    "DEFAULT_MANIFEST",
    "SOURCE_REPOSITORY",
    "TAG_PARAMETER",
    "require_tag",
    "resolve_source_ref",
    "workdir_for",
    # layer
    "LayerEntry",
    "OutputLayer",
]
