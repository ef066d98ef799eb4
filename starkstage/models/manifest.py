"""The staging manifest — which files leave the prover image, and where they land.

The manifest is plain data: adding or removing a file from the bundle is an
edit to ``DEFAULT_MANIFEST``, not to the stager.
"""

from __future__ import annotations

import posixpath

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from starkstage.core.errors import MissingParameterError
from starkstage.core.hasher import compute_manifest_hash

SOURCE_REPOSITORY = "risczero/risc0-groth16-prover"
TAG_PARAMETER = "PROVER_TAG"


def require_tag(tag: str | None) -> str:
    """Return *tag* unchanged, or raise ``MissingParameterError`` if absent.

    Any non-empty string is a valid tag; only ``None``, ``""`` and
    whitespace-only values count as missing.
    """
    if tag is None or not tag.strip():
        raise MissingParameterError(
            f"{TAG_PARAMETER} is required: no version tag was supplied"
        )
    return tag


def resolve_source_ref(tag: str | None, repository: str = SOURCE_REPOSITORY) -> str:
    """Format the upstream image reference for *tag*."""
    return f"{repository}:{require_tag(tag)}"


def workdir_for(tag: str | None) -> str:
    """The output layer's working directory: ``/{tag}``."""
    return f"/{require_tag(tag)}"


class ArtifactMapping(BaseModel):
    """One (source path -> destination path) row.

    ``destination`` is relative to the working directory, e.g.
    ``stark/prover.sh``.
    """

    model_config = ConfigDict(frozen=True)

    source: str
    destination: str

    @field_validator("source")
    @classmethod
    def _source_is_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"source path must be absolute: {value!r}")
        return value

    @field_validator("destination")
    @classmethod
    def _destination_is_relative(cls, value: str) -> str:
        parts = value.split("/")
        if value.startswith("/") or ".." in parts or "" in parts:
            raise ValueError(f"destination must be a clean relative path: {value!r}")
        return value

    def destination_for(self, tag: str) -> str:
        """Destination path rooted at the tag directory: ``{tag}/{destination}``."""
        return f"{require_tag(tag)}/{self.destination}"

    def layer_member(self, tag: str) -> str:
        """Where the file sits in the image filesystem, relative to ``/``.

        The destination is resolved against the working directory the way
        ``COPY`` resolves a relative path after ``WORKDIR /{tag}``, so an
        ordinary tag gives ``{tag}/{tag}/{destination}``. The result is
        normalized under ``/`` and never climbs above it.
        """
        joined = posixpath.join(workdir_for(tag), self.destination_for(tag))
        return posixpath.normpath(joined).lstrip("/")


class ArtifactManifest(BaseModel):
    """Ordered, immutable set of artifact mappings.

    The same source may appear under several destinations; each destination
    may appear only once.
    """

    model_config = ConfigDict(frozen=True)

    entries: tuple[ArtifactMapping, ...]

    @model_validator(mode="after")
    def _unique_destinations(self) -> "ArtifactManifest":
        seen: set[str] = set()
        for entry in self.entries:
            if entry.destination in seen:
                raise ValueError(f"duplicate destination: {entry.destination}")
            seen.add(entry.destination)
        return self

    @classmethod
    def from_pairs(cls, pairs: list[tuple[str, str]]) -> "ArtifactManifest":
        return cls(
            entries=tuple(
                ArtifactMapping(source=src, destination=dest) for src, dest in pairs
            )
        )

    def __len__(self) -> int:
        return len(self.entries)

    def destinations(self, tag: str) -> list[str]:
        """All destination paths for *tag*, in manifest order."""
        return [entry.destination_for(tag) for entry in self.entries]

    def layer_members(self, tag: str) -> list[str]:
        """Image paths for *tag*, relative to ``/``, in manifest order."""
        return [entry.layer_member(tag) for entry in self.entries]

    def source_paths(self) -> list[str]:
        """Unique source paths, in first-seen order."""
        return list(dict.fromkeys(entry.source for entry in self.entries))

    @property
    def manifest_hash(self) -> str:
        return compute_manifest_hash(self)


# /app/stark_verify is shipped twice on purpose: once as the prover.sh entry
# point and once under its own name.
DEFAULT_MANIFEST = ArtifactManifest.from_pairs(
    [
        ("/app/stark_verify", "stark/prover.sh"),
        ("/app/stark_verify", "stark/stark_verify"),
        ("/app/stark_verify.dat", "stark/stark_verify.dat"),
        ("/app/stark_verify_final.zkey", "stark/stark_verify_final.zkey"),
        ("/usr/local/sbin/rapidsnark", "stark/rapidsnark"),
    ]
)
