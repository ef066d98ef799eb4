"""Output layer models — the description of a finalized staging run."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class LayerEntry(BaseModel):
    """A single file inside the output layer."""

    model_config = ConfigDict(frozen=True)

    path: str  # "{tag}/stark/prover.sh", relative to the working directory
    member: str  # "{tag}/{tag}/stark/prover.sh", the tar member name
    source_path: str
    content_address: str  # "sha256:<hex>"
    size_bytes: int
    mode: int


class OutputLayer(BaseModel):
    """The finalized output artifact.

    Carries no timestamps, so two runs over the same upstream image compare
    equal.
    """

    model_config = ConfigDict(frozen=True)

    tag: str
    source_ref: str
    workdir: str
    entries: tuple[LayerEntry, ...]
    layer_digest: str  # "sha256:<hex>" of the layer tar
    layer_path: str
    manifest_hash: str
    store_address: str | None = None

    @property
    def paths(self) -> list[str]:
        return [entry.path for entry in self.entries]

    @property
    def members(self) -> list[str]:
        return [entry.member for entry in self.entries]

    def entry(self, path: str) -> LayerEntry:
        for candidate in self.entries:
            if candidate.path == path:
                return candidate
        raise KeyError(path)
