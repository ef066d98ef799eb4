"""Canonical hashing helpers for content addressing and reproducibility.

Every digest the stager emits goes through these helpers so that two runs
over the same upstream image agree byte for byte.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from starkstage.models.manifest import ArtifactManifest

_CHUNK_SIZE = 1 << 20


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: str | Path) -> str:
    """Return the SHA-256 hex digest of a file, read in chunks.

    Prover keys run to gigabytes, so files are never read whole.
    """
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def file_address(path: str | Path) -> str:
    """Content-address a file's bytes as ``sha256:<hex>``."""
    return f"sha256:{sha256_file(path)}"


def compute_manifest_hash(manifest: ArtifactManifest) -> str:
    """SHA-256 of the canonical, ordered manifest rows.

    Order is part of the identity: the same rows in a different order hash
    differently.
    """
    rows = [[entry.source, entry.destination] for entry in manifest.entries]
    return sha256_hex(canonical_json_bytes({"entries": rows}))
