"""Shared test fixtures for Starkstage."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from starkstage.core.artifact_store import ContentAddressedStore
from starkstage.core.sources import DirectorySource
from starkstage.core.stager import ArtifactStager

STARK_VERIFY = b"\x7fELF\x02\x01\x01stark_verify-binary"
STARK_VERIFY_DAT = b"witness-calculator-data" * 16
FINAL_ZKEY = bytes(range(256)) * 8
RAPIDSNARK = b"\x7fELF\x02\x01\x01rapidsnark-binary"


def build_prover_root(root: Path, *, skip: tuple[str, ...] = ()) -> Path:
    """Lay out a fake prover image filesystem under *root*."""
    files = {
        "app/stark_verify": (STARK_VERIFY, 0o755),
        "app/stark_verify.dat": (STARK_VERIFY_DAT, 0o644),
        "app/stark_verify_final.zkey": (FINAL_ZKEY, 0o600),
        "usr/local/sbin/rapidsnark": (RAPIDSNARK, 0o775),
    }
    for rel, (data, mode) in files.items():
        if f"/{rel}" in skip:
            continue
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        path.chmod(mode)
    return root


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def make_prover_root() -> Callable[..., Path]:
    """Factory fixture: lay out a fake prover image, optionally missing files."""
    return build_prover_root


@pytest.fixture
def stark_verify_bytes() -> bytes:
    return STARK_VERIFY


@pytest.fixture
def prover_root(tmp_dir: Path) -> Path:
    """A complete fake root filesystem of the upstream prover image."""
    return build_prover_root(tmp_dir / "image")


@pytest.fixture
def source_factory(prover_root: Path) -> Callable[[str], DirectorySource]:
    """Factory that serves every reference from ``prover_root``."""

    def _factory(ref: str) -> DirectorySource:
        return DirectorySource(prover_root, ref=ref)

    return _factory


@pytest.fixture
def output_dir(tmp_dir: Path) -> Path:
    return tmp_dir / "out"


@pytest.fixture
def stager(output_dir: Path, source_factory) -> ArtifactStager:
    """Provide an ArtifactStager reading from the fake prover image."""
    return ArtifactStager(output_dir, source_factory=source_factory)


@pytest.fixture
def artifact_store(tmp_dir: Path) -> ContentAddressedStore:
    """Provide a fresh ContentAddressedStore in a temp directory."""
    return ContentAddressedStore(tmp_dir / "store")


@pytest.fixture
def tag() -> str:
    return "v2.0.1"
