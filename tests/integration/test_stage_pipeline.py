"""End-to-end staging: fake prover image -> layer tar -> extracted tree."""

from __future__ import annotations

import tarfile
from pathlib import Path

from starkstage.core.artifact_store import ContentAddressedStore
from starkstage.core.sources import DirectorySource
from starkstage.core.stager import ArtifactStager
from starkstage.models.manifest import DEFAULT_MANIFEST


def _extract(layer_path: str, dest: Path) -> Path:
    with tarfile.open(layer_path) as archive:
        for member in archive.getmembers():
            target = dest / member.name
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            handle = archive.extractfile(member)
            assert handle is not None
            target.write_bytes(handle.read())
    return dest


class TestStagePipeline:
    def test_full_pipeline(self, prover_root: Path, tmp_dir: Path):
        store = ContentAddressedStore(tmp_dir / "store")
        stager = ArtifactStager(
            tmp_dir / "dist",
            source_factory=lambda ref: DirectorySource(prover_root, ref=ref),
            store=store,
            copy_workers=2,
        )

        layer = stager.stage("v2.0.1")

        tree = _extract(layer.layer_path, tmp_dir / "rootfs")
        files = sorted(
            str(p.relative_to(tree)) for p in tree.rglob("*") if p.is_file()
        )
        assert files == sorted(DEFAULT_MANIFEST.layer_members("v2.0.1"))

        # a process started in the image runs from the working directory
        cwd = tree / layer.workdir.lstrip("/")
        for entry in DEFAULT_MANIFEST.entries:
            staged = cwd / entry.destination_for("v2.0.1")
            original = prover_root / entry.source.lstrip("/")
            assert staged.read_bytes() == original.read_bytes()

        assert layer.manifest_hash == DEFAULT_MANIFEST.manifest_hash
        assert store.retrieve(layer.store_address) == Path(layer.layer_path).read_bytes()

    def test_rebuild_supersedes_layer(self, prover_root: Path, tmp_dir: Path):
        stager = ArtifactStager(
            tmp_dir / "dist",
            source_factory=lambda ref: DirectorySource(prover_root, ref=ref),
        )
        first = stager.stage("v2.0.1")

        (prover_root / "app/stark_verify.dat").write_bytes(b"new witness data")
        second = stager.stage("v2.0.1")

        assert first.layer_path == second.layer_path
        assert first.layer_digest != second.layer_digest
        assert (
            second.entry("v2.0.1/stark/stark_verify.dat").size_bytes
            == len(b"new witness data")
        )
