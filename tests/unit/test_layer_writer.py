"""Tests for the deterministic tar layer writer."""

from __future__ import annotations

import tarfile
from pathlib import Path

import pytest

from starkstage.core.layer_writer import (
    list_layer,
    normalized_mode,
    parent_directories,
    write_layer,
)


@pytest.fixture
def tree(tmp_dir: Path) -> Path:
    root = tmp_dir / "tree"
    (root / "v1/stark").mkdir(parents=True)
    (root / "v1/stark/tool").write_bytes(b"tool")
    (root / "v1/stark/tool").chmod(0o700)
    (root / "v1/stark/data.bin").write_bytes(b"data")
    (root / "v1/stark/data.bin").chmod(0o640)
    return root


class TestNormalizedMode:
    def test_any_exec_bit_is_executable(self):
        assert normalized_mode(0o100) == 0o755
        assert normalized_mode(0o710) == 0o755
        assert normalized_mode(0o001) == 0o755

    def test_non_executable(self):
        assert normalized_mode(0o600) == 0o644
        assert normalized_mode(0o666) == 0o644


class TestParentDirectories:
    def test_sorted_ancestors(self):
        assert parent_directories(["a/b/c", "a/d"]) == ["a", "a/b"]

    def test_top_level_file_has_no_parents(self):
        assert parent_directories(["file"]) == []


class TestWriteLayer:
    def test_members_normalized(self, tree: Path, tmp_dir: Path):
        dest = tmp_dir / "layer.tar"
        write_layer(tree, ["v1/stark/tool", "v1/stark/data.bin"], dest)
        with tarfile.open(dest) as archive:
            members = {m.name: m for m in archive.getmembers()}
        assert set(members) == {"v1", "v1/stark", "v1/stark/tool", "v1/stark/data.bin"}
        for member in members.values():
            assert member.mtime == 0
            assert member.uid == 0 and member.gid == 0
            assert member.uname == "" and member.gname == ""
        assert members["v1"].isdir()
        assert members["v1/stark/tool"].mode == 0o755
        assert members["v1/stark/data.bin"].mode == 0o644

    def test_files_sorted(self, tree: Path, tmp_dir: Path):
        dest = tmp_dir / "layer.tar"
        write_layer(tree, ["v1/stark/tool", "v1/stark/data.bin"], dest)
        assert list_layer(dest) == ["v1/stark/data.bin", "v1/stark/tool"]

    def test_member_order_does_not_matter(self, tree: Path, tmp_dir: Path):
        a = write_layer(tree, ["v1/stark/tool", "v1/stark/data.bin"], tmp_dir / "a.tar")
        b = write_layer(tree, ["v1/stark/data.bin", "v1/stark/tool"], tmp_dir / "b.tar")
        assert a == b
        assert (tmp_dir / "a.tar").read_bytes() == (tmp_dir / "b.tar").read_bytes()

    def test_mtime_ignored(self, tree: Path, tmp_dir: Path):
        import os

        first = write_layer(tree, ["v1/stark/tool"], tmp_dir / "a.tar")
        os.utime(tree / "v1/stark/tool", (1_000_000, 1_000_000))
        second = write_layer(tree, ["v1/stark/tool"], tmp_dir / "b.tar")
        assert first == second

    def test_missing_member_leaves_nothing(self, tree: Path, tmp_dir: Path):
        out = tmp_dir / "out"
        with pytest.raises(FileNotFoundError):
            write_layer(tree, ["v1/stark/tool", "v1/stark/absent"], out / "layer.tar")
        assert list(out.iterdir()) == []
