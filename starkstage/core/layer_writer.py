"""Deterministic tar layer writer.

Two layers built from the same files are byte-identical: entries are
sorted, timestamps are zeroed, ownership is root with empty owner names,
and permissions are normalized to 0o755 (executables, directories) or
0o644 (everything else).
"""

from __future__ import annotations

import logging
import os
import stat
import tarfile
import tempfile
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from starkstage.core.hasher import sha256_file

logger = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755
REGULAR_MODE = 0o644


def normalized_mode(mode: int) -> int:
    """Collapse a file mode to 0o755 or 0o644."""
    if mode & (stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH):
        return EXECUTABLE_MODE
    return REGULAR_MODE


def _tarinfo(name: str, *, directory: bool, size: int = 0, mode: int = REGULAR_MODE) -> tarfile.TarInfo:
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE if directory else tarfile.REGTYPE
    info.mode = EXECUTABLE_MODE if directory else mode
    info.size = 0 if directory else size
    info.mtime = 0
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    return info


def parent_directories(paths: Iterable[str]) -> list[str]:
    """Every ancestor directory of *paths*, sorted.

    Names carry no trailing slash: ``a``, ``a/b``, ...
    """
    parents: set[str] = set()
    for path in paths:
        for parent in PurePosixPath(path).parents:
            if str(parent) != ".":
                parents.add(str(parent))
    return sorted(parents)


def write_layer(root: Path, members: Iterable[str], destination: Path) -> str:
    """Write a tar of *members* (paths relative to *root*) to *destination*.

    The archive is built next to *destination* and moved into place only
    once complete, so a failed write never leaves a partial layer behind.
    Returns the layer's ``sha256:<hex>`` digest.
    """
    files = sorted(members)
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=destination.parent, prefix=f".{destination.name}.", suffix=".partial"
    )
    try:
        with os.fdopen(fd, "wb") as handle, tarfile.open(
            fileobj=handle, mode="w", format=tarfile.PAX_FORMAT
        ) as archive:
            for directory in parent_directories(files):
                archive.addfile(_tarinfo(directory, directory=True))
            for member in files:
                local = root / member
                st = local.stat()
                info = _tarinfo(
                    member,
                    directory=False,
                    size=st.st_size,
                    mode=normalized_mode(st.st_mode),
                )
                with open(local, "rb") as payload:
                    archive.addfile(info, payload)
        digest = f"sha256:{sha256_file(tmp_name)}"
        os.replace(tmp_name, destination)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info("Wrote layer %s (%s, %d files)", destination, digest, len(files))
    return digest


def list_layer(path: Path) -> list[str]:
    """Names of the regular files in a layer tar, in archive order."""
    with tarfile.open(path, mode="r") as archive:
        return [member.name for member in archive.getmembers() if member.isfile()]
