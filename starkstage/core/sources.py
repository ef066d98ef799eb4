"""Staging sources — read-only views of an upstream image's filesystem.

``DockerImageSource`` drives the docker CLI: the image is pulled, a stopped
container is created from it, and files are copied out with ``docker cp``.
The container is never started. ``DirectorySource`` treats a local
directory as the image root, which is how pre-extracted images and tests
feed the stager.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from starkstage.core.errors import (
    CommandError,
    MissingArtifactError,
    SourceResolutionError,
)

logger = logging.getLogger(__name__)

# docker cp reports a missing path with one of these, depending on version.
_MISSING_PATH_MARKERS = ("could not find the file", "no such container:path", "no such file")


def run_command(
    command: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run *command* and return the completed process without checking it."""
    process_env = os.environ.copy()
    if env:
        process_env.update(env)
    logger.debug("Running %s", " ".join(command))
    return subprocess.run(
        list(command),
        env=process_env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=False,
    )


@runtime_checkable
class StagingSource(Protocol):
    """Read-only staging context the stager copies from."""

    ref: str

    def open(self) -> None: ...

    def close(self) -> None: ...

    def copy_to(self, path: str, dest: Path) -> None: ...


class _SourceBase:
    ref: str

    def open(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class DirectorySource(_SourceBase):
    """A local directory standing in for an image's root filesystem."""

    def __init__(self, root: Path, ref: str | None = None) -> None:
        self.root = Path(root)
        self.ref = ref or f"dir:{self.root}"

    def open(self) -> None:
        if not self.root.is_dir():
            raise SourceResolutionError(
                f"Cannot resolve {self.ref}: {self.root} is not a directory"
            )
        logger.info("Using directory %s as staging context for %s", self.root, self.ref)

    def close(self) -> None:
        pass

    def _local(self, path: str) -> Path:
        return self.root / path.lstrip("/")

    def copy_to(self, path: str, dest: Path) -> None:
        local = self._local(path)
        if not local.is_file():
            raise MissingArtifactError(path, self.ref)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(local, dest)
        shutil.copymode(local, dest)


class DockerImageSource(_SourceBase):
    """An upstream image accessed through the docker CLI.

    Parameters
    ----------
    ref:
        Image reference, e.g. ``risczero/risc0-groth16-prover:v2.0.1``.
    docker:
        The docker executable.
    pull:
        Pull the reference before creating the container. Disable to use
        only what is already in the local image cache.
    """

    def __init__(self, ref: str, docker: str = "docker", pull: bool = True) -> None:
        self.ref = ref
        self.docker = docker
        self.pull = pull
        self.container_id: str | None = None

    def _run(self, *args: str) -> subprocess.CompletedProcess[str]:
        try:
            return run_command([self.docker, *args])
        except FileNotFoundError as exc:
            raise SourceResolutionError(
                f"Cannot resolve {self.ref}: docker executable {self.docker!r} not found"
            ) from exc

    def open(self) -> None:
        if self.pull:
            logger.info("Pulling %s", self.ref)
            result = self._run("pull", self.ref)
            if result.returncode != 0:
                raise SourceResolutionError(
                    f"Cannot pull {self.ref}: {result.stderr.strip()}"
                )

        # The command is a placeholder: the container is only a copy source.
        result = self._run("create", self.ref, "true")
        if result.returncode != 0:
            raise SourceResolutionError(
                f"Cannot create a staging container from {self.ref}: "
                f"{result.stderr.strip()}"
            )
        self.container_id = result.stdout.strip()
        logger.info("Staging container %s created from %s", self.container_id[:12], self.ref)

    def close(self) -> None:
        if self.container_id is None:
            return
        container_id, self.container_id = self.container_id, None
        result = self._run("rm", "-f", container_id)
        if result.returncode != 0:
            logger.warning(
                "Failed to remove staging container %s: %s",
                container_id[:12],
                result.stderr.strip(),
            )

    def _require_container(self) -> str:
        if self.container_id is None:
            raise SourceResolutionError(f"Staging context for {self.ref} is not open")
        return self.container_id

    def copy_to(self, path: str, dest: Path) -> None:
        container_id = self._require_container()
        dest.parent.mkdir(parents=True, exist_ok=True)
        # -L copies what a symlink points at rather than the link
        command = ["cp", "-L", f"{container_id}:{path}", str(dest)]
        result = self._run(*command)
        if result.returncode == 0:
            return
        stderr = result.stderr.lower()
        if any(marker in stderr for marker in _MISSING_PATH_MARKERS):
            raise MissingArtifactError(path, self.ref)
        raise CommandError(
            [self.docker, *command], result.returncode, result.stdout, result.stderr
        )
