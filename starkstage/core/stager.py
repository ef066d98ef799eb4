"""Artifact Stager — assembles the prover bundle from a versioned image.

A staging run is a straight line::

    resolve -> prepare -> fetch -> copy (one per manifest entry) -> finalize

Every failure is fatal and nothing is published unless every step
succeeds: files are copied into a private scratch tree, the layer is
written under a hidden partial name, and only a complete layer is moved to
its final path. Unexpected filesystem errors surface as ``StagerError``.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from starkstage.core.artifact_store import ContentAddressedStore
from starkstage.core.errors import StagerError, UnsafePathError
from starkstage.core.hasher import file_address
from starkstage.core.layer_writer import normalized_mode, write_layer
from starkstage.core.sources import DockerImageSource, StagingSource
from starkstage.models.layer import LayerEntry, OutputLayer
from starkstage.models.manifest import (
    DEFAULT_MANIFEST,
    SOURCE_REPOSITORY,
    ArtifactManifest,
    ArtifactMapping,
    require_tag,
    resolve_source_ref,
    workdir_for,
)

logger = logging.getLogger(__name__)

SourceFactory = Callable[[str], StagingSource]


def layer_filename(tag: str) -> str:
    return f"{tag}.layer.tar"


class ArtifactStager:
    """Copies a fixed manifest of files out of ``{repository}:{tag}``.

    Parameters
    ----------
    output_dir:
        Directory the finished ``{tag}.layer.tar`` is written to.
    manifest:
        The (source -> destination) table. Defaults to the prover bundle.
    repository:
        Upstream image repository; the tag is appended to it.
    source_factory:
        Builds the staging context for a resolved reference. Defaults to
        ``DockerImageSource``.
    store:
        When given, the finished layer is also published into this
        content-addressed store.
    copy_workers:
        Copies are independent of each other; more than one worker runs
        them on a thread pool.
    """

    def __init__(
        self,
        output_dir: Path,
        *,
        manifest: ArtifactManifest = DEFAULT_MANIFEST,
        repository: str = SOURCE_REPOSITORY,
        source_factory: SourceFactory | None = None,
        store: ContentAddressedStore | None = None,
        copy_workers: int = 1,
    ) -> None:
        if copy_workers < 1:
            raise ValueError("copy_workers must be at least 1")
        self.output_dir = Path(output_dir)
        self.manifest = manifest
        self.repository = repository
        self.source_factory: SourceFactory = source_factory or DockerImageSource
        self.store = store
        self.copy_workers = copy_workers

    @classmethod
    def from_settings(cls, settings, **overrides) -> "ArtifactStager":
        """Build a stager from ``StagerSettings``; keyword overrides win."""
        options = {
            "repository": settings.source_repository,
            "source_factory": lambda ref: DockerImageSource(
                ref, docker=settings.docker_binary, pull=settings.pull
            ),
            "store": (
                ContentAddressedStore(settings.artifact_store_path)
                if settings.publish
                else None
            ),
            "copy_workers": settings.copy_workers,
        }
        options.update(overrides)
        return cls(settings.output_dir, **options)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def stage(self, tag: str | None) -> OutputLayer:
        """Run the full pipeline for *tag* and return the finished layer.

        Raises ``MissingParameterError`` before anything else happens when
        the tag is absent, and ``UnsafePathError`` before anything is fetched
        when the tag would put the layer outside ``output_dir``.
        """
        tag = require_tag(tag)

        with _step("resolve", tag):
            ref = resolve_source_ref(tag, self.repository)
            workdir = workdir_for(tag)
            layer_path = _within(self.output_dir / layer_filename(tag), self.output_dir)
            logger.info("Resolved %s (workdir %s)", ref, workdir)

        with _step("prepare", tag):
            layer_path.parent.mkdir(parents=True, exist_ok=True)
            scratch = tempfile.TemporaryDirectory(
                prefix=".starkstage-", dir=self.output_dir
            )

        with scratch as scratch_dir:
            root = Path(scratch_dir)

            with _step("fetch", tag):
                source = self.source_factory(ref)
                source.open()
            try:
                with _step("copy", tag):
                    self._copy_all(source, root, tag)
            finally:
                source.close()

            with _step("finalize", tag):
                return self._finalize(root, tag, ref, workdir, layer_path)

    def _copy_all(self, source: StagingSource, root: Path, tag: str) -> None:
        def _copy(entry: ArtifactMapping) -> None:
            dest = _within(root / entry.layer_member(tag), root)
            source.copy_to(entry.source, dest)
            logger.debug("Copied %s -> %s", entry.source, entry.layer_member(tag))

        if self.copy_workers == 1:
            for entry in self.manifest.entries:
                _copy(entry)
            return

        with ThreadPoolExecutor(max_workers=self.copy_workers) as pool:
            # list() surfaces the first failure, in manifest order
            list(pool.map(_copy, self.manifest.entries))

    def _finalize(
        self, root: Path, tag: str, ref: str, workdir: str, layer_path: Path
    ) -> OutputLayer:
        entries: list[LayerEntry] = []
        for entry in self.manifest.entries:
            member = entry.layer_member(tag)
            local = root / member
            entries.append(
                LayerEntry(
                    path=entry.destination_for(tag),
                    member=member,
                    source_path=entry.source,
                    content_address=file_address(local),
                    size_bytes=local.stat().st_size,
                    mode=normalized_mode(local.stat().st_mode),
                )
            )

        partial = layer_path.with_name(f".{layer_path.name}.partial")
        try:
            digest = write_layer(root, [e.member for e in entries], partial)
            store_address = None
            if self.store is not None:
                store_address = self.store.store_file(partial)
            os.replace(partial, layer_path)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise

        logger.info("Staged %d files for %s into %s", len(entries), ref, layer_path)
        return OutputLayer(
            tag=tag,
            source_ref=ref,
            workdir=workdir,
            entries=tuple(entries),
            layer_digest=digest,
            layer_path=str(layer_path),
            manifest_hash=self.manifest.manifest_hash,
            store_address=store_address,
        )


def _within(path: Path, base: Path) -> Path:
    """Return *path* if it resolves inside *base*, else raise ``UnsafePathError``."""
    if not path.resolve().is_relative_to(base.resolve()):
        raise UnsafePathError(str(path), str(base))
    return path


@contextlib.contextmanager
def _step(name: str, tag: str) -> Iterator[None]:
    logger.debug("[%s] %s", tag, name)
    try:
        yield
    except StagerError as exc:
        logger.error("[%s] %s failed: %s", tag, name, exc)
        raise
    except OSError as exc:
        logger.error("[%s] %s failed: %s", tag, name, exc)
        raise StagerError(f"{name} failed for {tag}: {exc}") from exc
