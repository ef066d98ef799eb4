"""Content-addressed, immutable store for published layers.

Storage layout: {base_path}/{sha256[0:2]}/{sha256[2:4]}/{sha256}.dat
There is no delete: once a layer is published its bytes never change.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

from starkstage.core.errors import StagerError
from starkstage.core.hasher import sha256_file, sha256_hex

logger = logging.getLogger(__name__)


class ArtifactIntegrityError(StagerError):
    """Raised when a stored blob's hash does not match its address."""


class ContentAddressedStore:
    """SHA-256 keyed, immutable blob store.

    Storing the same content twice is a no-op after an integrity check of
    the existing blob.

    Parameters
    ----------
    base_path:
        Root directory for blob storage.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def base_path(self) -> Path:
        return self._base

    @staticmethod
    def _extract_digest(address: str) -> str:
        return address.removeprefix("sha256:")

    def _blob_path(self, digest: str) -> Path:
        return self._base / digest[:2] / digest[2:4] / f"{digest}.dat"

    def _check_existing(self, digest: str) -> None:
        if not self.verify(digest):
            raise ArtifactIntegrityError(
                f"Existing blob at {digest} failed integrity check"
            )

    # ------------------------------------------------------------------
    # Store
    # ------------------------------------------------------------------

    def store(self, data: bytes) -> str:
        """Store *data* and return its ``sha256:<hex>`` address."""
        digest = sha256_hex(data)
        path = self._blob_path(digest)
        if path.exists():
            self._check_existing(digest)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._atomic_write(path, lambda handle: handle.write(data))
        return f"sha256:{digest}"

    def store_file(self, source: Path) -> str:
        """Store the bytes of *source* without loading them into memory."""
        digest = sha256_file(source)
        path = self._blob_path(digest)
        if path.exists():
            self._check_existing(digest)
            logger.debug("Blob sha256:%s already stored", digest)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)

            def _copy(handle) -> None:
                with open(source, "rb") as src:
                    shutil.copyfileobj(src, handle)

            self._atomic_write(path, _copy)
            logger.info("Stored blob sha256:%s (%d bytes)", digest, path.stat().st_size)
        return f"sha256:{digest}"

    @staticmethod
    def _atomic_write(path: Path, writer) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".partial")
        try:
            with os.fdopen(fd, "wb") as handle:
                writer(handle)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    # ------------------------------------------------------------------
    # Retrieve and check
    # ------------------------------------------------------------------

    def retrieve(self, address: str) -> bytes:
        """Retrieve blob bytes by ``sha256:<hex>`` or bare hex digest."""
        path = self.path_for(address)
        if not path.exists():
            raise FileNotFoundError(f"Blob not found: {address}")
        return path.read_bytes()

    def path_for(self, address: str) -> Path:
        return self._blob_path(self._extract_digest(address))

    def exists(self, address: str) -> bool:
        return self.path_for(address).exists()

    def verify(self, address: str) -> bool:
        """Re-hash the stored blob and compare it against its address."""
        digest = self._extract_digest(address)
        path = self._blob_path(digest)
        if not path.exists():
            return False
        return sha256_file(path) == digest
