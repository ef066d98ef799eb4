"""Error hierarchy for the artifact stager.

Every failure is fatal to a staging run: there are no retries and no
partial outputs. Callers that want a single catch-all use ``StagerError``.
"""

from __future__ import annotations

from collections.abc import Sequence


class StagerError(RuntimeError):
    """Base class for all staging failures."""


class MissingParameterError(StagerError):
    """Raised when the version tag was not supplied."""


class SourceResolutionError(StagerError):
    """Raised when the upstream image reference cannot be resolved or fetched."""


class MissingArtifactError(StagerError):
    """Raised when a declared source path is absent from the staging context."""

    def __init__(self, path: str, ref: str) -> None:
        self.path = path
        self.ref = ref
        super().__init__(f"Artifact {path} not found in {ref}")


class CommandError(StagerError):
    """Raised when a docker subprocess exits non-zero for an unexpected reason."""

    def __init__(
        self, command: Sequence[str], returncode: int, stdout: str, stderr: str
    ) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"Command {' '.join(self.command)} failed with exit code {returncode}: "
            f"{stderr.strip() or stdout.strip()}"
        )


class UnsafePathError(StagerError):
    """Raised when a tag would place output outside its target directory."""

    def __init__(self, path: str, base: str) -> None:
        self.path = path
        self.base = base
        super().__init__(f"Refusing to write {path}: it escapes {base}")
