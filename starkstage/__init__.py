"""Starkstage: stage the RISC Zero Groth16 prover bundle into a scratch layer.

Copies a fixed manifest of prover files out of
``risczero/risc0-groth16-prover:{PROVER_TAG}`` into a deterministic layer
rooted at ``/{PROVER_TAG}``, and renders the equivalent multi-stage
Dockerfile from the same manifest.
"""

__version__ = "0.1.0"
__description__ = "Deterministic staging of the Groth16 prover bundle"

from starkstage.core.errors import (
    MissingArtifactError,
    MissingParameterError,
    SourceResolutionError,
    StagerError,
    UnsafePathError,
)
from starkstage.core.stager import ArtifactStager
from starkstage.models.manifest import DEFAULT_MANIFEST

__all__ = [
    "ArtifactStager",
    "DEFAULT_MANIFEST",
    "MissingArtifactError",
    "MissingParameterError",
    "SourceResolutionError",
    "StagerError",
    "UnsafePathError",
    "__version__",
]
