"""Render the multi-stage Dockerfile equivalent of a staging manifest.

The rendered file pulls ``{repository}:${PROVER_TAG}`` as a named build
stage and copies every manifest row into a ``scratch`` image, so the
Docker build and the Python stager put the same files at the same image
paths.
"""

from __future__ import annotations

from starkstage.models.manifest import (
    DEFAULT_MANIFEST,
    SOURCE_REPOSITORY,
    TAG_PARAMETER,
    ArtifactManifest,
)


def render_dockerfile(
    manifest: ArtifactManifest = DEFAULT_MANIFEST,
    *,
    repository: str = SOURCE_REPOSITORY,
    stage_name: str = "prover",
    arg: str = TAG_PARAMETER,
) -> str:
    """Return the Dockerfile text for *manifest*.

    ``ARG`` is declared twice: once before the first ``FROM`` so it can
    parameterize the image reference, and again inside the ``scratch``
    stage so ``WORKDIR`` and ``COPY`` can see it.
    """
    var = f"${{{arg}}}"
    lines = [
        f"ARG {arg}",
        f"FROM {repository}:{var} as {stage_name}",
        "",
        "FROM scratch",
        f"ARG {arg}",
        f"WORKDIR /{var}",
    ]
    lines.extend(
        f"COPY --from={stage_name} {entry.source} {var}/{entry.destination}"
        for entry in manifest.entries
    )
    return "\n".join(lines) + "\n"
