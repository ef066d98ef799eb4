"""Tests for the Dockerfile renderer."""

from __future__ import annotations

from pathlib import Path

from starkstage.core.dockerfile import render_dockerfile
from starkstage.models.manifest import ArtifactManifest

EXPECTED = """\
ARG PROVER_TAG
FROM risczero/risc0-groth16-prover:${PROVER_TAG} as prover

FROM scratch
ARG PROVER_TAG
WORKDIR /${PROVER_TAG}
COPY --from=prover /app/stark_verify ${PROVER_TAG}/stark/prover.sh
COPY --from=prover /app/stark_verify ${PROVER_TAG}/stark/stark_verify
COPY --from=prover /app/stark_verify.dat ${PROVER_TAG}/stark/stark_verify.dat
COPY --from=prover /app/stark_verify_final.zkey ${PROVER_TAG}/stark/stark_verify_final.zkey
COPY --from=prover /usr/local/sbin/rapidsnark ${PROVER_TAG}/stark/rapidsnark
"""


class TestRenderDockerfile:
    def test_default_manifest(self):
        assert render_dockerfile() == EXPECTED

    def test_copy_per_entry_with_duplicates(self):
        copies = [line for line in render_dockerfile().splitlines() if line.startswith("COPY")]
        assert len(copies) == 5
        assert sum("/app/stark_verify " in line for line in copies) == 2

    def test_scratch_base(self):
        lines = render_dockerfile().splitlines()
        assert "FROM scratch" in lines
        assert lines.index("FROM scratch") < lines.index("WORKDIR /${PROVER_TAG}")

    def test_custom_repository_and_stage(self):
        text = render_dockerfile(repository="mirror.local/prover", stage_name="src")
        assert "FROM mirror.local/prover:${PROVER_TAG} as src" in text
        assert "COPY --from=src /app/stark_verify ${PROVER_TAG}/stark/prover.sh" in text

    def test_custom_manifest(self):
        manifest = ArtifactManifest.from_pairs([("/bin/tool", "bin/tool")])
        text = render_dockerfile(manifest, arg="TAG")
        assert text.splitlines()[-1] == "COPY --from=prover /bin/tool ${TAG}/bin/tool"
        assert "WORKDIR /${TAG}" in text


class TestCheckedInDockerfile:
    def test_matches_rendered(self):
        """The Dockerfile at the repository root must be regenerated on manifest changes."""
        dockerfile = Path(__file__).resolve().parents[2] / "Dockerfile"
        assert dockerfile.read_text(encoding="utf-8") == render_dockerfile()
