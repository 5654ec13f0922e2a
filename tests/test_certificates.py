"""
Tests for certificate building, disclosure gating and verification.
"""

import json

import pytest

from journal_integrity.errors import NotFoundError, ValidationError
from journal_integrity.integrity import CertificateBuilder, CertificateRequest, MerkleProof, ProofService
from journal_integrity.records import DisclosureLevel
from journal_integrity.reporting import CertificateRenderer

CONTENTS = [
    ("Draft an opening about tides", "prompt"),
    ("The sea keeps its own hours", "response"),
    ("Keep the second sentence", "decision"),
    ("The sea keeps its own hours, and so do I", "revision"),
    ("Read aloud, sounds right", "voice"),
]


@pytest.fixture
def builder(store, checkpointer, proofs) -> CertificateBuilder:
    return CertificateBuilder(store, checkpointer, proofs, "https://journal.example/")


async def write_journal(ledger, journal_id="j1"):
    return [await ledger.append(journal_id, content, kind) for content, kind in CONTENTS]


def request(level, **overrides) -> CertificateRequest:
    values = {
        "document_id": "doc-1",
        "journal_id": "j1",
        "title": "Tides",
        "author": {"name": "A. Writer", "identifier": "orcid:0000"},
        "disclosure_level": level,
    }
    values.update(overrides)
    return CertificateRequest(**values)


class TestDisclosureGating:
    """Test what each disclosure level reveals."""

    @pytest.mark.asyncio
    async def test_private_reveals_only_root(self, ledger, builder):
        await write_journal(ledger)

        certificate = await builder.build(request("private"))
        payload = certificate.proof_payload

        assert certificate.disclosure_level is DisclosureLevel.PRIVATE
        assert payload["proof"]["merkleRoot"] == certificate.merkle_root
        for hidden in ("title", "author", "writingProcess"):
            assert hidden not in payload
        assert "witnessType" not in payload["proof"]
        assert "inclusionProofs" not in payload["proof"]
        assert payload["summaryGenerated"] is False

    @pytest.mark.asyncio
    async def test_summary_has_content_free_stats(self, ledger, builder):
        entries = await write_journal(ledger)

        certificate = await builder.build(request("summary"))
        process = certificate.proof_payload["writingProcess"]

        assert certificate.proof_payload["title"] == "Tides"
        assert process["entryCount"] == 5
        assert process["checkpointCount"] == 1
        assert process["aiAssistance"] is True
        assert process["startDate"] == entries[0].created_at.isoformat()
        assert certificate.proof_payload["proof"]["witnessType"] == "local"

    @pytest.mark.asyncio
    async def test_no_level_leaks_content(self, ledger, builder):
        entries = await write_journal(ledger)

        for level in DisclosureLevel:
            extra = {"proof_entries": {"opening": entries[0].content_hash}} if level is DisclosureLevel.PUBLIC else {}
            certificate = await builder.build(request(level, **extra))
            dumped = json.dumps(certificate.to_dict())
            for content, _ in CONTENTS:
                assert content not in dumped

    @pytest.mark.asyncio
    async def test_public_embeds_named_proofs(self, ledger, builder):
        entries = await write_journal(ledger)
        private = await builder.build(request("private"))

        public = await builder.build(
            request("public", proof_entries={"decision": entries[2].content_hash})
        )

        assert public.merkle_root == private.merkle_root
        assert public.checkpoint_id == private.checkpoint_id
        embedded = public.proof_payload["proof"]["inclusionProofs"]["decision"]
        proof = MerkleProof.from_dict(embedded)
        assert proof.leaf_hash == entries[2].content_hash
        assert ProofService.verify_proof(proof, public.merkle_root)

    @pytest.mark.asyncio
    async def test_proofs_refused_below_public(self, ledger, builder):
        entries = await write_journal(ledger)

        with pytest.raises(ValidationError):
            await builder.build(request("summary", proof_entries={"x": entries[0].content_hash}))

    @pytest.mark.asyncio
    async def test_rejects_bad_requests(self, ledger, builder):
        await write_journal(ledger)

        with pytest.raises(ValidationError):
            await builder.build(request("secret"))
        with pytest.raises(ValidationError):
            await builder.build(request("public", proof_entries={"x": "nothex"}))
        with pytest.raises(ValidationError):
            await builder.build(request("summary", author={}))
        with pytest.raises(ValidationError):
            await builder.build(request("summary", title="  "))


class TestBuild:
    """Test checkpoint coverage and persistence."""

    @pytest.mark.asyncio
    async def test_checkpoints_new_entries_first(self, store, ledger, builder):
        await write_journal(ledger)
        first = await builder.build(request("summary"))
        await ledger.append("j1", "one more line", "revision")

        second = await builder.build(request("summary"))

        assert second.checkpoint_id != first.checkpoint_id
        checkpoint = await store.get_checkpoint(second.checkpoint_id)
        assert checkpoint.entry_range == (6, 6)
        assert second.proof_payload["writingProcess"]["entryCount"] == 6
        assert second.proof_payload["writingProcess"]["checkpointCount"] == 2

    @pytest.mark.asyncio
    async def test_each_build_is_a_new_certificate(self, ledger, builder):
        await write_journal(ledger)

        a = await builder.build(request("private"))
        b = await builder.build(request("private"))

        assert a.id != b.id
        assert a.public_url == f"https://journal.example/verify/{a.id}"
        assert len(await builder.list_for_journal("j1")) == 2

    @pytest.mark.asyncio
    async def test_empty_journal(self, builder):
        with pytest.raises(NotFoundError):
            await builder.build(request("private"))


class TestVerifyCertificate:
    """Test the public verification contract."""

    @pytest.mark.asyncio
    async def test_valid_certificate(self, ledger, builder):
        entries = await write_journal(ledger)
        certificate = await builder.build(
            request("public", proof_entries={"first": entries[0].content_hash})
        )

        result = await builder.verify(certificate.id)

        assert result.is_valid
        assert result.merkle_root == certificate.merkle_root
        assert result.checkpoint_id == certificate.checkpoint_id
        assert result.witness_proof.startswith("local-")
        assert result.errors == []

    @pytest.mark.asyncio
    async def test_tampered_journal_invalidates_certificate(self, store, ledger, builder, tamper):
        await write_journal(ledger)
        certificate = await builder.build(request("summary"))
        tamper(store, "j1", 4, "quietly rewritten")

        result = await builder.verify(certificate.id)

        assert not result.is_valid
        assert result.errors

    @pytest.mark.asyncio
    async def test_unknown_certificate(self, builder):
        with pytest.raises(NotFoundError):
            await builder.verify("missing")


class TestCertificateRenderer:
    """Test the HTML certificate page."""

    @pytest.mark.asyncio
    async def test_renders_summary(self, ledger, builder):
        await write_journal(ledger)
        certificate = await builder.build(request("summary", title="<script>alert(1)</script>"))
        result = await builder.verify(certificate.id)

        html = CertificateRenderer().render(certificate, result)

        assert certificate.merkle_root in html
        assert "Verified" in html
        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html

    @pytest.mark.asyncio
    async def test_private_page_hides_process(self, ledger, builder):
        await write_journal(ledger)
        certificate = await builder.build(request("private"))

        html = CertificateRenderer().render(certificate)

        assert "Tides" not in html
        assert "Writing Process</h2>" not in html
        assert certificate.merkle_root in html
