"""
Tests for inclusion proofs against checkpoints.
"""

import pytest

from journal_integrity.errors import IntegrityError, NotCheckpointedError, NotFoundError, ValidationError
from journal_integrity.hashing import sha256_hex
from journal_integrity.integrity import MerkleProof, ProofService
from journal_integrity.integrity.merkle_tree import hash_pair


async def five_entry_journal(ledger, checkpointer, journal_id="j1"):
    entries = [await ledger.append(journal_id, f"entry {i}", "revision") for i in range(1, 6)]
    checkpoint = await checkpointer.create_checkpoint(journal_id)
    return entries, checkpoint


class TestGetProof:
    """Test proof generation."""

    @pytest.mark.asyncio
    async def test_worked_example(self, ledger, checkpointer, proofs):
        entries, checkpoint = await five_entry_journal(ledger, checkpointer)
        h1, h2, h3, h4, h5 = (e.content_hash for e in entries)

        proof = await proofs.get_proof("j1", h3)

        assert proof.leaf_hash == h3
        assert proof.root == checkpoint.merkle_root
        assert proof.checkpoint_id == checkpoint.id
        assert proof.leaf_index == 2
        assert proof.verified
        assert [step.hash for step in proof.sibling_path] == [h4, hash_pair(h1, h2), h5]

    @pytest.mark.asyncio
    async def test_every_entry_verifies_across_checkpoints(self, ledger, checkpointer, proofs):
        entries, _ = await five_entry_journal(ledger, checkpointer)
        entries += [await ledger.append("j1", f"entry {i}", "revision") for i in range(6, 9)]
        second = await checkpointer.create_checkpoint("j1")

        for entry in entries:
            proof = await proofs.get_proof("j1", entry.content_hash)
            assert proof.verified, entry.sequence
            assert ProofService.verify_proof(proof)

        late = await proofs.get_proof("j1", entries[-1].content_hash)
        assert late.root == second.merkle_root
        assert late.leaf_index == 2

    @pytest.mark.asyncio
    async def test_unknown_hash(self, ledger, checkpointer, proofs):
        await five_entry_journal(ledger, checkpointer)

        with pytest.raises(NotFoundError) as exc_info:
            await proofs.get_proof("j1", sha256_hex("never written"))

        assert not isinstance(exc_info.value, NotCheckpointedError)

    @pytest.mark.asyncio
    async def test_entry_not_yet_checkpointed(self, ledger, checkpointer, proofs):
        await five_entry_journal(ledger, checkpointer)
        pending = await ledger.append("j1", "after checkpoint", "revision")

        with pytest.raises(NotCheckpointedError) as exc_info:
            await proofs.get_proof("j1", pending.content_hash)

        assert exc_info.value.sequence == 6

    @pytest.mark.asyncio
    async def test_malformed_hash(self, proofs):
        with pytest.raises(ValidationError):
            await proofs.get_proof("j1", "0xdeadbeef")

    @pytest.mark.asyncio
    async def test_metadata_has_no_path(self, ledger, checkpointer, proofs):
        entries, checkpoint = await five_entry_journal(ledger, checkpointer)

        metadata = await proofs.get_proof_metadata("j1", entries[0].content_hash)

        assert metadata["root"] == checkpoint.merkle_root
        assert metadata["verified"] is True
        assert metadata["path_length"] == 3
        assert "sibling_path" not in metadata


class TestVerifyProof:
    """Test stateless verification by a third party."""

    @pytest.mark.asyncio
    async def test_portable_proof_verifies_without_store(self, ledger, checkpointer, proofs):
        entries, checkpoint = await five_entry_journal(ledger, checkpointer)
        issued = (await proofs.get_proof("j1", entries[1].content_hash)).to_dict()

        received = MerkleProof.from_dict(issued)

        assert ProofService.verify_proof(received, checkpoint.merkle_root)
        assert not ProofService.verify_proof(received, sha256_hex("forged root"))

    @pytest.mark.asyncio
    async def test_entry_content_check(self, ledger, checkpointer, proofs):
        entries, checkpoint = await five_entry_journal(ledger, checkpointer)
        proof = await proofs.get_proof("j1", entries[2].content_hash)

        assert ProofService.verify_entry_content("entry 3", proof, checkpoint.merkle_root)
        assert not ProofService.verify_entry_content("entry 3!", proof, checkpoint.merkle_root)

    @pytest.mark.asyncio
    async def test_tampering_breaks_issued_proof(self, store, ledger, checkpointer, proofs, tamper):
        entries, checkpoint = await five_entry_journal(ledger, checkpointer)
        issued = await proofs.get_proof("j1", entries[2].content_hash)

        tampered = tamper(store, "j1", 3, "entry 3 rewritten")

        assert not ProofService.verify_entry_content(tampered.content, issued, checkpoint.merkle_root)
        rebuilt = await proofs.get_proof("j1", tampered.content_hash)
        assert not rebuilt.verified


class TestMissingCoveredEntry:
    """Test proofs when an entry inside a checkpoint has been removed."""

    @pytest.mark.asyncio
    async def test_get_proof_raises_integrity_error(self, store, ledger, checkpointer, proofs):
        entries, checkpoint = await five_entry_journal(ledger, checkpointer)
        del store._entries["j1"][3]

        with pytest.raises(IntegrityError) as exc_info:
            await proofs.get_proof("j1", entries[4].content_hash)

        assert exc_info.value.checkpoint_id == checkpoint.id
        assert exc_info.value.sequence == 3

    @pytest.mark.asyncio
    async def test_checkpoint_verification_reports_gap(self, store, ledger, checkpointer):
        _, checkpoint = await five_entry_journal(ledger, checkpointer)
        del store._entries["j1"][3]

        result = await checkpointer.verify_checkpoint(checkpoint.id)

        assert not result.is_valid
        assert "sequence 3" in result.errors[0]
