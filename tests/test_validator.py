"""
Tests for the chain validator.
"""

import dataclasses

import pytest

from journal_integrity.errors import IntegrityError
from journal_integrity.integrity import ChainValidator


async def build_journal(ledger, checkpointer, count=5, journal_id="j1"):
    entries = [await ledger.append(journal_id, f"entry {i}", "revision") for i in range(1, count + 1)]
    checkpoint = await checkpointer.create_checkpoint(journal_id)
    return entries, checkpoint


class TestChainValidator:
    """Test whole-journal audits."""

    @pytest.mark.asyncio
    async def test_valid_journal(self, store, ledger, checkpointer):
        entries, _ = await build_journal(ledger, checkpointer)

        report = await ChainValidator(store).validate("j1")

        assert report.valid
        assert report.first_hash == entries[0].content_hash
        assert report.last_hash == entries[-1].content_hash
        assert report.checkpoint_count == 1
        assert report.entry_count == 5
        assert report.first_failing_sequence is None
        assert report.failures == []

    @pytest.mark.asyncio
    async def test_empty_journal_is_valid(self, store):
        report = await ChainValidator(store).validate("nothing")

        assert report.valid
        assert report.first_hash is None
        assert report.entry_count == 0

    @pytest.mark.asyncio
    async def test_content_edit_reported_at_that_sequence(self, store, ledger, checkpointer, tamper):
        await build_journal(ledger, checkpointer)
        tamper(store, "j1", 3, "entry 3 (edited)", rehash=False)

        report = await ChainValidator(store).validate("j1")

        assert not report.valid
        assert report.first_failing_sequence == 3
        assert report.failures[0].kind == "content"

    @pytest.mark.asyncio
    async def test_rehashed_edit_breaks_link_and_root(self, store, ledger, checkpointer, tamper):
        _, checkpoint = await build_journal(ledger, checkpointer)
        tampered = tamper(store, "j1", 3, "entry 3 (edited)")

        report = await ChainValidator(store).validate("j1")

        assert not report.valid
        assert report.first_failing_sequence == 4
        linkage = report.failures[0]
        assert linkage.kind == "linkage"
        assert linkage.actual != tampered.content_hash
        assert report.failing_checkpoint_id == checkpoint.id

    @pytest.mark.asyncio
    async def test_missing_entry(self, store, ledger, checkpointer):
        await build_journal(ledger, checkpointer)
        del store._entries["j1"][3]

        report = await ChainValidator(store).validate("j1")

        assert not report.valid
        assert report.first_failing_sequence == 3
        assert report.failures[0].kind == "sequence"

    @pytest.mark.asyncio
    async def test_bad_genesis_link(self, store, ledger):
        first = await ledger.append("j1", "entry 1", "revision")
        store._entries["j1"][1] = dataclasses.replace(first, prev_hash="0" * 64)

        report = await ChainValidator(store).validate("j1")

        assert report.first_failing_sequence == 1
        assert report.failures[0].expected == ""

    @pytest.mark.asyncio
    async def test_checkpoint_root_mismatch_only(self, store, ledger, checkpointer):
        _, checkpoint = await build_journal(ledger, checkpointer)
        store._checkpoints[checkpoint.id] = dataclasses.replace(checkpoint, merkle_root="f" * 64)

        report = await ChainValidator(store).validate("j1")

        assert not report.valid
        assert report.first_failing_sequence is None
        assert report.failing_checkpoint_id == checkpoint.id

    @pytest.mark.asyncio
    async def test_assert_valid_raises_with_diagnostics(self, store, ledger, checkpointer, tamper):
        await build_journal(ledger, checkpointer)
        tamper(store, "j1", 2, "entry 2 (edited)", rehash=False)

        with pytest.raises(IntegrityError) as exc_info:
            await ChainValidator(store).assert_valid("j1")

        assert exc_info.value.sequence == 2
        assert exc_info.value.expected != exc_info.value.actual
        assert "edited" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_summary(self, store, ledger, checkpointer):
        entries, _ = await build_journal(ledger, checkpointer, count=3)

        summary = await ChainValidator(store).summary("j1")

        assert summary == {
            "total_entries": 3,
            "is_valid": True,
            "first_hash": entries[0].content_hash,
            "last_hash": entries[-1].content_hash,
            "checkpoint_count": 1,
        }
