"""
Tests for the SQLAlchemy Entry Store on a SQLite file.
"""

import asyncio
from dataclasses import replace
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError as SAIntegrityError

from journal_integrity.errors import ConflictError, NotFoundError
from journal_integrity.integrity import (
    ChainValidator,
    HashChainLedger,
    MerkleCheckpointer,
    ProofService,
)
from journal_integrity.records import Certificate, DisclosureLevel, WitnessType
from journal_integrity.storage import Database, SQLEntryStore
from journal_integrity.storage.models import CertificateDB
from journal_integrity.witness import WitnessAdapter


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'journal.db'}")
    await db.init_db()
    yield SQLEntryStore(db)
    await db.close()


@pytest.fixture
def sql_ledger(sql_store) -> HashChainLedger:
    return HashChainLedger(sql_store)


@pytest.fixture
def sql_checkpointer(sql_store) -> MerkleCheckpointer:
    return MerkleCheckpointer(sql_store, WitnessAdapter(max_retries=0, backoff_seconds=0))


class TestSQLEntries:
    """Test entry persistence."""

    @pytest.mark.asyncio
    async def test_entries_round_trip_in_order(self, sql_store, sql_ledger):
        written = [await sql_ledger.append("j1", f"entry {i}", "revision", {"words": i}) for i in range(1, 4)]

        entries = await sql_store.list_entries("j1")

        assert [e.sequence for e in entries] == [1, 2, 3]
        assert entries[1].prev_hash == written[0].content_hash
        assert entries[2].metadata == {"words": 3}
        assert entries[0].content == "entry 1"
        assert entries[0].created_at.tzinfo is timezone.utc
        assert await sql_store.max_sequence("j1") == 3
        assert (await sql_store.last_entry("j1")).id == written[-1].id
        assert [e.sequence for e in await sql_store.list_entries("j1", start_seq=2, end_seq=2)] == [2]

    @pytest.mark.asyncio
    async def test_empty_journal(self, sql_store):
        assert await sql_store.max_sequence("none") == 0
        assert await sql_store.last_entry("none") is None
        assert await sql_store.list_entries("none") == []

    @pytest.mark.asyncio
    async def test_duplicate_sequence_is_conflict(self, sql_store, sql_ledger):
        first = await sql_ledger.append("j1", "entry 1", "revision")

        with pytest.raises(ConflictError) as exc_info:
            await sql_store.insert_entry(first)

        assert exc_info.value.sequence == 1

    @pytest.mark.asyncio
    async def test_concurrent_appends(self, sql_store, sql_ledger):
        await asyncio.gather(*(sql_ledger.append("j1", f"entry {i}", "revision") for i in range(10)))

        entries = await sql_store.list_entries("j1")

        assert [e.sequence for e in entries] == list(range(1, 11))
        assert (await ChainValidator(sql_store).validate("j1")).valid

    @pytest.mark.asyncio
    async def test_find_by_hash(self, sql_store, sql_ledger):
        entry = await sql_ledger.append("j1", "entry 1", "revision")

        assert (await sql_store.find_entry_by_hash("j1", entry.content_hash)).id == entry.id
        assert await sql_store.find_entry_by_hash("j2", entry.content_hash) is None


class TestSQLCheckpoints:
    """Test checkpoints and proofs over SQL."""

    @pytest.mark.asyncio
    async def test_checkpoint_and_proof(self, sql_store, sql_ledger, sql_checkpointer):
        entries = [await sql_ledger.append("j1", f"entry {i}", "revision") for i in range(1, 6)]

        checkpoint = await sql_checkpointer.create_checkpoint("j1")
        proof = await ProofService(sql_store).get_proof("j1", entries[2].content_hash)

        stored = await sql_store.get_checkpoint(checkpoint.id)
        assert stored.entry_range == (1, 5)
        assert stored.created_at.tzinfo is timezone.utc
        assert proof.verified
        assert proof.root == checkpoint.merkle_root
        assert (await sql_store.find_checkpoint_covering("j1", 4)).id == checkpoint.id
        assert (await sql_store.find_checkpoint_by_root("j1", checkpoint.merkle_root)).id == checkpoint.id
        assert (await sql_store.latest_checkpoint("j1")).id == checkpoint.id

    @pytest.mark.asyncio
    async def test_attach_witness_once(self, sql_store, sql_ledger, sql_checkpointer):
        await sql_ledger.append("j1", "entry 1", "revision")
        checkpoint = await sql_checkpointer.create_checkpoint("j1")

        upgraded = await sql_store.attach_witness(
            checkpoint.id, WitnessType.PERMANENT_LEDGER, "tx-1", {"url": "https://gateway.test/records/tx-1"}
        )

        assert upgraded.witness_type is WitnessType.PERMANENT_LEDGER
        assert upgraded.merkle_root == checkpoint.merkle_root
        assert upgraded.witness_data["url"].endswith("tx-1")
        with pytest.raises(ConflictError):
            await sql_store.attach_witness(checkpoint.id, WitnessType.SOCIAL_TIMESTAMP, "2", {})
        with pytest.raises(NotFoundError):
            await sql_store.attach_witness("missing", WitnessType.SOCIAL_TIMESTAMP, "2", {})


def certificate_for(checkpoint, certificate_id: str = "cert-1") -> Certificate:
    return Certificate(
        id=certificate_id,
        document_id="doc-1",
        journal_id=checkpoint.journal_id,
        checkpoint_id=checkpoint.id,
        merkle_root=checkpoint.merkle_root,
        disclosure_level=DisclosureLevel.SUMMARY,
        proof_payload={"journal": {"totalEntries": 1}},
        public_url=f"https://journal.example/verify/{certificate_id}",
        created_at=datetime.now(timezone.utc),
    )


class TestSQLCertificates:
    """Test certificate persistence and insert conflicts."""

    @pytest.mark.asyncio
    async def test_certificate_round_trip(self, sql_store, sql_ledger, sql_checkpointer):
        await sql_ledger.append("j1", "entry 1", "revision")
        certificate = certificate_for(await sql_checkpointer.create_checkpoint("j1"))

        await sql_store.insert_certificate(certificate)

        assert await sql_store.get_certificate("cert-1") == certificate
        assert [c.id for c in await sql_store.list_certificates("j1")] == ["cert-1"]
        assert await sql_store.get_certificate("missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_certificate_is_conflict(self, sql_store, sql_ledger, sql_checkpointer):
        await sql_ledger.append("j1", "entry 1", "revision")
        certificate = certificate_for(await sql_checkpointer.create_checkpoint("j1"))
        await sql_store.insert_certificate(certificate)

        with pytest.raises(ConflictError):
            await sql_store.insert_certificate(certificate)

    @pytest.mark.asyncio
    async def test_insert_maps_constraint_violation(self, sql_store, sql_ledger, sql_checkpointer):
        await sql_ledger.append("j1", "entry 1", "revision")
        checkpoint = await sql_checkpointer.create_checkpoint("j1")
        await sql_store.insert_certificate(certificate_for(checkpoint))
        # Same public_url under a new id trips the unique column, not the key
        clash = replace(certificate_for(checkpoint, "cert-2"), public_url="https://journal.example/verify/cert-1")

        with pytest.raises(ConflictError, match="public url taken") as exc_info:
            await sql_store.db.insert(
                CertificateDB.from_record(clash),
                lambda: ConflictError("public url taken", journal_id="j1"),
            )

        assert isinstance(exc_info.value.__cause__, SAIntegrityError)
        assert exc_info.value.journal_id == "j1"
        assert await sql_store.get_certificate("cert-2") is None
