"""
SQLAlchemy-backed Entry Store.

Uniqueness on (journal_id, sequence) is a database constraint; a losing
concurrent insert surfaces as ConflictError. Other storage errors propagate
unchanged.
"""

from typing import Any

from sqlalchemy import func, select

from ..errors import ConflictError, NotFoundError
from ..records import Certificate, Checkpoint, JournalEntry, WitnessType
from .database import Database
from .models import CertificateDB, CheckpointDB, JournalEntryDB


class SQLEntryStore:
    """EntryStore implementation over an async SQLAlchemy engine."""

    def __init__(self, db: Database):
        self.db = db

    # Entries

    async def insert_entry(self, entry: JournalEntry) -> None:
        await self.db.insert(
            JournalEntryDB.from_record(entry),
            lambda: ConflictError(
                f"Sequence {entry.sequence} already exists in journal {entry.journal_id}",
                journal_id=entry.journal_id,
                sequence=entry.sequence,
            ),
        )

    async def last_entry(self, journal_id: str) -> JournalEntry | None:
        async with self.db.session() as session:
            result = await session.execute(
                select(JournalEntryDB)
                .where(JournalEntryDB.journal_id == journal_id)
                .order_by(JournalEntryDB.sequence.desc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return row.to_record() if row else None

    async def max_sequence(self, journal_id: str) -> int:
        async with self.db.session() as session:
            result = await session.execute(
                select(func.max(JournalEntryDB.sequence)).where(JournalEntryDB.journal_id == journal_id)
            )
            value = result.scalar_one_or_none()
            return int(value) if value is not None else 0

    async def list_entries(
        self,
        journal_id: str,
        start_seq: int | None = None,
        end_seq: int | None = None,
    ) -> list[JournalEntry]:
        query = select(JournalEntryDB).where(JournalEntryDB.journal_id == journal_id)
        if start_seq is not None:
            query = query.where(JournalEntryDB.sequence >= start_seq)
        if end_seq is not None:
            query = query.where(JournalEntryDB.sequence <= end_seq)

        async with self.db.session() as session:
            result = await session.execute(query.order_by(JournalEntryDB.sequence.asc()))
            return [row.to_record() for row in result.scalars().all()]

    async def find_entry_by_hash(self, journal_id: str, content_hash: str) -> JournalEntry | None:
        async with self.db.session() as session:
            result = await session.execute(
                select(JournalEntryDB)
                .where(
                    JournalEntryDB.journal_id == journal_id,
                    JournalEntryDB.content_hash == content_hash,
                )
                .order_by(JournalEntryDB.sequence.asc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return row.to_record() if row else None

    # Checkpoints

    async def insert_checkpoint(self, checkpoint: Checkpoint) -> None:
        await self.db.insert(
            CheckpointDB.from_record(checkpoint),
            lambda: ConflictError(
                f"A checkpoint starting at sequence {checkpoint.start_sequence} "
                f"already exists in journal {checkpoint.journal_id}",
                journal_id=checkpoint.journal_id,
                sequence=checkpoint.start_sequence,
            ),
        )

    async def get_checkpoint(self, checkpoint_id: str) -> Checkpoint | None:
        async with self.db.session() as session:
            row = await session.get(CheckpointDB, checkpoint_id)
            return row.to_record() if row else None

    async def list_checkpoints(self, journal_id: str) -> list[Checkpoint]:
        async with self.db.session() as session:
            result = await session.execute(
                select(CheckpointDB)
                .where(CheckpointDB.journal_id == journal_id)
                .order_by(CheckpointDB.start_sequence.asc())
            )
            return [row.to_record() for row in result.scalars().all()]

    async def latest_checkpoint(self, journal_id: str) -> Checkpoint | None:
        async with self.db.session() as session:
            result = await session.execute(
                select(CheckpointDB)
                .where(CheckpointDB.journal_id == journal_id)
                .order_by(CheckpointDB.end_sequence.desc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return row.to_record() if row else None

    async def find_checkpoint_covering(self, journal_id: str, sequence: int) -> Checkpoint | None:
        async with self.db.session() as session:
            result = await session.execute(
                select(CheckpointDB)
                .where(
                    CheckpointDB.journal_id == journal_id,
                    CheckpointDB.start_sequence <= sequence,
                    CheckpointDB.end_sequence >= sequence,
                )
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return row.to_record() if row else None

    async def find_checkpoint_by_root(self, journal_id: str, merkle_root: str) -> Checkpoint | None:
        async with self.db.session() as session:
            result = await session.execute(
                select(CheckpointDB)
                .where(
                    CheckpointDB.journal_id == journal_id,
                    CheckpointDB.merkle_root == merkle_root,
                )
                .order_by(CheckpointDB.start_sequence.asc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return row.to_record() if row else None

    async def attach_witness(
        self,
        checkpoint_id: str,
        witness_type: WitnessType,
        witness_proof: str,
        witness_data: dict[str, Any],
    ) -> Checkpoint:
        async with self.db.session() as session:
            row = await session.get(CheckpointDB, checkpoint_id, with_for_update=True)
            if row is None:
                raise NotFoundError(f"Checkpoint {checkpoint_id} not found")
            if row.witness_type != WitnessType.LOCAL.value:
                raise ConflictError(f"Checkpoint {checkpoint_id} already carries an external witness")

            row.witness_type = witness_type.value
            row.witness_proof = witness_proof
            row.witness_data = {**(row.witness_data or {}), **witness_data}
            await session.flush()
            return row.to_record()

    # Certificates

    async def insert_certificate(self, certificate: Certificate) -> None:
        await self.db.insert(
            CertificateDB.from_record(certificate),
            lambda: ConflictError(f"Certificate {certificate.id} already exists"),
        )

    async def get_certificate(self, certificate_id: str) -> Certificate | None:
        async with self.db.session() as session:
            row = await session.get(CertificateDB, certificate_id)
            return row.to_record() if row else None

    async def list_certificates(self, journal_id: str) -> list[Certificate]:
        async with self.db.session() as session:
            result = await session.execute(
                select(CertificateDB)
                .where(CertificateDB.journal_id == journal_id)
                .order_by(CertificateDB.created_at.asc())
            )
            return [row.to_record() for row in result.scalars().all()]
