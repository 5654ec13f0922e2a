"""
SQLAlchemy models for journal integrity storage.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase

from ..records import (
    Certificate,
    Checkpoint,
    DisclosureLevel,
    EntryType,
    JournalEntry,
    WitnessType,
)


def _aware(value: datetime) -> datetime:
    """SQLite drops tzinfo; stored timestamps are always UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""
    pass


class JournalEntryDB(Base):
    """Append-only journal entry."""

    __tablename__ = "journal_entries"
    __table_args__ = (
        UniqueConstraint("journal_id", "sequence", name="uq_journal_entries_journal_sequence"),
    )

    id = Column(String(36), primary_key=True)
    journal_id = Column(String(64), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    entry_type = Column(String(20), nullable=False)
    content = Column(Text, nullable=True)
    content_hash = Column(String(64), nullable=False, index=True)
    prev_hash = Column(String(64), nullable=False)
    metadata_json = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False)

    @classmethod
    def from_record(cls, entry: JournalEntry) -> "JournalEntryDB":
        return cls(
            id=entry.id,
            journal_id=entry.journal_id,
            sequence=entry.sequence,
            entry_type=entry.entry_type.value,
            content=entry.content,
            content_hash=entry.content_hash,
            prev_hash=entry.prev_hash,
            metadata_json=entry.metadata,
            created_at=entry.created_at,
        )

    def to_record(self) -> JournalEntry:
        return JournalEntry(
            id=self.id,
            journal_id=self.journal_id,
            sequence=self.sequence,
            entry_type=EntryType(self.entry_type),
            content_hash=self.content_hash,
            prev_hash=self.prev_hash,
            created_at=_aware(self.created_at),
            content=self.content,
            metadata=self.metadata_json or {},
        )


class CheckpointDB(Base):
    """Merkle checkpoint over a contiguous entry range."""

    __tablename__ = "verification_checkpoints"
    __table_args__ = (
        UniqueConstraint("journal_id", "start_sequence", name="uq_checkpoints_journal_start"),
    )

    id = Column(String(36), primary_key=True)
    journal_id = Column(String(64), nullable=False, index=True)
    merkle_root = Column(String(64), nullable=False, index=True)
    start_sequence = Column(Integer, nullable=False)
    end_sequence = Column(Integer, nullable=False)
    witness_type = Column(String(20), nullable=False, default=WitnessType.LOCAL.value)
    witness_proof = Column(String(255), nullable=True)
    witness_data = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False)

    @classmethod
    def from_record(cls, checkpoint: Checkpoint) -> "CheckpointDB":
        return cls(
            id=checkpoint.id,
            journal_id=checkpoint.journal_id,
            merkle_root=checkpoint.merkle_root,
            start_sequence=checkpoint.start_sequence,
            end_sequence=checkpoint.end_sequence,
            witness_type=checkpoint.witness_type.value,
            witness_proof=checkpoint.witness_proof,
            witness_data=checkpoint.witness_data,
            created_at=checkpoint.created_at,
        )

    def to_record(self) -> Checkpoint:
        return Checkpoint(
            id=self.id,
            journal_id=self.journal_id,
            merkle_root=self.merkle_root,
            entry_range=(self.start_sequence, self.end_sequence),
            witness_type=WitnessType(self.witness_type),
            witness_proof=self.witness_proof,
            created_at=_aware(self.created_at),
            witness_data=self.witness_data or {},
        )


class CertificateDB(Base):
    """Publication certificate."""

    __tablename__ = "publication_certificates"

    id = Column(String(36), primary_key=True)
    document_id = Column(String(64), nullable=False, index=True)
    journal_id = Column(String(64), nullable=False, index=True)
    checkpoint_id = Column(String(36), nullable=False)
    merkle_root = Column(String(64), nullable=False)
    disclosure_level = Column(String(20), nullable=False)
    proof_payload = Column(JSON, nullable=False)
    public_url = Column(String(512), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    @classmethod
    def from_record(cls, certificate: Certificate) -> "CertificateDB":
        return cls(
            id=certificate.id,
            document_id=certificate.document_id,
            journal_id=certificate.journal_id,
            checkpoint_id=certificate.checkpoint_id,
            merkle_root=certificate.merkle_root,
            disclosure_level=certificate.disclosure_level.value,
            proof_payload=certificate.proof_payload,
            public_url=certificate.public_url,
            created_at=certificate.created_at,
        )

    def to_record(self) -> Certificate:
        return Certificate(
            id=self.id,
            document_id=self.document_id,
            journal_id=self.journal_id,
            checkpoint_id=self.checkpoint_id,
            merkle_root=self.merkle_root,
            disclosure_level=DisclosureLevel(self.disclosure_level),
            proof_payload=self.proof_payload,
            public_url=self.public_url,
            created_at=_aware(self.created_at),
        )
