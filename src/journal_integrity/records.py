"""
Persistent records of the journal integrity layer.

JournalEntry, Checkpoint and Certificate are immutable once written. A
checkpoint may later gain a stronger witness proof, which the store models
as a replacement record with identical root and range.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class EntryType(str, Enum):
    """Closed set of writing-process events."""

    PROMPT = "prompt"
    RESPONSE = "response"
    DECISION = "decision"
    ANNOTATION = "annotation"
    REVISION = "revision"
    VOICE = "voice"


# Entry types that indicate the writer used AI assistance
AI_ENTRY_TYPES = frozenset({EntryType.PROMPT, EntryType.RESPONSE})


class WitnessType(str, Enum):
    """External attestation backends for checkpoint roots."""

    PERMANENT_LEDGER = "permanent-ledger"
    SOCIAL_TIMESTAMP = "social-timestamp"
    LOCAL = "local"


class DisclosureLevel(str, Enum):
    """How much a certificate reveals about its journal."""

    PRIVATE = "private"
    SUMMARY = "summary"
    PUBLIC = "public"


@dataclass(frozen=True)
class JournalEntry:
    """One append-only event in a writing journal."""

    id: str
    journal_id: str
    sequence: int
    entry_type: EntryType
    content_hash: str
    prev_hash: str
    created_at: datetime
    content: str | None = field(default=None, repr=False)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary. Content is never included."""
        return {
            "id": self.id,
            "journal_id": self.journal_id,
            "sequence": self.sequence,
            "entry_type": self.entry_type.value,
            "content_hash": self.content_hash,
            "prev_hash": self.prev_hash,
            "created_at": self.created_at.isoformat(),
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class Checkpoint:
    """Merkle commitment over a contiguous entry range."""

    id: str
    journal_id: str
    merkle_root: str
    entry_range: tuple[int, int]
    witness_type: WitnessType
    witness_proof: str | None
    created_at: datetime
    witness_data: dict[str, Any] = field(default_factory=dict)

    @property
    def start_sequence(self) -> int:
        return self.entry_range[0]

    @property
    def end_sequence(self) -> int:
        return self.entry_range[1]

    @property
    def leaf_count(self) -> int:
        return self.entry_range[1] - self.entry_range[0] + 1

    def covers(self, sequence: int) -> bool:
        return self.entry_range[0] <= sequence <= self.entry_range[1]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "journal_id": self.journal_id,
            "merkle_root": self.merkle_root,
            "entry_range": list(self.entry_range),
            "witness_type": self.witness_type.value,
            "witness_proof": self.witness_proof,
            "witness_data": self.witness_data,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class Certificate:
    """Portable proof document at a fixed disclosure level."""

    id: str
    document_id: str
    journal_id: str
    checkpoint_id: str
    merkle_root: str
    disclosure_level: DisclosureLevel
    proof_payload: dict[str, Any]
    public_url: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "document_id": self.document_id,
            "journal_id": self.journal_id,
            "checkpoint_id": self.checkpoint_id,
            "merkle_root": self.merkle_root,
            "disclosure_level": self.disclosure_level.value,
            "proof_payload": self.proof_payload,
            "public_url": self.public_url,
            "created_at": self.created_at.isoformat(),
        }
