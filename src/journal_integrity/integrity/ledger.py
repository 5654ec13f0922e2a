"""
HashChainLedger - append-only hash chain of journal entries.

Each entry stores the SHA-256 of its content and the content hash of its
predecessor, so any retroactive edit breaks the link to the next entry:

    entry 1: prev_hash = ""
    entry n: prev_hash = entry(n-1).content_hash

Appends to one journal are serialized by a per-journal lock inside this
process and by the store's unique (journal_id, sequence) constraint across
processes. Different journals never share state.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from ..errors import ConflictError, ValidationError
from ..hashing import GENESIS_PREV_HASH, sha256_hex
from ..records import AI_ENTRY_TYPES, EntryType, JournalEntry
from ..storage.base import EntryStore

logger = logging.getLogger("journal_integrity.ledger")


@dataclass
class ProcessInsights:
    """Content-free statistics about a journal's writing process."""

    total_entries: int
    entry_types: dict[str, int] = field(default_factory=dict)
    revision_count: int = 0
    ai_interaction_count: int = 0
    time_spent_seconds: float = 0.0
    average_interval_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_entries": self.total_entries,
            "entry_types": self.entry_types,
            "revision_count": self.revision_count,
            "ai_interaction_count": self.ai_interaction_count,
            "time_spent_seconds": self.time_spent_seconds,
            "average_interval_seconds": self.average_interval_seconds,
        }


def coerce_entry_type(value: EntryType | str) -> EntryType:
    """Map a raw entry type onto the closed set or raise ValidationError."""
    try:
        return EntryType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in EntryType)
        raise ValidationError(f"entry_type must be one of: {allowed}") from None


class HashChainLedger:
    """
    Appends entries with correct sequence and prev_hash linkage.

    Usage:
        ledger = HashChainLedger(store)
        entry = await ledger.append(journal_id, "draft opening", "revision")
    """

    def __init__(self, store: EntryStore):
        """
        Initialize ledger.

        Args:
            store: Entry Store providing atomic unique inserts
        """
        self.store = store
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def append(
        self,
        journal_id: str,
        content: str,
        entry_type: EntryType | str,
        metadata: dict[str, Any] | None = None,
    ) -> JournalEntry:
        """
        Append an event to a journal.

        Args:
            journal_id: Journal to append to
            content: Event content (hashed, never logged)
            entry_type: One of the closed EntryType values
            metadata: Optional JSON-serialisable metadata (not hashed)

        Returns:
            The persisted JournalEntry

        Raises:
            ValidationError: empty journal id or content, unknown entry type
            ConflictError: another writer took this sequence first
        """
        if not journal_id or not isinstance(journal_id, str):
            raise ValidationError("journal_id is required")
        if not isinstance(content, str) or not content:
            raise ValidationError("content must be a non-empty string")
        kind = coerce_entry_type(entry_type)

        async with self._locks[journal_id]:
            last = await self.store.last_entry(journal_id)

            entry = JournalEntry(
                id=str(uuid4()),
                journal_id=journal_id,
                sequence=last.sequence + 1 if last else 1,
                entry_type=kind,
                content_hash=sha256_hex(content),
                prev_hash=last.content_hash if last else GENESIS_PREV_HASH,
                created_at=datetime.now(timezone.utc),
                content=content,
                metadata=dict(metadata or {}),
            )
            await self.store.insert_entry(entry)

        logger.info(
            "Appended journal entry",
            extra={
                "journal_id": journal_id,
                "sequence": entry.sequence,
                "entry_type": kind.value,
                "content_hash": entry.content_hash,
            },
        )
        return entry

    async def append_with_retry(
        self,
        journal_id: str,
        content: str,
        entry_type: EntryType | str,
        metadata: dict[str, Any] | None = None,
        retries: int = 3,
    ) -> JournalEntry:
        """Append, re-reading the journal head after each lost sequence race."""
        attempt = 0
        while True:
            try:
                return await self.append(journal_id, content, entry_type, metadata)
            except ConflictError as exc:
                attempt += 1
                if attempt > retries:
                    raise
                logger.warning(
                    "Sequence conflict, retrying append",
                    extra={"journal_id": journal_id, "sequence": exc.sequence, "attempt": attempt},
                )

    async def entries(
        self,
        journal_id: str,
        start_seq: int | None = None,
        end_seq: int | None = None,
    ) -> list[JournalEntry]:
        """List entries in sequence order."""
        return await self.store.list_entries(journal_id, start_seq, end_seq)

    async def head(self, journal_id: str) -> JournalEntry | None:
        """Latest entry of a journal, if any."""
        return await self.store.last_entry(journal_id)

    async def insights(self, journal_id: str) -> ProcessInsights:
        """Summarize the writing process without touching entry content."""
        entries = await self.store.list_entries(journal_id)

        counts: dict[str, int] = {}
        for entry in entries:
            counts[entry.entry_type.value] = counts.get(entry.entry_type.value, 0) + 1

        time_spent = 0.0
        if len(entries) > 1:
            time_spent = (entries[-1].created_at - entries[0].created_at).total_seconds()

        return ProcessInsights(
            total_entries=len(entries),
            entry_types=counts,
            revision_count=counts.get(EntryType.REVISION.value, 0),
            ai_interaction_count=sum(counts.get(t.value, 0) for t in AI_ENTRY_TYPES),
            time_spent_seconds=time_spent,
            average_interval_seconds=time_spent / (len(entries) - 1) if len(entries) > 1 else 0.0,
        )
