"""
In-process Entry Store.

Used when the integrity layer is embedded without a database, and by the
test suite. Uniqueness on (journal_id, sequence) is enforced under an
asyncio lock, so concurrent appends behave like the SQL store.
"""

import asyncio
import dataclasses
from typing import Any

from ..errors import ConflictError, NotFoundError
from ..records import Certificate, Checkpoint, JournalEntry, WitnessType


class MemoryEntryStore:
    """Dict-backed EntryStore implementation."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._entries: dict[str, dict[int, JournalEntry]] = {}
        self._checkpoints: dict[str, Checkpoint] = {}
        self._certificates: dict[str, Certificate] = {}

    # Entries

    async def insert_entry(self, entry: JournalEntry) -> None:
        async with self._lock:
            journal = self._entries.setdefault(entry.journal_id, {})
            if entry.sequence in journal:
                raise ConflictError(
                    f"Sequence {entry.sequence} already exists in journal {entry.journal_id}",
                    journal_id=entry.journal_id,
                    sequence=entry.sequence,
                )
            journal[entry.sequence] = entry

    async def last_entry(self, journal_id: str) -> JournalEntry | None:
        journal = self._entries.get(journal_id)
        if not journal:
            return None
        return journal[max(journal)]

    async def max_sequence(self, journal_id: str) -> int:
        journal = self._entries.get(journal_id)
        return max(journal) if journal else 0

    async def list_entries(
        self,
        journal_id: str,
        start_seq: int | None = None,
        end_seq: int | None = None,
    ) -> list[JournalEntry]:
        journal = self._entries.get(journal_id, {})
        return [
            journal[seq]
            for seq in sorted(journal)
            if (start_seq is None or seq >= start_seq) and (end_seq is None or seq <= end_seq)
        ]

    async def find_entry_by_hash(self, journal_id: str, content_hash: str) -> JournalEntry | None:
        for entry in await self.list_entries(journal_id):
            if entry.content_hash == content_hash:
                return entry
        return None

    # Checkpoints

    async def insert_checkpoint(self, checkpoint: Checkpoint) -> None:
        async with self._lock:
            for existing in self._checkpoints.values():
                if (
                    existing.journal_id == checkpoint.journal_id
                    and existing.start_sequence == checkpoint.start_sequence
                ):
                    raise ConflictError(
                        f"A checkpoint starting at sequence {checkpoint.start_sequence} "
                        f"already exists in journal {checkpoint.journal_id}",
                        journal_id=checkpoint.journal_id,
                        sequence=checkpoint.start_sequence,
                    )
            self._checkpoints[checkpoint.id] = checkpoint

    async def get_checkpoint(self, checkpoint_id: str) -> Checkpoint | None:
        return self._checkpoints.get(checkpoint_id)

    async def list_checkpoints(self, journal_id: str) -> list[Checkpoint]:
        return sorted(
            (cp for cp in self._checkpoints.values() if cp.journal_id == journal_id),
            key=lambda cp: cp.start_sequence,
        )

    async def latest_checkpoint(self, journal_id: str) -> Checkpoint | None:
        checkpoints = await self.list_checkpoints(journal_id)
        return checkpoints[-1] if checkpoints else None

    async def find_checkpoint_covering(self, journal_id: str, sequence: int) -> Checkpoint | None:
        for checkpoint in await self.list_checkpoints(journal_id):
            if checkpoint.covers(sequence):
                return checkpoint
        return None

    async def find_checkpoint_by_root(self, journal_id: str, merkle_root: str) -> Checkpoint | None:
        for checkpoint in await self.list_checkpoints(journal_id):
            if checkpoint.merkle_root == merkle_root:
                return checkpoint
        return None

    async def attach_witness(
        self,
        checkpoint_id: str,
        witness_type: WitnessType,
        witness_proof: str,
        witness_data: dict[str, Any],
    ) -> Checkpoint:
        async with self._lock:
            checkpoint = self._checkpoints.get(checkpoint_id)
            if checkpoint is None:
                raise NotFoundError(f"Checkpoint {checkpoint_id} not found")
            if checkpoint.witness_type != WitnessType.LOCAL:
                raise ConflictError(f"Checkpoint {checkpoint_id} already carries an external witness")

            upgraded = dataclasses.replace(
                checkpoint,
                witness_type=witness_type,
                witness_proof=witness_proof,
                witness_data={**checkpoint.witness_data, **witness_data},
            )
            self._checkpoints[checkpoint_id] = upgraded
            return upgraded

    # Certificates

    async def insert_certificate(self, certificate: Certificate) -> None:
        async with self._lock:
            if certificate.id in self._certificates:
                raise ConflictError(f"Certificate {certificate.id} already exists")
            self._certificates[certificate.id] = certificate

    async def get_certificate(self, certificate_id: str) -> Certificate | None:
        return self._certificates.get(certificate_id)

    async def list_certificates(self, journal_id: str) -> list[Certificate]:
        return sorted(
            (c for c in self._certificates.values() if c.journal_id == journal_id),
            key=lambda c: c.created_at,
        )
