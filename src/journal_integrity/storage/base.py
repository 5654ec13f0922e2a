"""
Entry Store interface.

The integrity services depend only on this protocol, never on a storage
engine. Implementations must make insert_entry atomic with uniqueness on
(journal_id, sequence) and raise ConflictError when that slot is taken.
"""

from typing import Any, Protocol

from ..records import Certificate, Checkpoint, JournalEntry, WitnessType


class EntryStore(Protocol):
    """Narrow persistence interface for entries, checkpoints and certificates."""

    # Entries
    async def insert_entry(self, entry: JournalEntry) -> None: ...

    async def last_entry(self, journal_id: str) -> JournalEntry | None: ...

    async def max_sequence(self, journal_id: str) -> int: ...

    async def list_entries(
        self,
        journal_id: str,
        start_seq: int | None = None,
        end_seq: int | None = None,
    ) -> list[JournalEntry]: ...

    async def find_entry_by_hash(self, journal_id: str, content_hash: str) -> JournalEntry | None: ...

    # Checkpoints
    async def insert_checkpoint(self, checkpoint: Checkpoint) -> None: ...

    async def get_checkpoint(self, checkpoint_id: str) -> Checkpoint | None: ...

    async def list_checkpoints(self, journal_id: str) -> list[Checkpoint]: ...

    async def latest_checkpoint(self, journal_id: str) -> Checkpoint | None: ...

    async def find_checkpoint_covering(self, journal_id: str, sequence: int) -> Checkpoint | None: ...

    async def find_checkpoint_by_root(self, journal_id: str, merkle_root: str) -> Checkpoint | None: ...

    async def attach_witness(
        self,
        checkpoint_id: str,
        witness_type: WitnessType,
        witness_proof: str,
        witness_data: dict[str, Any],
    ) -> Checkpoint: ...

    # Certificates
    async def insert_certificate(self, certificate: Certificate) -> None: ...

    async def get_certificate(self, certificate_id: str) -> Certificate | None: ...

    async def list_certificates(self, journal_id: str) -> list[Certificate]: ...
