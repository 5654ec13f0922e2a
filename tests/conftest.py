"""
Shared fixtures.
"""

import dataclasses

import pytest

from journal_integrity.hashing import sha256_hex
from journal_integrity.integrity import HashChainLedger, MerkleCheckpointer, ProofService
from journal_integrity.storage import MemoryEntryStore
from journal_integrity.witness import WitnessAdapter


@pytest.fixture
def store() -> MemoryEntryStore:
    return MemoryEntryStore()


@pytest.fixture
def ledger(store) -> HashChainLedger:
    return HashChainLedger(store)


@pytest.fixture
def witness() -> WitnessAdapter:
    return WitnessAdapter(timeout_seconds=1.0, max_retries=1, backoff_seconds=0)


@pytest.fixture
def checkpointer(store, witness) -> MerkleCheckpointer:
    return MerkleCheckpointer(store, witness)


@pytest.fixture
def proofs(store) -> ProofService:
    return ProofService(store)


@pytest.fixture
def tamper():
    """Rewrite a stored entry in place, bypassing the append-only API."""

    def _tamper(store: MemoryEntryStore, journal_id: str, sequence: int, content: str, rehash: bool = True):
        entry = store._entries[journal_id][sequence]
        changes = {"content": content}
        if rehash:
            changes["content_hash"] = sha256_hex(content)
        store._entries[journal_id][sequence] = dataclasses.replace(entry, **changes)
        return store._entries[journal_id][sequence]

    return _tamper
