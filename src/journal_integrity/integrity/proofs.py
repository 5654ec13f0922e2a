"""
ProofService - Merkle inclusion proofs for journal entries.

Proofs are rebuilt on demand from the stored entries of the covering
checkpoint and are never persisted. Verifying a proof needs no store access,
so a third party holding a proof and the checkpoint root can check it alone.
"""

import logging
from typing import Any

from ..errors import NotCheckpointedError, NotFoundError
from ..hashing import require_hex_digest, sha256_hex
from ..storage.base import EntryStore
from .checkpointer import checkpoint_entries
from .merkle_tree import MerkleProof, MerkleTree

logger = logging.getLogger("journal_integrity.proofs")


class ProofService:
    """Generates and verifies inclusion proofs against checkpoints."""

    def __init__(self, store: EntryStore):
        self.store = store

    async def get_proof(self, journal_id: str, entry_hash: str) -> MerkleProof:
        """
        Build the inclusion proof for an entry.

        The returned proof carries the checkpoint's stored root, and
        ``verified`` reflects whether the recomputed path reaches it.

        Args:
            journal_id: Journal containing the entry
            entry_hash: Content hash of the entry

        Returns:
            MerkleProof for the entry

        Raises:
            ValidationError: malformed entry hash
            NotFoundError: no entry with that hash
            NotCheckpointedError: the entry is not covered by any checkpoint yet
            IntegrityError: an entry inside the covering checkpoint is missing
        """
        require_hex_digest(entry_hash, "entry_hash")

        entry = await self.store.find_entry_by_hash(journal_id, entry_hash)
        if entry is None:
            raise NotFoundError(f"No entry with hash {entry_hash} in journal {journal_id}")

        checkpoint = await self.store.find_checkpoint_covering(journal_id, entry.sequence)
        if checkpoint is None:
            raise NotCheckpointedError(
                f"Entry {entry.sequence} of journal {journal_id} is not covered by a checkpoint yet",
                journal_id=journal_id,
                sequence=entry.sequence,
            )

        entries = await checkpoint_entries(self.store, checkpoint)
        tree = MerkleTree(e.content_hash for e in entries)
        tree.build()

        proof = tree.get_proof(entry.sequence - checkpoint.start_sequence)
        proof.root = checkpoint.merkle_root
        proof.checkpoint_id = checkpoint.id
        proof.verified = MerkleTree.verify_proof(proof)

        if not proof.verified:
            logger.warning(
                "Proof does not reach stored checkpoint root",
                extra={
                    "journal_id": journal_id,
                    "sequence": entry.sequence,
                    "checkpoint_id": checkpoint.id,
                },
            )
        return proof

    async def get_proof_metadata(self, journal_id: str, entry_hash: str) -> dict[str, Any]:
        """Proof summary without the sibling path."""
        proof = await self.get_proof(journal_id, entry_hash)
        return {
            "leaf_hash": proof.leaf_hash,
            "root": proof.root,
            "verified": proof.verified,
            "checkpoint_id": proof.checkpoint_id,
            "path_length": len(proof.sibling_path),
        }

    @staticmethod
    def verify_proof(proof: MerkleProof, expected_root: str | None = None) -> bool:
        """Stateless recomputation of leaf + sibling path against a root."""
        return MerkleTree.verify_proof(proof, expected_root)

    @staticmethod
    def verify_entry_content(
        content: str,
        proof: MerkleProof,
        expected_root: str | None = None,
    ) -> bool:
        """Check that raw content hashes to the proof's leaf and the proof holds."""
        if sha256_hex(content) != proof.leaf_hash:
            return False
        return MerkleTree.verify_proof(proof, expected_root)
