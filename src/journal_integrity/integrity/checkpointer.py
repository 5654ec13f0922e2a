"""
MerkleCheckpointer - Merkle commitments over contiguous journal ranges.

A checkpoint freezes the journal's upper sequence bound at the moment it
starts and commits to every entry after the previous checkpoint up to that
bound. Entries appended while the checkpoint is being built are left for the
next one.

Witness submission happens after the root is computed and never under the
append lock. A failed or timed-out submission still persists the checkpoint,
with witness_type "local" and a warning recorded in witness_data, so a later
upgrade can attach a stronger proof without touching the root.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from ..errors import ConflictError, IntegrityError, NotFoundError, ValidationError, WitnessError
from ..records import Checkpoint, JournalEntry, WitnessType
from ..storage.base import EntryStore
from ..witness.adapter import WitnessAdapter
from ..witness.base import WitnessMetadata
from .merkle_tree import MerkleTree

logger = logging.getLogger("journal_integrity.checkpointer")


@dataclass
class VerificationResult:
    """Result of re-verifying a stored checkpoint."""

    is_valid: bool
    merkle_root: str
    checkpoint_id: str
    witness_proof: str | None = None
    witness_status: str | None = None
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "is_valid": self.is_valid,
            "merkle_root": self.merkle_root,
            "checkpoint_id": self.checkpoint_id,
            "witness_proof": self.witness_proof,
            "witness_status": self.witness_status,
            "errors": self.errors,
        }


def coerce_witness_type(value: WitnessType | str) -> WitnessType:
    """Map a raw witness type onto the closed set or raise ValidationError."""
    try:
        return WitnessType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in WitnessType)
        raise ValidationError(f"witness_type must be one of: {allowed}") from None


async def checkpoint_entries(store: EntryStore, checkpoint: Checkpoint) -> list[JournalEntry]:
    """
    Load every entry a checkpoint covers, in sequence order.

    Raises:
        IntegrityError: a sequence inside the range is missing from the store
    """
    entries = await store.list_entries(
        checkpoint.journal_id, checkpoint.start_sequence, checkpoint.end_sequence
    )
    stored = {entry.sequence for entry in entries}
    for sequence in range(checkpoint.start_sequence, checkpoint.end_sequence + 1):
        if sequence not in stored:
            raise IntegrityError(
                f"Checkpoint {checkpoint.id} covers sequence {sequence} "
                f"but journal {checkpoint.journal_id} no longer stores it",
                sequence=sequence,
                checkpoint_id=checkpoint.id,
            )
    return entries


class MerkleCheckpointer:
    """
    Creates, verifies and upgrades checkpoints.

    Usage:
        checkpointer = MerkleCheckpointer(store, witness_adapter)
        checkpoint = await checkpointer.create_checkpoint(journal_id, "local")
        result = await checkpointer.verify_checkpoint(checkpoint.id)
    """

    def __init__(self, store: EntryStore, witness: WitnessAdapter | None = None):
        """
        Initialize checkpointer.

        Args:
            store: Entry Store holding entries and checkpoints
            witness: Adapter used for external attestation (default: local only)
        """
        self.store = store
        self.witness = witness or WitnessAdapter()
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def create_checkpoint(
        self,
        journal_id: str,
        witness_type: WitnessType | str = WitnessType.LOCAL,
    ) -> Checkpoint:
        """
        Commit every not-yet-checkpointed entry of a journal.

        When no entries were appended since the latest checkpoint, that
        checkpoint is returned unchanged.

        Args:
            journal_id: Journal to checkpoint
            witness_type: Requested witness backend

        Returns:
            The persisted (or latest existing) Checkpoint

        Raises:
            ValidationError: unknown witness type
            NotFoundError: the journal has no entries
            IntegrityError: the stored range has a sequence gap
        """
        requested = coerce_witness_type(witness_type)

        async with self._locks[journal_id]:
            frozen_max = await self.store.max_sequence(journal_id)
            if frozen_max == 0:
                raise NotFoundError(f"Journal {journal_id} has no entries to checkpoint")

            latest = await self.store.latest_checkpoint(journal_id)
            start = latest.end_sequence + 1 if latest else 1
            if start > frozen_max:
                return latest  # type: ignore[return-value]

            entries = await self.store.list_entries(journal_id, start, frozen_max)
            expected = list(range(start, frozen_max + 1))
            actual = [entry.sequence for entry in entries]
            if actual != expected:
                missing = sorted(set(expected) - set(actual))
                raise IntegrityError(
                    f"Journal {journal_id} is missing sequence {missing[0] if missing else start} "
                    f"inside checkpoint range {start}-{frozen_max}",
                    sequence=missing[0] if missing else start,
                )

            tree = MerkleTree(entry.content_hash for entry in entries)
            root = tree.build()
            entry_range = (start, frozen_max)

            witness_type_final, witness_proof, witness_data = await self._witness(
                journal_id, root, entry_range, requested
            )

            checkpoint = Checkpoint(
                id=str(uuid4()),
                journal_id=journal_id,
                merkle_root=root,
                entry_range=entry_range,
                witness_type=witness_type_final,
                witness_proof=witness_proof,
                created_at=datetime.now(timezone.utc),
                witness_data=witness_data,
            )
            await self.store.insert_checkpoint(checkpoint)

        logger.info(
            "Created checkpoint",
            extra={
                "journal_id": journal_id,
                "checkpoint_id": checkpoint.id,
                "merkle_root": root,
                "witness_type": witness_type_final.value,
                "sequence": frozen_max,
            },
        )
        return checkpoint

    async def _witness(
        self,
        journal_id: str,
        root: str,
        entry_range: tuple[int, int],
        requested: WitnessType,
    ) -> tuple[WitnessType, str, dict[str, Any]]:
        """Submit a root, degrading to the local backend on failure."""
        metadata = WitnessMetadata(journal_id=journal_id, entry_range=entry_range)
        witness_data: dict[str, Any] = {"requested_witness_type": requested.value}

        if requested != WitnessType.LOCAL:
            try:
                receipt = await self.witness.submit(requested, root, metadata)
                witness_data.update(receipt.to_dict())
                return receipt.witness_type, receipt.witness_proof, witness_data
            except WitnessError as exc:
                logger.warning(
                    f"Witness submission failed, checkpoint stored as local: {exc}",
                    extra={"journal_id": journal_id, "merkle_root": root, "witness_type": requested.value},
                )
                witness_data["warning"] = f"{requested.value} witness failed: {exc}"

        receipt = await self.witness.submit(WitnessType.LOCAL, root, metadata)
        witness_data.update(receipt.to_dict())
        return WitnessType.LOCAL, receipt.witness_proof, witness_data

    async def get_checkpoint(self, checkpoint_id: str) -> Checkpoint:
        """Get a checkpoint or raise NotFoundError."""
        checkpoint = await self.store.get_checkpoint(checkpoint_id)
        if checkpoint is None:
            raise NotFoundError(f"Checkpoint {checkpoint_id} not found")
        return checkpoint

    async def list_checkpoints(self, journal_id: str) -> list[Checkpoint]:
        """Checkpoints of a journal ordered by range start."""
        return await self.store.list_checkpoints(journal_id)

    async def build_tree(self, checkpoint: Checkpoint) -> MerkleTree:
        """
        Rebuild a checkpoint's tree from the stored entries.

        Raises:
            IntegrityError: entries of the range are missing
        """
        entries = await checkpoint_entries(self.store, checkpoint)
        tree = MerkleTree(entry.content_hash for entry in entries)
        tree.build()
        return tree

    async def recompute_root(self, checkpoint: Checkpoint) -> str:
        """Recompute the root over the checkpoint's range."""
        tree = await self.build_tree(checkpoint)
        return tree.root or ""

    async def verify_checkpoint(self, checkpoint_id: str) -> VerificationResult:
        """
        Recompute a checkpoint's root and check its witness record.

        A witness backend that cannot be reached does not invalidate the
        checkpoint; its status is reported as "unknown".
        """
        checkpoint = await self.get_checkpoint(checkpoint_id)
        errors: list[str] = []

        try:
            recomputed = await self.recompute_root(checkpoint)
            if recomputed != checkpoint.merkle_root:
                errors.append(
                    f"Merkle root mismatch: expected {checkpoint.merkle_root}, computed {recomputed}"
                )
        except IntegrityError as exc:
            errors.append(str(exc))

        witness_status = None
        if checkpoint.witness_proof:
            status = await self.witness.status(
                checkpoint.witness_type, checkpoint.witness_proof, checkpoint.merkle_root
            )
            witness_status = status.status
            if status.status == "failed":
                errors.append(f"Witness {checkpoint.witness_proof} does not attest this root")

        return VerificationResult(
            is_valid=not errors,
            merkle_root=checkpoint.merkle_root,
            checkpoint_id=checkpoint.id,
            witness_proof=checkpoint.witness_proof,
            witness_status=witness_status,
            errors=errors,
        )

    async def upgrade_witness(
        self,
        checkpoint_id: str,
        witness_type: WitnessType | str,
    ) -> Checkpoint:
        """
        Attach an external witness to a local checkpoint.

        Root and range never change. Only checkpoints currently witnessed
        locally can be upgraded.

        Raises:
            ValidationError: local requested, or unknown witness type
            ConflictError: the checkpoint already has an external witness
            WitnessError: the submission failed
        """
        requested = coerce_witness_type(witness_type)
        if requested == WitnessType.LOCAL:
            raise ValidationError("Upgrade requires an external witness type")

        checkpoint = await self.get_checkpoint(checkpoint_id)
        if checkpoint.witness_type != WitnessType.LOCAL:
            raise ConflictError(f"Checkpoint {checkpoint_id} already carries an external witness")

        receipt = await self.witness.submit(
            requested,
            checkpoint.merkle_root,
            WitnessMetadata(journal_id=checkpoint.journal_id, entry_range=checkpoint.entry_range),
        )
        if receipt.witness_type == WitnessType.LOCAL:
            raise WitnessError(f"No {requested.value} backend is configured")

        upgraded = await self.store.attach_witness(
            checkpoint_id,
            receipt.witness_type,
            receipt.witness_proof,
            {**receipt.to_dict(), "upgraded_from": checkpoint.witness_proof},
        )
        logger.info(
            "Upgraded checkpoint witness",
            extra={
                "journal_id": checkpoint.journal_id,
                "checkpoint_id": checkpoint_id,
                "witness_type": receipt.witness_type.value,
                "witness_proof": receipt.witness_proof,
            },
        )
        return upgraded

    async def upgrade_pending(
        self,
        journal_id: str,
        witness_type: WitnessType | str,
    ) -> list[Checkpoint]:
        """
        Try to upgrade every local checkpoint of a journal.

        Failures are logged and skipped; the checkpoint stays local.
        """
        upgraded = []
        for checkpoint in await self.store.list_checkpoints(journal_id):
            if checkpoint.witness_type != WitnessType.LOCAL:
                continue
            try:
                upgraded.append(await self.upgrade_witness(checkpoint.id, witness_type))
            except WitnessError as exc:
                logger.warning(
                    f"Witness upgrade failed: {exc}",
                    extra={"journal_id": journal_id, "checkpoint_id": checkpoint.id},
                )
        return upgraded
