"""
ChainValidator - full audit of one journal.

Two independent checks:
- Chain linkage, walked in sequence order. The first broken entry ends the
  walk and is reported by sequence number. An entry whose stored content no
  longer hashes to its content_hash counts as broken at that sequence.
- Every checkpoint root, recomputed over its range. Mismatches are reported
  per checkpoint; the first one found is named in the report.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from ..errors import IntegrityError
from ..hashing import GENESIS_PREV_HASH, sha256_hex
from ..records import JournalEntry
from ..storage.base import EntryStore
from .merkle_tree import MerkleTree

logger = logging.getLogger("journal_integrity.validator")


@dataclass
class ValidationFailure:
    """One diagnostic finding."""

    kind: str  # content | linkage | sequence | checkpoint
    message: str
    sequence: int | None = None
    checkpoint_id: str | None = None
    expected: str | None = None
    actual: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "sequence": self.sequence,
            "checkpoint_id": self.checkpoint_id,
            "expected": self.expected,
            "actual": self.actual,
        }


@dataclass
class ValidationReport:
    """Outcome of validating a journal."""

    valid: bool
    first_hash: str | None
    last_hash: str | None
    checkpoint_count: int
    entry_count: int
    first_failing_sequence: int | None = None
    failing_checkpoint_id: str | None = None
    failures: list[ValidationFailure] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "valid": self.valid,
            "first_hash": self.first_hash,
            "last_hash": self.last_hash,
            "checkpoint_count": self.checkpoint_count,
            "entry_count": self.entry_count,
            "first_failing_sequence": self.first_failing_sequence,
            "failing_checkpoint_id": self.failing_checkpoint_id,
            "failures": [f.to_dict() for f in self.failures],
        }


class ChainValidator:
    """
    Audits hash-chain linkage and checkpoint roots.

    Usage:
        validator = ChainValidator(store)
        report = await validator.validate(journal_id)
        if not report.valid:
            print(report.first_failing_sequence)
    """

    def __init__(self, store: EntryStore):
        self.store = store

    def _check_chain(self, entries: list[JournalEntry]) -> ValidationFailure | None:
        """Return the first linkage failure, or None."""
        prev_hash = GENESIS_PREV_HASH

        for position, entry in enumerate(entries, start=1):
            if entry.sequence != position:
                return ValidationFailure(
                    kind="sequence",
                    message=f"Expected sequence {position}, found {entry.sequence}",
                    sequence=position,
                )

            if entry.content is not None:
                computed = sha256_hex(entry.content)
                if computed != entry.content_hash:
                    return ValidationFailure(
                        kind="content",
                        message=f"Content of entry {entry.sequence} does not match its hash",
                        sequence=entry.sequence,
                        expected=entry.content_hash,
                        actual=computed,
                    )

            if entry.prev_hash != prev_hash:
                return ValidationFailure(
                    kind="linkage",
                    message=f"Entry {entry.sequence} does not link to its predecessor",
                    sequence=entry.sequence,
                    expected=prev_hash,
                    actual=entry.prev_hash,
                )
            prev_hash = entry.content_hash

        return None

    async def validate(self, journal_id: str) -> ValidationReport:
        """
        Validate chain linkage and every checkpoint root of a journal.

        Args:
            journal_id: Journal to audit

        Returns:
            ValidationReport (valid=False on any finding)
        """
        entries = await self.store.list_entries(journal_id)
        checkpoints = await self.store.list_checkpoints(journal_id)
        by_sequence = {entry.sequence: entry for entry in entries}

        failures: list[ValidationFailure] = []
        chain_failure = self._check_chain(entries)
        if chain_failure:
            failures.append(chain_failure)

        failing_checkpoint_id = None
        for checkpoint in checkpoints:
            leaves = [
                by_sequence[seq].content_hash
                for seq in range(checkpoint.start_sequence, checkpoint.end_sequence + 1)
                if seq in by_sequence
            ]
            if len(leaves) != checkpoint.leaf_count:
                failure = ValidationFailure(
                    kind="checkpoint",
                    message=f"Checkpoint {checkpoint.id} covers missing entries",
                    checkpoint_id=checkpoint.id,
                    expected=checkpoint.merkle_root,
                )
            else:
                recomputed = MerkleTree(leaves).build()
                if recomputed == checkpoint.merkle_root:
                    continue
                failure = ValidationFailure(
                    kind="checkpoint",
                    message=f"Checkpoint {checkpoint.id} root does not match its entries",
                    checkpoint_id=checkpoint.id,
                    expected=checkpoint.merkle_root,
                    actual=recomputed,
                )
            failures.append(failure)
            failing_checkpoint_id = failing_checkpoint_id or checkpoint.id

        report = ValidationReport(
            valid=not failures,
            first_hash=entries[0].content_hash if entries else None,
            last_hash=entries[-1].content_hash if entries else None,
            checkpoint_count=len(checkpoints),
            entry_count=len(entries),
            first_failing_sequence=chain_failure.sequence if chain_failure else None,
            failing_checkpoint_id=failing_checkpoint_id,
            failures=failures,
        )

        if not report.valid:
            logger.warning(
                "Journal failed validation",
                extra={
                    "journal_id": journal_id,
                    "sequence": report.first_failing_sequence,
                    "checkpoint_id": failing_checkpoint_id,
                },
            )
        return report

    async def assert_valid(self, journal_id: str) -> ValidationReport:
        """
        Validate and raise on the first finding.

        Raises:
            IntegrityError: with sequence / checkpoint and expected vs. actual hash
        """
        report = await self.validate(journal_id)
        if not report.valid:
            failure = report.failures[0]
            raise IntegrityError(
                failure.message,
                sequence=failure.sequence,
                checkpoint_id=failure.checkpoint_id,
                expected=failure.expected,
                actual=failure.actual,
            )
        return report

    async def summary(self, journal_id: str) -> dict[str, Any]:
        """Hash-chain summary for dashboards and certificates."""
        report = await self.validate(journal_id)
        return {
            "total_entries": report.entry_count,
            "is_valid": report.valid,
            "first_hash": report.first_hash,
            "last_hash": report.last_hash,
            "checkpoint_count": report.checkpoint_count,
        }
