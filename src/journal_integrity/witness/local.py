"""
Local witness backend.

Used when no external credentials are configured. Ids are derived
deterministically from the witness claim, so resubmitting the same root
yields the same id, and verification accepts anything matching the local
id pattern.
"""

import re

from ..hashing import sha256_hex
from ..records import WitnessType
from .base import WitnessBackend, WitnessMetadata, WitnessVerdict


class LocalWitnessBackend(WitnessBackend):
    """Offline stand-in for external witnesses."""

    witness_type = WitnessType.LOCAL

    ID_PREFIX = "local-"
    ID_PATTERN = re.compile(r"^local-[0-9a-f]{32}$")

    async def submit(self, root: str, metadata: WitnessMetadata) -> str:
        return self.ID_PREFIX + sha256_hex(metadata.idempotency_key(root))[:32]

    async def check(self, witness_proof: str, expected_root: str | None = None) -> WitnessVerdict:
        if self.ID_PATTERN.match(witness_proof or ""):
            return WitnessVerdict.CONFIRMED
        return WitnessVerdict.INVALID
