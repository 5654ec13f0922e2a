"""Witness module - external attestation of checkpoint roots."""

from .adapter import WitnessAdapter
from .base import (
    WitnessBackend,
    WitnessMetadata,
    WitnessReceipt,
    WitnessStatus,
    WitnessVerdict,
)
from .local import LocalWitnessBackend
from .permanent_ledger import PermanentLedgerBackend
from .social_timestamp import SocialTimestampBackend

__all__ = [
    "WitnessAdapter",
    "WitnessBackend",
    "WitnessMetadata",
    "WitnessReceipt",
    "WitnessStatus",
    "WitnessVerdict",
    "LocalWitnessBackend",
    "PermanentLedgerBackend",
    "SocialTimestampBackend",
]
