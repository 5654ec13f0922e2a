"""
Witness backend interface.

A witness is an external, hard-to-alter record attesting that a checkpoint
root existed at a point in time. Every backend embeds the root and the
journal id in its externally visible payload, so a third party can verify
the record without access to this system's store.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncGenerator

import httpx

from ..errors import WitnessError
from ..records import WitnessType


class WitnessVerdict(str, Enum):
    """Outcome of checking a witness record."""

    CONFIRMED = "confirmed"
    INVALID = "invalid"  # the record exists and contradicts the claim, or is gone
    UNKNOWN = "unknown"  # the backend could not be reached or answered ambiguously


@dataclass(frozen=True)
class WitnessMetadata:
    """What a witness record states besides the root."""

    journal_id: str
    entry_range: tuple[int, int]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def idempotency_key(self, root: str) -> str:
        """Stable key for one (journal, range, root) witness claim."""
        return f"{self.journal_id}:{self.entry_range[0]}-{self.entry_range[1]}:{root}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "journalId": self.journal_id,
            "entryRange": list(self.entry_range),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class WitnessReceipt:
    """Result of a successful submission."""

    witness_type: WitnessType
    witness_proof: str
    url: str | None
    submitted_at: datetime
    attempts: int = 1
    deduplicated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "witness_type": self.witness_type.value,
            "witness_proof": self.witness_proof,
            "url": self.url,
            "submitted_at": self.submitted_at.isoformat(),
            "attempts": self.attempts,
        }


@dataclass(frozen=True)
class WitnessStatus:
    """Current standing of a witness record."""

    id: str
    witness_type: WitnessType
    status: str  # confirmed | failed | unknown
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "witness_type": self.witness_type.value,
            "status": self.status,
            "url": self.url,
        }


class WitnessBackend(ABC):
    """One external attestation service."""

    witness_type: WitnessType

    @abstractmethod
    async def submit(self, root: str, metadata: WitnessMetadata) -> str:
        """Publish the root and return the backend's record id."""

    @abstractmethod
    async def check(self, witness_proof: str, expected_root: str | None = None) -> WitnessVerdict:
        """Fetch the record and decide whether it witnesses expected_root."""

    async def verify(self, witness_proof: str, expected_root: str | None = None) -> bool:
        """True only when the record is confirmed."""
        return await self.check(witness_proof, expected_root) == WitnessVerdict.CONFIRMED

    def url_for(self, witness_proof: str) -> str | None:
        """Public URL of a record, when the backend has one."""
        return None


class HttpWitnessBackend(WitnessBackend):
    """Base for backends reached over HTTP with httpx."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 10.0):
        """
        Args:
            client: Shared client (tests inject one with a MockTransport)
            timeout: Per-request timeout when no client is injected
        """
        self._client = client
        self.timeout = timeout

    @asynccontextmanager
    async def http(self) -> AsyncGenerator[httpx.AsyncClient, None]:
        """Yield the injected client, or a short-lived one."""
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    @staticmethod
    def json_body(response: httpx.Response, service: str) -> dict[str, Any]:
        """
        Decode a JSON object body.

        Raises:
            WitnessError: the body is not JSON, or not a JSON object
        """
        try:
            body = response.json()
        except ValueError as exc:
            raise WitnessError(f"{service} returned a non-JSON body ({response.status_code})") from exc
        if not isinstance(body, dict):
            raise WitnessError(f"{service} returned {type(body).__name__} instead of an object")
        return body
