"""
WitnessAdapter - one entry point for every witness backend.

Adds what individual backends do not: an explicit timeout on every call,
bounded retries with exponential backoff, per-root deduplication of
submissions, and the distinction between "confirmed invalid" and
"unknown/unreachable" on verification.
"""

import asyncio
import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, TypeVar

import httpx

from ..errors import WitnessError, WitnessTimeoutError
from ..hashing import require_hex_digest
from ..records import WitnessType
from .base import WitnessBackend, WitnessMetadata, WitnessReceipt, WitnessStatus, WitnessVerdict
from .local import LocalWitnessBackend

logger = logging.getLogger("journal_integrity.witness")

T = TypeVar("T")


class WitnessAdapter:
    """
    Dispatches witness calls to the backend registered for a witness type.

    Backends are chosen at construction time. A witness type with no
    registered backend falls back to the local backend, so checkpoints
    degrade to local witnessing instead of failing.
    """

    def __init__(
        self,
        backends: Iterable[WitnessBackend] = (),
        timeout_seconds: float = 10.0,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        max_cached_receipts: int = 1024,
    ):
        """
        Args:
            backends: Backend instances, keyed by their witness_type
            timeout_seconds: Upper bound for a single backend call
            max_retries: Extra attempts after the first failure
            backoff_seconds: Base delay, doubled after every failed attempt
            max_cached_receipts: Receipts kept for deduplication, least recently used evicted first
        """
        self._backends: dict[WitnessType, WitnessBackend] = {b.witness_type: b for b in backends}
        self._backends.setdefault(WitnessType.LOCAL, LocalWitnessBackend())
        self.timeout_seconds = timeout_seconds
        self.max_retries = max(0, max_retries)
        self.backoff_seconds = backoff_seconds
        self.max_cached_receipts = max(1, max_cached_receipts)
        self._receipts: OrderedDict[str, WitnessReceipt] = OrderedDict()
        self._inflight: dict[str, asyncio.Task] = {}

    @property
    def available(self) -> list[WitnessType]:
        return list(self._backends)

    def backend_for(self, witness_type: WitnessType) -> WitnessBackend:
        backend = self._backends.get(witness_type)
        if backend is None:
            logger.warning(
                "No backend configured for witness type, using local",
                extra={"witness_type": witness_type.value},
            )
            return self._backends[WitnessType.LOCAL]
        return backend

    async def submit(
        self,
        witness_type: WitnessType,
        root: str,
        metadata: WitnessMetadata,
    ) -> WitnessReceipt:
        """
        Submit a checkpoint root to a witness backend.

        A root already submitted for the same journal and range returns the
        earlier receipt instead of creating a second external record.
        Concurrent submissions of the same claim share one backend call.

        Raises:
            ValidationError: malformed root
            WitnessError: every attempt failed (WitnessTimeoutError on timeout)
        """
        require_hex_digest(root, "merkle_root")
        backend = self.backend_for(witness_type)
        key = f"{backend.witness_type.value}:{metadata.idempotency_key(root)}"

        # No await between the lookups and registering the task
        cached = self._receipts.get(key)
        if cached is not None:
            self._receipts.move_to_end(key)
            logger.info(
                "Witness already submitted for root, reusing receipt",
                extra={"witness_type": backend.witness_type.value, "merkle_root": root},
            )
            return self._reused(cached)

        task = self._inflight.get(key)
        if task is not None:
            logger.info(
                "Witness submission for root in flight, awaiting it",
                extra={"witness_type": backend.witness_type.value, "merkle_root": root},
            )
            return self._reused(await asyncio.shield(task))

        task = asyncio.ensure_future(self._submit_new(backend, root, metadata))
        self._inflight[key] = task
        task.add_done_callback(lambda done: self._settle(key, done))
        return await asyncio.shield(task)

    async def _submit_new(
        self,
        backend: WitnessBackend,
        root: str,
        metadata: WitnessMetadata,
    ) -> WitnessReceipt:
        proof, attempts = await self._call(
            lambda: backend.submit(root, metadata),
            action="submit",
            witness_type=backend.witness_type,
        )
        return WitnessReceipt(
            witness_type=backend.witness_type,
            witness_proof=proof,
            url=backend.url_for(proof),
            submitted_at=datetime.now(timezone.utc),
            attempts=attempts,
        )

    def _settle(self, key: str, task: asyncio.Task) -> None:
        """Move a finished submission from in-flight to the receipt cache."""
        self._inflight.pop(key, None)
        if task.cancelled() or task.exception() is not None:
            return
        self._receipts[key] = task.result()
        self._receipts.move_to_end(key)
        while len(self._receipts) > self.max_cached_receipts:
            self._receipts.popitem(last=False)

    @staticmethod
    def _reused(receipt: WitnessReceipt) -> WitnessReceipt:
        return WitnessReceipt(
            witness_type=receipt.witness_type,
            witness_proof=receipt.witness_proof,
            url=receipt.url,
            submitted_at=receipt.submitted_at,
            attempts=0,
            deduplicated=True,
        )

    async def check(
        self,
        witness_type: WitnessType,
        witness_proof: str,
        expected_root: str | None = None,
    ) -> WitnessVerdict:
        """Check a witness record; UNKNOWN when the backend stays unreachable."""
        backend = self.backend_for(witness_type)
        try:
            verdict, _ = await self._call(
                lambda: backend.check(witness_proof, expected_root),
                action="check",
                witness_type=backend.witness_type,
            )
        except WitnessError:
            return WitnessVerdict.UNKNOWN
        return verdict

    async def verify(
        self,
        witness_type: WitnessType,
        witness_proof: str,
        expected_root: str | None = None,
    ) -> bool:
        """True only when the backend confirms the record."""
        return await self.check(witness_type, witness_proof, expected_root) == WitnessVerdict.CONFIRMED

    async def status(
        self,
        witness_type: WitnessType,
        witness_proof: str,
        expected_root: str | None = None,
    ) -> WitnessStatus:
        """Witness status with a public URL where the backend has one."""
        backend = self.backend_for(witness_type)
        verdict = await self.check(witness_type, witness_proof, expected_root)
        status = {
            WitnessVerdict.CONFIRMED: "confirmed",
            WitnessVerdict.INVALID: "failed",
            WitnessVerdict.UNKNOWN: "unknown",
        }[verdict]
        return WitnessStatus(
            id=witness_proof,
            witness_type=backend.witness_type,
            status=status,
            url=backend.url_for(witness_proof),
        )

    async def _call(
        self,
        factory: Callable[[], Awaitable[T]],
        action: str,
        witness_type: WitnessType,
    ) -> tuple[T, int]:
        """Run a backend call with timeout and bounded retries."""
        attempts = self.max_retries + 1
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                result = await asyncio.wait_for(factory(), timeout=self.timeout_seconds)
                return result, attempt
            except asyncio.TimeoutError:
                last_error = WitnessTimeoutError(
                    f"{witness_type.value} {action} timed out after {self.timeout_seconds}s"
                )
            except (httpx.HTTPError, WitnessError) as exc:
                last_error = exc

            logger.warning(
                f"Witness {action} attempt failed: {last_error}",
                extra={"witness_type": witness_type.value, "action": action, "attempt": attempt},
            )
            if attempt < attempts:
                await asyncio.sleep(self.backoff_seconds * 2 ** (attempt - 1))

        if isinstance(last_error, WitnessError):
            raise last_error
        raise WitnessError(f"{witness_type.value} {action} failed after {attempts} attempts") from last_error
