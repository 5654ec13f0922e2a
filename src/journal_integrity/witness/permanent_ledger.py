"""
Permanent-ledger witness backend.

Submits a small signed document to a permanent-storage gateway:

    POST {gateway}/records
        {"data": {...document...}, "signature": "...", "keyId": "...",
         "algorithm": "Ed25519", "tags": {...}}
    -> {"id": "<record id>"}

    GET {gateway}/records/{id}
    -> the same envelope as stored

The document embeds the root, journal id, entry range and timestamp, and
the envelope carries an Ed25519 signature over its canonical JSON.
"""

import logging
from typing import Any

import httpx

from ..errors import WitnessError
from ..hashing import is_hex_digest
from ..records import WitnessType
from .base import HttpWitnessBackend, WitnessMetadata, WitnessVerdict
from .signing import SIGNATURE_ALGORITHM, public_key_from_private, sign_document, verify_document

logger = logging.getLogger("journal_integrity.witness.ledger")

DOCUMENT_TYPE = "WritingJournalCheckpoint"
DOCUMENT_VERSION = "1.0"


class PermanentLedgerBackend(HttpWitnessBackend):
    """Witness checkpoints as signed records on a permanent ledger."""

    witness_type = WitnessType.PERMANENT_LEDGER

    def __init__(
        self,
        gateway_url: str,
        signing_key_pem: str,
        key_id: str = "journal-witness-1",
        public_key_pem: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        """
        Args:
            gateway_url: Base URL of the ledger gateway
            signing_key_pem: PEM Ed25519 private key used to sign documents
            key_id: Identifier published alongside signatures
            public_key_pem: Verification key (default: derived from the signing key)
        """
        super().__init__(client=client, timeout=timeout)
        self.gateway_url = gateway_url.rstrip("/")
        self.signing_key_pem = signing_key_pem
        self.key_id = key_id
        self.public_key_pem = public_key_pem or public_key_from_private(signing_key_pem)

    def build_document(self, root: str, metadata: WitnessMetadata) -> dict[str, Any]:
        """The externally visible witness statement."""
        return {
            "type": DOCUMENT_TYPE,
            "version": DOCUMENT_VERSION,
            "root": root,
            **metadata.to_dict(),
        }

    async def submit(self, root: str, metadata: WitnessMetadata) -> str:
        document = self.build_document(root, metadata)
        envelope = {
            "data": document,
            "signature": sign_document(document, self.signing_key_pem),
            "keyId": self.key_id,
            "algorithm": SIGNATURE_ALGORITHM,
            "tags": {
                "Content-Type": "application/json",
                "Type": DOCUMENT_TYPE,
                "Journal-ID": metadata.journal_id,
                "Merkle-Root": root,
            },
        }

        async with self.http() as client:
            response = await client.post(
                f"{self.gateway_url}/records",
                json=envelope,
                headers={"Idempotency-Key": metadata.idempotency_key(root)},
            )
            response.raise_for_status()
            record_id = self.json_body(response, "Ledger gateway").get("id")

        if not record_id:
            raise WitnessError("Ledger gateway accepted the record but returned no id")

        logger.info(
            "Submitted checkpoint root to permanent ledger",
            extra={"journal_id": metadata.journal_id, "merkle_root": root, "witness_proof": record_id},
        )
        return str(record_id)

    async def fetch(self, record_id: str) -> dict[str, Any] | None:
        """Fetch a stored envelope, or None if the ledger has no such record."""
        async with self.http() as client:
            response = await client.get(f"{self.gateway_url}/records/{record_id}")

        if response.status_code in (404, 410):
            return None
        if response.status_code >= 500:
            raise WitnessError(f"Ledger gateway returned {response.status_code}")
        response.raise_for_status()
        return self.json_body(response, "Ledger gateway")

    async def check(self, witness_proof: str, expected_root: str | None = None) -> WitnessVerdict:
        envelope = await self.fetch(witness_proof)
        if envelope is None:
            return WitnessVerdict.INVALID

        document = envelope.get("data")
        if not isinstance(document, dict):
            return WitnessVerdict.INVALID
        if document.get("type") != DOCUMENT_TYPE or not document.get("journalId"):
            return WitnessVerdict.INVALID
        if not is_hex_digest(document.get("root")):
            return WitnessVerdict.INVALID
        if expected_root is not None and document["root"] != expected_root:
            return WitnessVerdict.INVALID

        signature = envelope.get("signature")
        if not isinstance(signature, str) or not verify_document(document, signature, self.public_key_pem):
            return WitnessVerdict.INVALID

        return WitnessVerdict.CONFIRMED

    def url_for(self, witness_proof: str) -> str | None:
        return f"{self.gateway_url}/records/{witness_proof}"
