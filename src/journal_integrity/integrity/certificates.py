"""
CertificateBuilder - portable proof documents with selective disclosure.

A certificate references the checkpoint covering the journal's full current
range and carries a JSON-LD payload whose contents depend strictly on the
disclosure level:

    private  merkleRoot and a bare existence claim
    summary  + title, author, content-free process statistics, witness info
    public   + named inclusion proofs for requested entries (hashes only)

Entry content never appears in a payload at any level.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from ..errors import NotFoundError, ValidationError
from ..hashing import require_hex_digest
from ..records import AI_ENTRY_TYPES, Certificate, Checkpoint, DisclosureLevel, WitnessType
from ..storage.base import EntryStore
from .checkpointer import MerkleCheckpointer, VerificationResult, coerce_witness_type
from .merkle_tree import MerkleProof
from .proofs import ProofService

logger = logging.getLogger("journal_integrity.certificates")

CERTIFICATE_CONTEXT = [
    "https://www.w3.org/2018/credentials/v1",
    "https://schema.org/",
]


@dataclass
class CertificateRequest:
    """Everything needed to build one certificate."""

    document_id: str
    journal_id: str
    title: str
    author: dict[str, str]
    disclosure_level: DisclosureLevel | str = DisclosureLevel.PRIVATE
    witness_type: WitnessType | str = WitnessType.LOCAL
    proof_entries: dict[str, str] = field(default_factory=dict)  # name -> entry hash

    def validated(self) -> "CertificateRequest":
        """
        Return a copy with enums coerced and every field checked.

        Raises:
            ValidationError: missing ids/title/author, unknown enum values,
                malformed entry hashes, or proofs requested below public
        """
        if not self.document_id or not self.journal_id:
            raise ValidationError("document_id and journal_id are required")
        if not self.title or not self.title.strip():
            raise ValidationError("title is required")
        if not isinstance(self.author, dict) or not self.author.get("name"):
            raise ValidationError("author.name is required")

        try:
            level = DisclosureLevel(self.disclosure_level)
        except ValueError:
            allowed = ", ".join(d.value for d in DisclosureLevel)
            raise ValidationError(f"disclosure_level must be one of: {allowed}") from None

        if self.proof_entries and level != DisclosureLevel.PUBLIC:
            raise ValidationError("Named entry proofs are only disclosed at the public level")
        for name, entry_hash in self.proof_entries.items():
            if not name:
                raise ValidationError("proof names must be non-empty")
            require_hex_digest(entry_hash, f"proof_entries[{name}]")

        return CertificateRequest(
            document_id=self.document_id,
            journal_id=self.journal_id,
            title=self.title.strip(),
            author={k: v for k, v in self.author.items() if k in ("name", "identifier") and v},
            disclosure_level=level,
            witness_type=coerce_witness_type(self.witness_type),
            proof_entries=dict(self.proof_entries),
        )


class CertificateBuilder:
    """
    Builds, stores and verifies publication certificates.

    Usage:
        builder = CertificateBuilder(store, checkpointer, proofs, "https://journal.example")
        certificate = await builder.build(CertificateRequest(...))
        result = await builder.verify(certificate.id)
    """

    def __init__(
        self,
        store: EntryStore,
        checkpointer: MerkleCheckpointer,
        proofs: ProofService,
        public_base_url: str = "http://localhost:8000",
    ):
        """
        Initialize builder.

        Args:
            store: Entry Store for entries, checkpoints and certificates
            checkpointer: Creates the covering checkpoint when needed
            proofs: Generates named inclusion proofs
            public_base_url: Base of the public verification URL
        """
        self.store = store
        self.checkpointer = checkpointer
        self.proofs = proofs
        self.public_base_url = public_base_url.rstrip("/")

    def verification_url(self, certificate_id: str) -> str:
        return f"{self.public_base_url}/verify/{certificate_id}"

    async def build(self, request: CertificateRequest) -> Certificate:
        """
        Build and persist a certificate.

        Checkpoints any entries appended since the latest checkpoint first,
        so the certificate always commits to the full current journal.

        Args:
            request: Certificate request

        Returns:
            The persisted Certificate

        Raises:
            ValidationError: malformed request
            NotFoundError: the journal has no entries, or a named entry is unknown
            NotCheckpointedError: a named entry is not covered (never after checkpointing)
        """
        request = request.validated()
        level = DisclosureLevel(request.disclosure_level)

        checkpoint = await self.checkpointer.create_checkpoint(request.journal_id, request.witness_type)

        certificate_id = str(uuid4())
        public_url = self.verification_url(certificate_id)
        payload = await self._payload(request, level, checkpoint, certificate_id, public_url)

        certificate = Certificate(
            id=certificate_id,
            document_id=request.document_id,
            journal_id=request.journal_id,
            checkpoint_id=checkpoint.id,
            merkle_root=checkpoint.merkle_root,
            disclosure_level=level,
            proof_payload=payload,
            public_url=public_url,
            created_at=datetime.now(timezone.utc),
        )
        await self.store.insert_certificate(certificate)

        logger.info(
            "Issued certificate",
            extra={
                "journal_id": request.journal_id,
                "checkpoint_id": checkpoint.id,
                "merkle_root": checkpoint.merkle_root,
                "action": f"certificate_{level.value}",
            },
        )
        return certificate

    async def _payload(
        self,
        request: CertificateRequest,
        level: DisclosureLevel,
        checkpoint: Checkpoint,
        certificate_id: str,
        public_url: str,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "@context": list(CERTIFICATE_CONTEXT),
            "@type": "DigitalDocument",
            "@id": public_url,
            "documentId": request.document_id,
            "journalId": request.journal_id,
            "claim": "A writing-process journal committed to this Merkle root exists.",
            "proof": {
                "@type": "MerkleProof",
                "merkleRoot": checkpoint.merkle_root,
                "checkpointId": checkpoint.id,
            },
            "disclosureLevel": level.value,
            "summaryGenerated": level != DisclosureLevel.PRIVATE,
            "verificationUrl": public_url,
            "apiEndpoint": f"/verify/certificate/{certificate_id}",
        }
        if level == DisclosureLevel.PRIVATE:
            return payload

        entries = await self.store.list_entries(request.journal_id, end_seq=checkpoint.end_sequence)
        checkpoints = [
            cp
            for cp in await self.store.list_checkpoints(request.journal_id)
            if cp.end_sequence <= checkpoint.end_sequence
        ]

        payload["title"] = request.title
        payload["author"] = {"@type": "Person", **request.author}
        payload["writingProcess"] = {
            "@type": "CreativeProcess",
            "entryCount": len(entries),
            "startDate": entries[0].created_at.isoformat() if entries else None,
            "endDate": entries[-1].created_at.isoformat() if entries else None,
            "aiAssistance": any(e.entry_type in AI_ENTRY_TYPES for e in entries),
            "checkpointCount": len(checkpoints),
        }
        payload["proof"]["witnessType"] = checkpoint.witness_type.value
        payload["proof"]["witnessProof"] = checkpoint.witness_proof

        if level == DisclosureLevel.PUBLIC:
            named: dict[str, Any] = {}
            for name, entry_hash in request.proof_entries.items():
                proof = await self.proofs.get_proof(request.journal_id, entry_hash)
                named[name] = proof.to_dict()
            payload["proof"]["inclusionProofs"] = named

        return payload

    async def get(self, certificate_id: str) -> Certificate:
        """Get a certificate or raise NotFoundError."""
        certificate = await self.store.get_certificate(certificate_id)
        if certificate is None:
            raise NotFoundError(f"Certificate {certificate_id} not found")
        return certificate

    async def list_for_journal(self, journal_id: str) -> list[Certificate]:
        return await self.store.list_certificates(journal_id)

    async def verify(self, certificate_id: str) -> VerificationResult:
        """
        Public verification of a certificate.

        Locates the checkpoint behind the certificate's root, re-verifies it,
        and re-checks any inclusion proofs embedded in the payload.

        Raises:
            NotFoundError: unknown certificate
        """
        certificate = await self.get(certificate_id)

        checkpoint = await self.store.get_checkpoint(certificate.checkpoint_id)
        if checkpoint is None or checkpoint.merkle_root != certificate.merkle_root:
            checkpoint = await self.store.find_checkpoint_by_root(
                certificate.journal_id, certificate.merkle_root
            )
        if checkpoint is None:
            return VerificationResult(
                is_valid=False,
                merkle_root=certificate.merkle_root,
                checkpoint_id=certificate.checkpoint_id,
                errors=["Associated checkpoint not found"],
            )

        result = await self.checkpointer.verify_checkpoint(checkpoint.id)

        embedded = certificate.proof_payload.get("proof", {}).get("inclusionProofs", {})
        for name, data in embedded.items():
            try:
                proof = MerkleProof.from_dict(data)
            except ValidationError as exc:
                result.errors.append(f"Inclusion proof {name} is malformed: {exc}")
                continue
            if proof.checkpoint_id:
                proof_checkpoint = await self.store.get_checkpoint(proof.checkpoint_id)
                expected_root = proof_checkpoint.merkle_root if proof_checkpoint else None
            else:
                expected_root = certificate.merkle_root
            if expected_root is None or not self.proofs.verify_proof(proof, expected_root):
                result.errors.append(f"Inclusion proof {name} does not verify")

        result.is_valid = not result.errors
        return result

