"""
Public verification API routes.

These endpoints never return entry content. A Merkle proof exposes only
hashes and their positions.
"""

from typing import Any, Literal

from fastapi import APIRouter
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from ..integrity import MerkleProof
from ..services import get_services

router = APIRouter(prefix="/verify", tags=["Verification"])


class MerkleProofRequest(BaseModel):
    """Request for an inclusion proof."""

    journal_id: str = Field(..., description="Journal containing the entry")
    entry_hash: str = Field(..., description="Content hash of the entry")


class ProofStepModel(BaseModel):
    position: Literal["left", "right"]
    hash: str


class MerkleProofModel(BaseModel):
    """A proof as issued by POST /verify/merkle-proof."""

    leaf_hash: str
    sibling_path: list[ProofStepModel] = Field(default_factory=list)
    root: str
    leaf_index: int | None = None
    checkpoint_id: str | None = None


class CheckProofRequest(BaseModel):
    """Stateless proof check."""

    proof: MerkleProofModel
    expected_root: str | None = Field(None, description="Root to check against (default: proof.root)")
    content: str | None = Field(None, description="Raw entry content to check against the leaf")


@router.get("/merkle-proof")
async def get_merkle_proof_metadata(journal_id: str, entry_hash: str) -> dict[str, Any]:
    """Proof metadata (root, verification status, path length) for an entry."""
    return await get_services().proofs.get_proof_metadata(journal_id, entry_hash)


@router.post("/merkle-proof")
async def get_merkle_proof(request: MerkleProofRequest) -> dict[str, Any]:
    """Full inclusion proof with its sibling path."""
    proof = await get_services().proofs.get_proof(request.journal_id, request.entry_hash)
    return proof.to_dict()


@router.post("/merkle-proof/check")
async def check_merkle_proof(request: CheckProofRequest) -> dict[str, Any]:
    """
    Recompute a proof without touching the store.

    Optionally also checks that raw content hashes to the proof's leaf.
    """
    proof = MerkleProof.from_dict(request.proof.model_dump())
    proofs = get_services().proofs

    if request.content is not None:
        valid = proofs.verify_entry_content(request.content, proof, request.expected_root)
    else:
        valid = proofs.verify_proof(proof, request.expected_root)

    return {
        "valid": valid,
        "root": request.expected_root or proof.root,
        "leaf_hash": proof.leaf_hash,
    }


@router.get("/certificate/{certificate_id}")
async def verify_certificate(certificate_id: str) -> dict[str, Any]:
    """
    Verify a certificate against its checkpoint and witness.

    Returns is_valid, merkle_root, checkpoint_id, witness_proof and errors.
    """
    result = await get_services().certificates.verify(certificate_id)
    return result.to_dict()


# Must stay below the fixed /verify/* routes
@router.get("/{certificate_id}", response_class=HTMLResponse)
async def certificate_verification_page(certificate_id: str) -> HTMLResponse:
    """
    Public verification URL carried by every certificate.

    Renders the gated certificate with a fresh verification result.
    """
    services = get_services()
    certificate = await services.certificates.get(certificate_id)
    result = await services.certificates.verify(certificate_id)
    return HTMLResponse(content=services.renderer.render(certificate, result))
