"""
Certificate API routes.
"""

from typing import Any

from fastapi import APIRouter
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from ..integrity import CertificateRequest
from ..records import DisclosureLevel, WitnessType
from ..services import get_services

router = APIRouter(prefix="/certificates", tags=["Certificates"])


class AuthorModel(BaseModel):
    name: str = Field(..., min_length=1)
    identifier: str | None = None


class CertificateCreateRequest(BaseModel):
    """Request to issue a certificate."""

    document_id: str = Field(..., description="Document the journal belongs to")
    journal_id: str = Field(..., description="Journal to certify")
    title: str = Field(..., min_length=1)
    author: AuthorModel
    disclosure_level: DisclosureLevel = Field(DisclosureLevel.PRIVATE)
    witness_type: WitnessType = Field(WitnessType.LOCAL)
    proof_entries: dict[str, str] = Field(
        default_factory=dict,
        description="Named inclusion proofs to embed (public level only): name -> entry hash",
    )


@router.post("")
async def create_certificate(request: CertificateCreateRequest) -> dict[str, Any]:
    """
    Issue a certificate for the journal's full current range.

    Entries not yet checkpointed are checkpointed first.
    """
    certificate = await get_services().certificates.build(
        CertificateRequest(
            document_id=request.document_id,
            journal_id=request.journal_id,
            title=request.title,
            author=request.author.model_dump(exclude_none=True),
            disclosure_level=request.disclosure_level,
            witness_type=request.witness_type,
            proof_entries=request.proof_entries,
        )
    )
    return certificate.to_dict()


@router.get("/journal/{journal_id}")
async def list_certificates(journal_id: str) -> dict[str, Any]:
    certificates = await get_services().certificates.list_for_journal(journal_id)
    return {
        "journal_id": journal_id,
        "count": len(certificates),
        "certificates": [c.to_dict() for c in certificates],
    }


@router.get("/{certificate_id}")
async def get_certificate(certificate_id: str) -> dict[str, Any]:
    certificate = await get_services().certificates.get(certificate_id)
    return certificate.to_dict()


@router.get("/{certificate_id}/html", response_class=HTMLResponse)
async def certificate_page(certificate_id: str) -> HTMLResponse:
    """Human-readable certificate with its live verification result."""
    services = get_services()
    certificate = await services.certificates.get(certificate_id)
    result = await services.certificates.verify(certificate_id)
    return HTMLResponse(content=services.renderer.render(certificate, result))
