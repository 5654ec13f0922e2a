"""
Journal API routes - appends, listings, insights and audits.
"""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from ..records import EntryType
from ..services import get_services

router = APIRouter(prefix="/journals", tags=["Journals"])


class AppendEntryRequest(BaseModel):
    """Request to append one writing-process event."""

    content: str = Field(..., description="Event content (hashed, never echoed back)")
    entry_type: EntryType = Field(..., description="Kind of event")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Unhashed metadata")


class EntryResponse(BaseModel):
    """A persisted entry without its content."""

    id: str
    journal_id: str
    sequence: int
    entry_type: str
    content_hash: str
    prev_hash: str
    created_at: str
    metadata: dict[str, Any] = Field(default_factory=dict)


@router.post("/{journal_id}/entries", response_model=EntryResponse)
async def append_entry(journal_id: str, request: AppendEntryRequest) -> EntryResponse:
    """
    Append an event to a journal.

    Sequence conflicts with concurrent writers are retried a bounded
    number of times before a 409 is returned.
    """
    services = get_services()
    entry = await services.ledger.append_with_retry(
        journal_id,
        request.content,
        request.entry_type,
        request.metadata,
        retries=services.settings.append_conflict_retries,
    )
    return EntryResponse(**entry.to_dict())


@router.get("/{journal_id}/entries")
async def list_entries(
    journal_id: str,
    start_seq: int | None = None,
    end_seq: int | None = None,
) -> dict[str, Any]:
    """List entry hashes and metadata in sequence order."""
    entries = await get_services().ledger.entries(journal_id, start_seq, end_seq)
    return {
        "journal_id": journal_id,
        "count": len(entries),
        "entries": [entry.to_dict() for entry in entries],
    }


@router.get("/{journal_id}/insights")
async def get_insights(journal_id: str) -> dict[str, Any]:
    """Content-free statistics about the writing process."""
    insights = await get_services().ledger.insights(journal_id)
    return insights.to_dict()


@router.get("/{journal_id}/validate")
async def validate_journal(journal_id: str) -> dict[str, Any]:
    """
    Audit chain linkage and every checkpoint root.

    Always 200; findings are reported in the body.
    """
    report = await get_services().validator.validate(journal_id)
    return report.to_dict()


@router.get("/{journal_id}/summary")
async def get_summary(journal_id: str) -> dict[str, Any]:
    """Hash-chain summary."""
    return await get_services().validator.summary(journal_id)
