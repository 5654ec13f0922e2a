"""
Checkpoint API routes.
"""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from ..records import WitnessType
from ..services import get_services

router = APIRouter(tags=["Checkpoints"])


class CheckpointRequest(BaseModel):
    """Request to checkpoint a journal."""

    witness_type: WitnessType = Field(WitnessType.LOCAL, description="Requested witness backend")


class UpgradeRequest(BaseModel):
    """Request to attach an external witness to a local checkpoint."""

    witness_type: WitnessType = Field(..., description="External witness backend")


@router.post("/journals/{journal_id}/checkpoints")
async def create_checkpoint(journal_id: str, request: CheckpointRequest | None = None) -> dict[str, Any]:
    """
    Checkpoint every entry appended since the latest checkpoint.

    A failed external witness still stores the checkpoint, witnessed
    locally, with the failure noted in witness_data.
    """
    request = request or CheckpointRequest()
    checkpoint = await get_services().checkpointer.create_checkpoint(journal_id, request.witness_type)
    return checkpoint.to_dict()


@router.get("/journals/{journal_id}/checkpoints")
async def list_checkpoints(journal_id: str) -> dict[str, Any]:
    """List checkpoints in range order."""
    checkpoints = await get_services().checkpointer.list_checkpoints(journal_id)
    return {
        "journal_id": journal_id,
        "count": len(checkpoints),
        "checkpoints": [cp.to_dict() for cp in checkpoints],
    }


@router.get("/checkpoints/{checkpoint_id}")
async def get_checkpoint(checkpoint_id: str) -> dict[str, Any]:
    checkpoint = await get_services().checkpointer.get_checkpoint(checkpoint_id)
    return checkpoint.to_dict()


@router.get("/checkpoints/{checkpoint_id}/verify")
async def verify_checkpoint(checkpoint_id: str) -> dict[str, Any]:
    """Recompute the root and check the witness record."""
    result = await get_services().checkpointer.verify_checkpoint(checkpoint_id)
    return result.to_dict()


@router.post("/checkpoints/{checkpoint_id}/upgrade")
async def upgrade_checkpoint(checkpoint_id: str, request: UpgradeRequest) -> dict[str, Any]:
    """Attach a stronger witness without changing root or range."""
    checkpoint = await get_services().checkpointer.upgrade_witness(checkpoint_id, request.witness_type)
    return checkpoint.to_dict()
