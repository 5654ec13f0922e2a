"""API routes module."""

from .routes_journal import router as journal_router
from .routes_checkpoint import router as checkpoint_router
from .routes_verify import router as verify_router
from .routes_certificate import router as certificate_router

__all__ = ["journal_router", "checkpoint_router", "verify_router", "certificate_router"]
