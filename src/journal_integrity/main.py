"""
Journal Integrity Service - FastAPI Application Entry Point.

Tamper-evident hash chains, Merkle checkpoints, external witnesses and
selective-disclosure certificates for writing-process journals.
"""

import json
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import certificate_router, checkpoint_router, journal_router, verify_router
from .config import get_settings
from .errors import (
    ConflictError,
    IntegrityError,
    JournalError,
    NotCheckpointedError,
    NotFoundError,
    ValidationError,
    WitnessError,
)
from .storage import get_db, init_database


# ============================================================================
# JSON LOGGING SETUP
# ============================================================================

class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    EXTRA_FIELDS = (
        "endpoint", "method", "status_code", "action", "error",
        "journal_id", "sequence", "entry_type", "content_hash",
        "checkpoint_id", "merkle_root", "witness_type", "witness_proof", "attempt",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields if present
        for key in self.EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


def setup_json_logging(level: str = "INFO") -> logging.Logger:
    """Configure JSON logging for the service."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(console_handler)

    logging.getLogger("journal_integrity").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logging.getLogger("journal_integrity")


logger = logging.getLogger("journal_integrity")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    setup_json_logging(settings.log_level)
    logger.info("Starting Journal Integrity Service...")

    await init_database()
    logger.info("Database initialized successfully")

    yield

    logger.info("Shutting down Journal Integrity Service...")
    db = get_db()
    await db.close()
    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Journal Integrity Service",
    description="""
# Tamper-Evident Writing-Process Journals

- **Hash chain**: every entry commits to its predecessor
- **Merkle checkpoints**: compact commitments over entry ranges
- **Witnesses**: permanent-ledger and social-timestamp attestation of roots
- **Certificates**: private, summary or public proof documents

## Getting Started

1. Append events via `POST /journals/{journal_id}/entries`
2. Checkpoint via `POST /journals/{journal_id}/checkpoints`
3. Issue a certificate via `POST /certificates`
4. Verify via `/verify/merkle-proof` and `/verify/certificate/{id}`
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(journal_router)
app.include_router(checkpoint_router)
app.include_router(verify_router)
app.include_router(certificate_router)


# Most specific class first
ERROR_STATUS: list[tuple[type[JournalError], int]] = [
    (ValidationError, 422),
    (NotCheckpointedError, 409),
    (NotFoundError, 404),
    (ConflictError, 409),
    (IntegrityError, 409),
    (WitnessError, 502),
]


def error_body(exc: JournalError) -> dict:
    body = {"error": type(exc).__name__, "detail": str(exc)}
    for attr in ("sequence", "checkpoint_id", "expected", "actual"):
        value = getattr(exc, attr, None)
        if value is not None:
            body[attr] = value
    return body


@app.exception_handler(JournalError)
async def journal_exception_handler(request: Request, exc: JournalError):
    """Map the error taxonomy onto HTTP status codes."""
    status_code = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500)
    logger.warning(
        f"{type(exc).__name__}: {exc}",
        extra={"endpoint": request.url.path, "method": request.method, "status_code": status_code},
    )
    return JSONResponse(status_code=status_code, content=error_body(exc))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(
        "Unhandled error",
        exc_info=exc,
        extra={"endpoint": request.url.path, "method": request.method, "status_code": 500},
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
        },
    )


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint with API information."""
    settings = get_settings()
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "journals": "/journals",
            "certificates": "/certificates",
            "verify": "/verify",
        },
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def main():
    """Run the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "journal_integrity.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
