"""
Service wiring.

Builds the integrity services over one Entry Store and one witness adapter.
Which witness backends exist is decided here from configuration, at
construction time.
"""

import logging
from dataclasses import dataclass

import httpx

from .config import Settings, get_settings
from .integrity import (
    CertificateBuilder,
    ChainValidator,
    HashChainLedger,
    MerkleCheckpointer,
    ProofService,
)
from .reporting import CertificateRenderer
from .storage.base import EntryStore
from .witness import (
    LocalWitnessBackend,
    PermanentLedgerBackend,
    SocialTimestampBackend,
    WitnessAdapter,
    WitnessBackend,
)

logger = logging.getLogger("journal_integrity.services")


@dataclass
class IntegrityServices:
    """Everything the HTTP layer needs, sharing one store."""

    store: EntryStore
    witness: WitnessAdapter
    ledger: HashChainLedger
    checkpointer: MerkleCheckpointer
    proofs: ProofService
    validator: ChainValidator
    certificates: CertificateBuilder
    renderer: CertificateRenderer
    settings: Settings


def build_witness_adapter(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> WitnessAdapter:
    """
    Create a WitnessAdapter with every backend the settings can support.

    External backends without credentials are left out, so requests for
    them fall back to the local backend.
    """
    settings = settings or get_settings()
    backends: list[WitnessBackend] = [LocalWitnessBackend()]

    if settings.ledger_configured:
        backends.append(
            PermanentLedgerBackend(
                gateway_url=settings.ledger_gateway_url,
                signing_key_pem=settings.ledger_signing_key,
                key_id=settings.ledger_signing_key_id,
                client=http_client,
                timeout=settings.witness_timeout_seconds,
            )
        )
    else:
        logger.info("Permanent-ledger witness not configured, using local")

    if settings.social_configured:
        backends.append(
            SocialTimestampBackend(
                api_url=settings.social_api_url,
                bearer_token=settings.social_bearer_token,
                marker=settings.witness_marker,
                client=http_client,
                timeout=settings.witness_timeout_seconds,
            )
        )
    else:
        logger.info("Social-timestamp witness not configured, using local")

    return WitnessAdapter(
        backends,
        timeout_seconds=settings.witness_timeout_seconds,
        max_retries=settings.witness_max_retries,
        backoff_seconds=settings.witness_backoff_seconds,
        max_cached_receipts=settings.witness_receipt_cache_size,
    )


def build_services(
    store: EntryStore,
    settings: Settings | None = None,
    witness: WitnessAdapter | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> IntegrityServices:
    """
    Wire the integrity services over a store.

    Args:
        store: SQLEntryStore in the service, MemoryEntryStore when embedded
        settings: Settings (default: cached environment settings)
        witness: Pre-built adapter (default: built from settings)
        http_client: Shared httpx client for external witness backends
    """
    settings = settings or get_settings()
    witness = witness or build_witness_adapter(settings, http_client)

    checkpointer = MerkleCheckpointer(store, witness)
    proofs = ProofService(store)

    return IntegrityServices(
        store=store,
        witness=witness,
        ledger=HashChainLedger(store),
        checkpointer=checkpointer,
        proofs=proofs,
        validator=ChainValidator(store),
        certificates=CertificateBuilder(store, checkpointer, proofs, settings.public_base_url),
        renderer=CertificateRenderer(),
        settings=settings,
    )


# Global services instance
_services: IntegrityServices | None = None


def get_services() -> IntegrityServices:
    """Get or create the global services over the SQL store."""
    global _services
    if _services is None:
        from .storage import SQLEntryStore, get_db

        _services = build_services(SQLEntryStore(get_db()))
    return _services


def set_services(services: IntegrityServices | None) -> None:
    """Replace the global services (None resets to lazy creation)."""
    global _services
    _services = services
