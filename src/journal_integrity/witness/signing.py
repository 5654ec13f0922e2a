"""
Ed25519 signing of witness documents.

Uses the ``cryptography`` library. Documents are serialized as canonical
JSON (sorted keys, no whitespace) before signing, so any party holding the
public key can re-derive the signed bytes from the published document.
"""

import base64
import json
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
    load_pem_public_key,
)

SIGNATURE_ALGORITHM = "Ed25519"


def canonical_json(document: dict[str, Any]) -> bytes:
    """Deterministic UTF-8 JSON bytes of a document."""
    return json.dumps(document, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def generate_signing_keypair() -> tuple[str, str]:
    """
    Generate a new Ed25519 key pair.

    Returns:
        (private_key_pem, public_key_pem)
    """
    private_key = Ed25519PrivateKey.generate()
    private_pem = private_key.private_bytes(
        encoding=Encoding.PEM,
        format=PrivateFormat.PKCS8,
        encryption_algorithm=NoEncryption(),
    ).decode("utf-8")
    return private_pem, public_key_from_private(private_pem)


def public_key_from_private(private_key_pem: str) -> str:
    """Derive the PEM public key from a PEM private key."""
    private_key = _load_private(private_key_pem)
    return private_key.public_key().public_bytes(
        encoding=Encoding.PEM,
        format=PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")


def sign_document(document: dict[str, Any], private_key_pem: str) -> str:
    """Sign a document's canonical JSON, returning a base64 signature."""
    signature = _load_private(private_key_pem).sign(canonical_json(document))
    return base64.b64encode(signature).decode("utf-8")


def verify_document(document: dict[str, Any], signature: str, public_key_pem: str) -> bool:
    """Check a base64 Ed25519 signature over a document's canonical JSON."""
    public_key = load_pem_public_key(public_key_pem.encode("utf-8"))
    if not isinstance(public_key, Ed25519PublicKey):
        raise TypeError("Expected an Ed25519 public key")
    try:
        public_key.verify(base64.b64decode(signature), canonical_json(document))
        return True
    except (InvalidSignature, ValueError):
        return False


def _load_private(private_key_pem: str) -> Ed25519PrivateKey:
    private_key = load_pem_private_key(private_key_pem.encode("utf-8"), password=None)
    if not isinstance(private_key, Ed25519PrivateKey):
        raise TypeError("Expected an Ed25519 private key")
    return private_key
