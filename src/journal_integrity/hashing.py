"""
SHA-256 helpers and the hash-format boundary check.

All hashes in the system are lowercase hex SHA-256 digests of exactly 64
characters.
"""

import hashlib
import re

from .errors import ValidationError

HEX_DIGEST_RE = re.compile(r"^[0-9a-f]{64}$")

# prev_hash of the first entry in every journal
GENESIS_PREV_HASH = ""


def sha256_hex(content: str | bytes) -> str:
    """Compute the lowercase hex SHA-256 digest of content."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def is_hex_digest(value: object) -> bool:
    """Check that value is a 64-character lowercase hex string."""
    return isinstance(value, str) and HEX_DIGEST_RE.match(value) is not None


def require_hex_digest(value: object, field_name: str = "hash") -> str:
    """
    Validate a hash at the boundary.

    Raises:
        ValidationError: if value is not a lowercase hex SHA-256 digest
    """
    if not is_hex_digest(value):
        raise ValidationError(
            f"{field_name} must be a lowercase hex-encoded SHA-256 digest (64 characters)"
        )
    return value  # type: ignore[return-value]
