"""Canonical conversation key reconciliation.

Every call leg is correlated by a canonical key: a lowercase, hyphenated UUID.
Provider identifiers that already have that shape are used as-is. Anything
else (Telnyx ``v3:...`` call control ids, opaque session ids) is hashed into a
UUID so the same external id always lands on the same key without a lookup.
"""

import hashlib
import re
import uuid

CANONICAL_KEY_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
)


def is_canonical_key(value: str | None) -> bool:
    """Check whether a value is already in canonical key format."""
    return bool(value) and CANONICAL_KEY_PATTERN.match(value) is not None


def reconcile(provider: str, external_id: str) -> str:
    """Derive the canonical conversation key for a provider identifier.

    The provider tag is part of the hashed input, so identical ids coming from
    different providers never map to the same key.

    Args:
        provider: Provider name (e.g. "vapi", "telnyx")
        external_id: Provider's call/conversation identifier

    Returns:
        Canonical key (lowercase UUID string)

    Raises:
        ValueError: If provider or external_id is empty
    """
    if not provider or not provider.strip():
        raise ValueError("provider is required to reconcile a conversation key")
    if not external_id or not external_id.strip():
        raise ValueError("external_id is required to reconcile a conversation key")

    if is_canonical_key(external_id):
        return external_id

    digest = hashlib.sha256(f"{provider}:{external_id}".encode("utf-8")).digest()
    # UUID(version=5) overwrites the version nibble and RFC 4122 variant bits
    return str(uuid.UUID(bytes=digest[:16], version=5))
