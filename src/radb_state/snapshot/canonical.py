"""
Canonical JSON serialization and payload checksums.

Provides stable, platform-independent serialization for snapshot checksums.
The canonicalization ensures:
- Keys are sorted recursively
- Unicode is normalized (NFC)
- No insignificant whitespace
- Consistent null handling
"""

import hashlib
import json
import unicodedata
from typing import Any, Dict


def canonicalize(obj: Any) -> str:
    """
    Canonicalize a Python object to a stable JSON string.

    Args:
        obj: The object to canonicalize

    Returns:
        Canonical JSON string
    """
    return json.dumps(
        _normalize_for_canonical(obj),
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
        default=_canonical_default,
    )


def _normalize_for_canonical(obj: Any) -> Any:
    """
    Recursively normalize an object for canonical serialization.

    - Normalizes unicode strings (NFC)
    - Recursively processes dicts and lists
    """
    if obj is None:
        return None

    if isinstance(obj, str):
        return unicodedata.normalize("NFC", obj)

    # bool before int (bool is subclass of int)
    if isinstance(obj, bool):
        return obj

    if isinstance(obj, (int, float)):
        return obj

    if isinstance(obj, dict):
        return {
            _normalize_for_canonical(k): _normalize_for_canonical(v)
            for k, v in obj.items()
        }

    if isinstance(obj, (list, tuple)):
        return [_normalize_for_canonical(item) for item in obj]

    return unicodedata.normalize("NFC", str(obj))


def _canonical_default(obj: Any) -> Any:
    """Default handler for JSON serialization of non-standard types."""
    if hasattr(obj, "isoformat"):
        return obj.isoformat()

    if hasattr(obj, "to_dict"):
        return obj.to_dict()

    return str(obj)


def compute_payload_checksum(payload: Dict[str, Any]) -> str:
    """
    Compute the SHA-256 checksum of a snapshot payload.

    The payload is the {routes, contacts} mapping produced by
    Snapshot.payload(); absent collections are absent keys. Snapshot id,
    timestamp, note and metadata are not part of it.

    Args:
        payload: Serialized routes/contacts mapping

    Returns:
        Hex-encoded SHA-256 hash string
    """
    canonical_str = canonicalize(payload)
    return hashlib.sha256(canonical_str.encode("utf-8")).hexdigest()


def verify_payload_checksum(payload: Dict[str, Any], checksum: str) -> bool:
    """True if the payload hashes to the given checksum."""
    if not checksum:
        return False
    return compute_payload_checksum(payload) == checksum
