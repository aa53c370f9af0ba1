"""
Snapshot envelope: a point-in-time capture of route and/or contact data.

The checksum covers only the {routes, contacts} payload; id, timestamp,
note and metadata can change without invalidating it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..core.exceptions import ValidationError
from ..core.utils import ensure_utc, format_timestamp, parse_timestamp, utc_now
from .contact import ContactList
from .route import RouteList


FORMAT_VERSION = 1


class SnapshotType(str, Enum):
    """What a snapshot captures."""
    ROUTE = "route"
    CONTACT = "contact"
    FULL = "full"


@dataclass
class Snapshot:
    """
    A point-in-time capture.

    Attributes:
        id: Unique identifier, '<type>-<unix seconds>' for generated snapshots
        timestamp: When the capture was taken (UTC)
        type: SnapshotType of the capture
        note: Free-text note supplied by the caller
        checksum: SHA-256 hex digest over the routes/contacts payload
        version: Snapshot file format version
        routes: Captured routes, if any
        contacts: Captured contacts, if any
        metadata: Arbitrary string annotations
    """
    id: str
    timestamp: datetime
    type: SnapshotType
    note: str = ""
    checksum: str = ""
    version: int = FORMAT_VERSION
    routes: Optional[RouteList] = None
    contacts: Optional[ContactList] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        snapshot_type: SnapshotType,
        note: str = "",
        routes: Optional[RouteList] = None,
        contacts: Optional[ContactList] = None,
        taken_at: Optional[datetime] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> "Snapshot":
        """
        Create a new Snapshot with an id derived from type and creation second.

        The checksum is filled in by the store on save (or by compute_checksum()).
        """
        snapshot_type = SnapshotType(snapshot_type)
        now = ensure_utc(taken_at) if taken_at else utc_now()
        return cls(
            id=f"{snapshot_type.value}-{int(now.timestamp())}",
            timestamp=now,
            type=snapshot_type,
            note=note,
            routes=routes,
            contacts=contacts,
            metadata=dict(metadata or {}),
        )

    def payload(self) -> Dict[str, Any]:
        """The checksummed portion of the snapshot."""
        data: Dict[str, Any] = {}
        if self.routes is not None:
            data["routes"] = self.routes.to_dict()
        if self.contacts is not None:
            data["contacts"] = self.contacts.to_dict()
        return data

    def compute_checksum(self) -> str:
        """Compute the payload checksum and store it on the snapshot."""
        from ..snapshot.canonical import compute_payload_checksum

        self.checksum = compute_payload_checksum(self.payload())
        return self.checksum

    def verify_checksum(self) -> bool:
        """True if the stored checksum matches the payload."""
        from ..snapshot.canonical import compute_payload_checksum

        if not self.checksum:
            return False
        return compute_payload_checksum(self.payload()) == self.checksum

    def validate(self, strict_records: bool = False) -> None:
        """
        Validate the snapshot before it is persisted.

        Args:
            strict_records: Also run per-record registry validation

        Raises:
            ValidationError: Listing every problem found
        """
        errors: List[str] = []

        if not self.id:
            errors.append("snapshot ID is required")
        if self.timestamp is None:
            errors.append("snapshot timestamp is required")
        if not self.type:
            errors.append("snapshot type is required")
        else:
            try:
                snapshot_type = SnapshotType(self.type)
            except ValueError:
                errors.append(f"invalid snapshot type: {self.type}")
            else:
                if snapshot_type is SnapshotType.ROUTE and self.routes is None:
                    errors.append("route snapshot must contain routes")
                elif snapshot_type is SnapshotType.CONTACT and self.contacts is None:
                    errors.append("contact snapshot must contain contacts")
                elif (
                    snapshot_type is SnapshotType.FULL
                    and self.routes is None
                    and self.contacts is None
                ):
                    errors.append("full snapshot must contain at least routes or contacts")

        if self.routes is not None:
            errors.extend(_duplicate_keys("route", [r.id for r in self.routes.routes]))
            if strict_records:
                for route in self.routes.routes:
                    errors.extend(f"route {route.id}: {e}" for e in route.validate())

        if self.contacts is not None:
            errors.extend(_duplicate_keys("contact", [c.id for c in self.contacts.contacts]))
            if strict_records:
                for contact in self.contacts.contacts:
                    errors.extend(f"contact {contact.id}: {e}" for e in contact.validate())

        if errors:
            raise ValidationError(f"invalid snapshot: {'; '.join(errors)}", errors=errors)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: Dict[str, Any] = {
            "id": self.id,
            "timestamp": format_timestamp(self.timestamp),
            "type": SnapshotType(self.type).value,
            "note": self.note,
            "checksum": self.checksum,
            "version": self.version,
        }
        data.update(self.payload())
        data["metadata"] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snapshot":
        """
        Create from dictionary.

        Raises:
            KeyError, ValueError, TypeError on malformed input
        """
        timestamp = parse_timestamp(data["timestamp"])
        if timestamp is None:
            raise ValueError("snapshot has no timestamp")
        routes = data.get("routes")
        contacts = data.get("contacts")
        return cls(
            id=data["id"],
            timestamp=timestamp,
            type=SnapshotType(data["type"]),
            note=data.get("note", ""),
            checksum=data.get("checksum", ""),
            version=_parse_version(data.get("version", FORMAT_VERSION)),
            routes=RouteList.from_dict(routes) if routes is not None else None,
            contacts=ContactList.from_dict(contacts) if contacts is not None else None,
            metadata=dict(data.get("metadata") or {}),
        )


def _parse_version(value: Any) -> int:
    # bool is an int subclass; reject it along with strings and null
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"snapshot version must be an integer, got {value!r}")
    return value


def _duplicate_keys(kind: str, keys: List[str]) -> List[str]:
    seen = set()
    dupes = []
    for key in keys:
        if key in seen and key not in dupes:
            dupes.append(key)
        seen.add(key)
    return [f"duplicate {kind} key: {key}" for key in dupes]
