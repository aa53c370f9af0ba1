"""
Persisted form of a Change, one per line in changelog.jsonl.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.utils import format_timestamp, parse_timestamp
from .changeset import Change, ChangeType
from .diff import DiffItem


@dataclass
class ChangelogEntry:
    """
    An immutable history record.

    before/after are kept as plain JSON payloads so that entries for any
    object type share one shape on disk.
    """
    timestamp: datetime
    change_type: ChangeType
    object_type: str
    object_id: str
    snapshot_id: str = ""
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    field_changes: List[str] = field(default_factory=list)
    note: str = ""
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_change(cls, change: Change, snapshot_id: str) -> "ChangelogEntry":
        return cls(
            timestamp=change.timestamp,
            change_type=ChangeType(change.type),
            object_type=change.object_type,
            object_id=change.object_id,
            snapshot_id=snapshot_id,
            before=change.before.to_dict() if change.before is not None else None,
            after=change.after.to_dict() if change.after is not None else None,
            field_changes=list(change.details.get("field_changes") or []),
            note=change.details.get("note", ""),
        )

    def to_change(self) -> Change:
        """Rebuild a Change with typed before/after items."""
        details: Dict[str, Any] = {}
        if self.field_changes:
            details["field_changes"] = list(self.field_changes)
        if self.note:
            details["note"] = self.note
        if self.snapshot_id:
            details["snapshot_id"] = self.snapshot_id

        return Change(
            type=self.change_type,
            object_type=self.object_type,
            object_id=self.object_id,
            timestamp=self.timestamp,
            before=DiffItem.from_payload(self.object_type, self.before) if self.before else None,
            after=DiffItem.from_payload(self.object_type, self.after) if self.after else None,
            details=details,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "timestamp": format_timestamp(self.timestamp),
            "change_type": ChangeType(self.change_type).value,
            "object_type": self.object_type,
            "object_id": self.object_id,
            "snapshot_id": self.snapshot_id,
        }
        if self.before is not None:
            data["before"] = self.before
        if self.after is not None:
            data["after"] = self.after
        if self.field_changes:
            data["field_changes"] = list(self.field_changes)
        if self.note:
            data["note"] = self.note
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChangelogEntry":
        timestamp = parse_timestamp(data["timestamp"])
        if timestamp is None:
            raise ValueError("changelog entry has no timestamp")
        return cls(
            timestamp=timestamp,
            change_type=ChangeType(data["change_type"]),
            object_type=data["object_type"],
            object_id=data["object_id"],
            snapshot_id=data.get("snapshot_id", ""),
            before=data.get("before"),
            after=data.get("after"),
            field_changes=list(data.get("field_changes") or []),
            note=data.get("note", ""),
            metadata=dict(data.get("metadata") or {}),
        )
