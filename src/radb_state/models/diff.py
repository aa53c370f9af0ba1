"""
Diff result types.

DiffItem is a tagged variant holding either a route or a contact; every
site that renders or logs one switches on ``kind`` and fails loudly on an
unknown tag.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Union

from .contact import Contact
from .route import RouteObject


class ObjectType(str, Enum):
    """Kind of registry object carried by a diff or change."""
    ROUTE = "route"
    CONTACT = "contact"


@dataclass(frozen=True)
class DiffItem:
    """
    A route or a contact, tagged with its kind.

    Build with DiffItem.of_route() / DiffItem.of_contact().
    """
    kind: ObjectType
    value: Union[RouteObject, Contact]

    @classmethod
    def of_route(cls, route: RouteObject) -> "DiffItem":
        return cls(kind=ObjectType.ROUTE, value=route)

    @classmethod
    def of_contact(cls, contact: Contact) -> "DiffItem":
        return cls(kind=ObjectType.CONTACT, value=contact)

    @property
    def object_type(self) -> str:
        return self.kind.value

    @property
    def object_id(self) -> str:
        return self.value.id

    def to_dict(self) -> Dict[str, Any]:
        return self.value.to_dict()

    @classmethod
    def from_payload(cls, object_type: str, payload: Dict[str, Any]) -> "DiffItem":
        """Rebuild a typed item from its serialized form."""
        kind = ObjectType(object_type)
        if kind is ObjectType.ROUTE:
            return cls.of_route(RouteObject.from_dict(payload))
        if kind is ObjectType.CONTACT:
            return cls.of_contact(Contact.from_dict(payload))
        raise AssertionError(f"unhandled object type: {kind}")


@dataclass(frozen=True)
class FieldChange:
    """One field that differs between two versions of an object."""
    field: str
    old_value: Any
    new_value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "old_value": self.old_value, "new_value": self.new_value}


@dataclass
class ModifiedItem:
    """An object present on both sides whose compared fields differ."""
    id: str
    object_type: str
    before: DiffItem
    after: DiffItem
    field_changes: List[FieldChange] = field(default_factory=list)

    @property
    def field_names(self) -> List[str]:
        return [fc.field for fc in self.field_changes]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "object_type": self.object_type,
            "before": self.before.to_dict(),
            "after": self.after.to_dict(),
            "field_changes": [fc.to_dict() for fc in self.field_changes],
        }


@dataclass
class TypeSummary:
    added: int = 0
    removed: int = 0
    modified: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"added": self.added, "removed": self.removed, "modified": self.modified}


@dataclass
class DiffSummary:
    added_count: int = 0
    removed_count: int = 0
    modified_count: int = 0
    total_changes: int = 0
    by_type: Dict[str, TypeSummary] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added_count": self.added_count,
            "removed_count": self.removed_count,
            "modified_count": self.modified_count,
            "total_changes": self.total_changes,
            "by_type": {k: v.to_dict() for k, v in self.by_type.items()},
        }


@dataclass
class DiffResult:
    """
    Differences between two snapshots.

    Attributes:
        added: Items present only in the target snapshot
        removed: Items present only in the source snapshot
        modified: Items present in both with differing fields
        summary: Counts; recomputed by compute_summary()
    """
    added: List[DiffItem] = field(default_factory=list)
    removed: List[DiffItem] = field(default_factory=list)
    modified: List[ModifiedItem] = field(default_factory=list)
    summary: DiffSummary = field(default_factory=DiffSummary)

    def is_empty(self) -> bool:
        return not self.added and not self.removed and not self.modified

    def compute_summary(self) -> DiffSummary:
        by_type: Dict[str, TypeSummary] = {}

        def bucket(object_type: str) -> TypeSummary:
            return by_type.setdefault(object_type, TypeSummary())

        for item in self.added:
            bucket(item.object_type).added += 1
        for item in self.removed:
            bucket(item.object_type).removed += 1
        for item in self.modified:
            bucket(item.object_type).modified += 1

        added, removed, modified = len(self.added), len(self.removed), len(self.modified)
        self.summary = DiffSummary(
            added_count=added,
            removed_count=removed,
            modified_count=modified,
            total_changes=added + removed + modified,
            by_type=by_type,
        )
        return self.summary

    def added_ids(self) -> List[str]:
        return [item.object_id for item in self.added]

    def removed_ids(self) -> List[str]:
        return [item.object_id for item in self.removed]

    def modified_ids(self) -> List[str]:
        return [item.id for item in self.modified]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added": [item.to_dict() for item in self.added],
            "removed": [item.to_dict() for item in self.removed],
            "modified": [item.to_dict() for item in self.modified],
            "summary": self.summary.to_dict(),
        }
