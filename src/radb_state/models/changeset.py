"""
Transient change records built while converting a diff for the changelog.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..core.utils import utc_now
from .diff import DiffItem


class ChangeType(str, Enum):
    """How an object changed between two snapshots."""
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


@dataclass
class Change:
    """
    A single object-level change.

    Attributes:
        type: ChangeType
        object_type: 'route' or 'contact'
        object_id: Identity key of the object
        timestamp: When the change was recorded
        before: Object before the change (None for additions)
        after: Object after the change (None for removals)
        details: Extra data, e.g. {'field_changes': [...]} for modifications
    """
    type: ChangeType
    object_type: str
    object_id: str
    timestamp: datetime = field(default_factory=utc_now)
    before: Optional[DiffItem] = None
    after: Optional[DiffItem] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChangeSet:
    """Ordered changes between two snapshots, with per-type counts."""
    from_snapshot: str
    to_snapshot: str
    timestamp: datetime = field(default_factory=utc_now)
    changes: List[Change] = field(default_factory=list)
    summary: Dict[ChangeType, int] = field(default_factory=dict)

    def add_change(self, change: Change) -> None:
        self.changes.append(change)
        change_type = ChangeType(change.type)
        self.summary[change_type] = self.summary.get(change_type, 0) + 1

    def is_empty(self) -> bool:
        return not self.changes

    def __len__(self) -> int:
        return len(self.changes)
