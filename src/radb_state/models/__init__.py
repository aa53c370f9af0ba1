"""
Data models for snapshots, diffs and change history.
"""

from .route import RouteObject, RouteList
from .contact import Contact, ContactList, ContactRole
from .snapshot import FORMAT_VERSION, Snapshot, SnapshotType
from .diff import (
    DiffItem,
    DiffResult,
    DiffSummary,
    FieldChange,
    ModifiedItem,
    ObjectType,
    TypeSummary,
)
from .changeset import Change, ChangeSet, ChangeType
from .changelog import ChangelogEntry

__all__ = [
    "RouteObject",
    "RouteList",
    "Contact",
    "ContactList",
    "ContactRole",
    "FORMAT_VERSION",
    "Snapshot",
    "SnapshotType",
    "DiffItem",
    "DiffResult",
    "DiffSummary",
    "FieldChange",
    "ModifiedItem",
    "ObjectType",
    "TypeSummary",
    "Change",
    "ChangeSet",
    "ChangeType",
    "ChangelogEntry",
]
