"""
Structural diff between two snapshots.

Each collection is compared through identity-keyed dicts, so a diff is
O(n) in the number of objects. Field-level changes come from explicit
per-entity comparators rather than generic introspection.

Set-like route attributes (mnt_by, member_of, holes) are compared without
regard to order; free-text lines (descr, remarks, address) are compared
positionally.
"""

import logging
from typing import Any, Callable, Iterable, List, Optional

from ..core.exceptions import ValidationError
from ..models import (
    Change,
    ChangeSet,
    ChangeType,
    Contact,
    DiffItem,
    DiffResult,
    FieldChange,
    ModifiedItem,
    ObjectType,
    RouteObject,
    Snapshot,
)

logger = logging.getLogger(__name__)


def _check(changes: List[FieldChange], name: str, old: Any, new: Any) -> None:
    if old != new:
        changes.append(FieldChange(field=name, old_value=_copy(old), new_value=_copy(new)))


def _check_unordered(changes: List[FieldChange], name: str, old: List[str], new: List[str]) -> None:
    if sorted(old) != sorted(new):
        changes.append(FieldChange(field=name, old_value=list(old), new_value=list(new)))


def _copy(value: Any) -> Any:
    return list(value) if isinstance(value, list) else value


def diff_routes(before: RouteObject, after: RouteObject) -> List[FieldChange]:
    """
    Compare two versions of a route object.

    Capture timestamps (created/last_modified) and raw attributes are not
    compared.

    Returns:
        One FieldChange per differing attribute, in declaration order
    """
    changes: List[FieldChange] = []
    _check(changes, "route", before.route, after.route)
    _check(changes, "origin", before.origin, after.origin)
    _check(changes, "descr", before.descr, after.descr)
    _check_unordered(changes, "mnt_by", before.mnt_by, after.mnt_by)
    _check(changes, "source", before.source, after.source)
    _check(changes, "remarks", before.remarks, after.remarks)
    _check_unordered(changes, "member_of", before.member_of, after.member_of)
    _check_unordered(changes, "holes", before.holes, after.holes)
    return changes


def diff_contacts(before: Contact, after: Contact) -> List[FieldChange]:
    """Compare two versions of a contact."""
    changes: List[FieldChange] = []
    _check(changes, "id", before.id, after.id)
    _check(changes, "name", before.name, after.name)
    _check(changes, "email", before.email, after.email)
    _check(changes, "phone", before.phone, after.phone)
    _check(changes, "role", before.role, after.role)
    _check(changes, "organization", before.organization, after.organization)
    _check(changes, "address", before.address, after.address)
    return changes


def _diff_collection(
    result: DiffResult,
    source_items: Optional[Iterable[Any]],
    target_items: Optional[Iterable[Any]],
    wrap: Callable[[Any], DiffItem],
    compare: Callable[[Any, Any], List[FieldChange]],
) -> None:
    if source_items is None and target_items is None:
        return

    # Collection only on one side: nothing to match against
    if source_items is None:
        result.added.extend(wrap(item) for item in target_items)
        return
    if target_items is None:
        result.removed.extend(wrap(item) for item in source_items)
        return

    source_map = {item.id: item for item in source_items}
    target_map = {item.id: item for item in target_items}

    for key, after in target_map.items():
        before = source_map.get(key)
        if before is None:
            result.added.append(wrap(after))
            continue
        field_changes = compare(before, after)
        if field_changes:
            after_item = wrap(after)
            result.modified.append(
                ModifiedItem(
                    id=key,
                    object_type=after_item.object_type,
                    before=wrap(before),
                    after=after_item,
                    field_changes=field_changes,
                )
            )

    for key, before in source_map.items():
        if key not in target_map:
            result.removed.append(wrap(before))


def compute_diff(from_snapshot: Optional[Snapshot], to_snapshot: Optional[Snapshot]) -> DiffResult:
    """
    Compute additions, removals and modifications between two snapshots.

    Routes are reported before contacts. Added and modified items follow
    the target snapshot's order; removed items follow the source's.

    Raises:
        ValidationError: If either snapshot is None
    """
    if from_snapshot is None or to_snapshot is None:
        raise ValidationError("both snapshots must be provided to compute a diff")

    result = DiffResult()

    _diff_collection(
        result,
        from_snapshot.routes.routes if from_snapshot.routes is not None else None,
        to_snapshot.routes.routes if to_snapshot.routes is not None else None,
        DiffItem.of_route,
        diff_routes,
    )
    _diff_collection(
        result,
        from_snapshot.contacts.contacts if from_snapshot.contacts is not None else None,
        to_snapshot.contacts.contacts if to_snapshot.contacts is not None else None,
        DiffItem.of_contact,
        diff_contacts,
    )

    result.compute_summary()
    return result


def diff_to_change_set(diff: DiffResult, from_id: str, to_id: str) -> ChangeSet:
    """
    Flatten a DiffResult into a ChangeSet for the changelog.

    Every change shares the change set's timestamp. Modified changes carry
    the names of the differing fields in details['field_changes'].
    """
    change_set = ChangeSet(from_snapshot=from_id, to_snapshot=to_id)

    for item in diff.added:
        change_set.add_change(Change(
            type=ChangeType.ADDED,
            object_type=item.object_type,
            object_id=item.object_id,
            timestamp=change_set.timestamp,
            after=item,
        ))

    for item in diff.removed:
        change_set.add_change(Change(
            type=ChangeType.REMOVED,
            object_type=item.object_type,
            object_id=item.object_id,
            timestamp=change_set.timestamp,
            before=item,
        ))

    for item in diff.modified:
        change_set.add_change(Change(
            type=ChangeType.MODIFIED,
            object_type=item.object_type,
            object_id=item.id,
            timestamp=change_set.timestamp,
            before=item.before,
            after=item.after,
            details={"field_changes": item.field_names},
        ))

    return change_set


def describe_item(item: DiffItem) -> str:
    """One-line label for a diff item."""
    if item.kind is ObjectType.ROUTE:
        return f"route {item.value.route} {item.value.origin}"
    if item.kind is ObjectType.CONTACT:
        label = f"contact {item.value.id}"
        return f"{label} ({item.value.name})" if item.value.name else label
    raise AssertionError(f"unhandled object type: {item.kind}")


def format_diff(diff: DiffResult) -> str:
    """Human-readable rendering of a diff."""
    summary = diff.summary
    lines = [
        "Diff Summary",
        f"  Added: {summary.added_count}",
        f"  Removed: {summary.removed_count}",
        f"  Modified: {summary.modified_count}",
        f"  Total: {summary.total_changes}",
    ]
    if diff.added:
        lines.append("")
        lines.extend(f"  + {describe_item(item)}" for item in diff.added)
    if diff.removed:
        lines.append("")
        lines.extend(f"  - {describe_item(item)}" for item in diff.removed)
    if diff.modified:
        lines.append("")
        for item in diff.modified:
            lines.append(f"  ~ {describe_item(item.after)}: {', '.join(item.field_names)}")
    return "\n".join(lines)


class DiffEngine:
    """
    Stateless facade over the diff functions.

    Holds no mutable state, so one instance can serve concurrent callers.
    """

    def compute(self, from_snapshot: Snapshot, to_snapshot: Snapshot) -> DiffResult:
        result = compute_diff(from_snapshot, to_snapshot)
        logger.debug(
            f"Computed {result.summary.total_changes} changes between "
            f"{from_snapshot.id} and {to_snapshot.id}"
        )
        return result

    def to_change_set(self, diff: DiffResult, from_id: str, to_id: str) -> ChangeSet:
        return diff_to_change_set(diff, from_id, to_id)

    def compute_changes(self, from_snapshot: Snapshot, to_snapshot: Snapshot) -> ChangeSet:
        """Diff two snapshots straight into a ChangeSet."""
        diff = self.compute(from_snapshot, to_snapshot)
        return diff_to_change_set(diff, from_snapshot.id, to_snapshot.id)

    def format(self, diff: DiffResult) -> str:
        return format_diff(diff)
