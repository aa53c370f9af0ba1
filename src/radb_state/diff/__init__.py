"""
Diff engine for comparing two snapshots.
"""

from .engine import (
    DiffEngine,
    compute_diff,
    describe_item,
    diff_contacts,
    diff_routes,
    diff_to_change_set,
    format_diff,
)

__all__ = [
    "DiffEngine",
    "compute_diff",
    "describe_item",
    "diff_contacts",
    "diff_routes",
    "diff_to_change_set",
    "format_diff",
]
