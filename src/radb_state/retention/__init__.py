"""
Retention-based snapshot cleanup.
"""

from .cleanup import (
    DEFAULT_KEEP_BY_TYPE,
    CleanupOptions,
    CleanupResult,
    RetentionManager,
    select_by_age,
    select_by_count,
    select_by_type,
)

__all__ = [
    "DEFAULT_KEEP_BY_TYPE",
    "CleanupOptions",
    "CleanupResult",
    "RetentionManager",
    "select_by_age",
    "select_by_count",
    "select_by_type",
]
