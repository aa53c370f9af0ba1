"""
Append-only change history.
"""

from .changelog import CHANGELOG_FILENAME, ChangeLog, HistoryStatistics, TimeRange

__all__ = [
    "CHANGELOG_FILENAME",
    "ChangeLog",
    "HistoryStatistics",
    "TimeRange",
]
