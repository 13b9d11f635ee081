"""Client grouping helpers."""

from .grouper import GroupingResult, assign_abc_categories, detect_channel, group_clients, resolve_rows

__all__ = [
    "GroupingResult",
    "assign_abc_categories",
    "detect_channel",
    "group_clients",
    "resolve_rows",
]
