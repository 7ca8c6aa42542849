from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from ...schema.pagination import PaginationWindow


def get_pagination_result(
    window: Optional[PaginationWindow],
    items: Sequence[Mapping[str, Any]],
    key: str = "id",
) -> List[Mapping[str, Any]]:
    """Cursor page over `items`; an unknown cursor yields an empty page."""
    window = window or PaginationWindow()
    if window.starting_after is not None:
        idx = _index_of(items, key, window.starting_after)
        if idx is None:
            return []
        return list(items[idx + 1 : idx + 1 + window.limit])
    if window.ending_before is not None:
        idx = _index_of(items, key, window.ending_before)
        if idx is None:
            return []
        return list(items[max(0, idx - window.limit) : idx])
    return list(items[: window.limit])


def _index_of(items: Sequence[Mapping[str, Any]], key: str, value: str) -> Optional[int]:
    for i, item in enumerate(items):
        if item.get(key) == value:
            return i
    return None
