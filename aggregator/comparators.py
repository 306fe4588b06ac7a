"""Named item comparators used to merge results of several queries.

All registry comparators order items descending (largest first), which is
the search endpoint's default ``order=desc``. ``invert`` gives ascending order.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Dict, Optional, TypeVar

from core import Item, SortKey, SortOrder


T = TypeVar("T")

ItemComparator = Callable[[Item, Item], int]


def parse_timestamp_ms(value: str) -> int:
    """ISO-8601 timestamp to milliseconds since epoch, 0 when unparseable."""
    text = str(value or "").strip()
    if not text:
        return 0
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return 0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def invert(compare: Callable[[T, T], int]) -> Callable[[T, T], int]:
    def inverted(a: T, b: T) -> int:
        return compare(a, b) * -1

    return inverted


def compare_by_comments(a: Item, b: Item) -> int:
    return b.comments - a.comments


def compare_by_created(a: Item, b: Item) -> int:
    return parse_timestamp_ms(b.created_at) - parse_timestamp_ms(a.created_at)


def compare_by_updated(a: Item, b: Item) -> int:
    return parse_timestamp_ms(b.updated_at) - parse_timestamp_ms(a.updated_at)


BY_NAME: Dict[SortKey, ItemComparator] = {
    SortKey.COMMENTS: compare_by_comments,
    SortKey.CREATED: compare_by_created,
    SortKey.UPDATED: compare_by_updated,
}


def get_comparator(sort: Optional[SortKey], order: SortOrder = SortOrder.DESC) -> Optional[ItemComparator]:
    """Comparator for ``sort`` in ``order``; None when there is no such key."""
    if sort is None:
        return None
    compare = BY_NAME.get(SortKey(sort))
    if compare is None:
        return None
    if SortOrder(order) == SortOrder.ASC:
        return invert(compare)
    return compare
