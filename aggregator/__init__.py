"""
Aggregator Module
"""
from .comparators import BY_NAME, get_comparator, invert
from .query_aggregator import QueryAggregator, dedup_items, merge_comparator, merge_items

__all__ = [
    "BY_NAME",
    "QueryAggregator",
    "dedup_items",
    "get_comparator",
    "invert",
    "merge_comparator",
    "merge_items",
]
