"""
Query Aggregator
Runs every query of a cell, then merges, sorts and deduplicates the results
"""
from __future__ import annotations

from functools import cmp_to_key
import logging
import time
from typing import Iterable, List, Optional, Sequence

from core import CancellationToken, ExecutionResult, Item, QueryDescriptor
from sources.github_search import PaginatedFetcher
from utils.exceptions import FetchError

from .comparators import ItemComparator, get_comparator


logger = logging.getLogger(__name__)


def merge_comparator(descriptors: Sequence[QueryDescriptor]) -> Optional[ItemComparator]:
    """
    Comparator shared by all descriptors.

    Only defined for two or more descriptors that agree on both sort key and
    order; otherwise results keep their fetch order.
    """
    if len(descriptors) < 2:
        return None
    first = descriptors[0]
    if first.sort is None:
        return None
    if any(item.sort != first.sort or item.order != first.order for item in descriptors[1:]):
        return None
    return get_comparator(first.sort, first.order)


def dedup_items(items: Iterable[Item]) -> List[Item]:
    """Keep the first occurrence of every item id."""
    unique: List[Item] = []
    seen = set()
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


def merge_items(items: Sequence[Item], comparator: Optional[ItemComparator] = None) -> List[Item]:
    """Stable sort by ``comparator`` (when given) followed by dedup."""
    ordered = list(items)
    if comparator is not None:
        ordered = sorted(ordered, key=cmp_to_key(comparator))
    return dedup_items(ordered)


class QueryAggregator:
    """
    Sequential multi-query aggregation for a single cell

    All descriptors share one cancellation token and one elapsed-time
    measurement.
    """

    def __init__(self, fetcher: PaginatedFetcher):
        self._fetcher = fetcher

    async def aggregate(
        self,
        descriptors: Sequence[QueryDescriptor],
        token: CancellationToken,
    ) -> Optional[ExecutionResult]:
        """
        Fetch and merge all descriptors

        Args:
            descriptors: queries of one cell, in cell order
            token: cancellation token shared by all fetches

        Returns:
            The merged result, or None when cancellation was requested

        Raises:
            FetchError: a query failed and no cancellation was requested
        """
        started = time.monotonic()
        all_items: List[Item] = []
        total_count = 0

        try:
            for descriptor in descriptors:
                if token.is_cancellation_requested:
                    break
                fetched = await self._fetcher.fetch(descriptor, token)
                all_items.extend(fetched.items)
                total_count += fetched.total_count
        except FetchError:
            if token.is_cancellation_requested:
                logger.info("fetch error after cancellation ignored")
                return None
            raise

        if token.is_cancellation_requested:
            logger.info("aggregation cancelled after %s items", len(all_items))
            return None

        items = merge_items(all_items, merge_comparator(descriptors))
        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "aggregated queries=%s fetched=%s unique=%s total=%s elapsed_ms=%s",
            len(descriptors),
            len(all_items),
            len(items),
            total_count,
            elapsed_ms,
        )
        return ExecutionResult(items=items, total_count=total_count, elapsed_ms=elapsed_ms)
