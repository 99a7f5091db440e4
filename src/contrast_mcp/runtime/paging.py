"""Two-stage pagination for filters the upstream API cannot apply.

Stage one drains the upstream source (with every server-side filter already
pushed down). Stage two filters in memory, preserving order, and cuts the
requested page out of the filtered list. The reported total is the filtered
count, so ``has_more_pages`` describes the filtered view.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from contrast_mcp.foundation.errors import Failure, classify_exception

from .envelope import ExecutionResult
from .pagination import PaginationParams

T = TypeVar("T")

logger = logging.getLogger("contrast_mcp.paging")


def paginate_in_memory(items: Sequence[T], pagination: PaginationParams) -> ExecutionResult[T]:
    """Slice one page out of a fully materialized list.

    Example:
        >>> paginate_in_memory(["B", "D"], PaginationParams.of(2, 1))
        ExecutionResult(items=('D',), total_items=2)
    """
    start, end = pagination.slice_bounds(len(items))
    return ExecutionResult.of(items[start:end], len(items))


def filter_and_paginate(
    items: Iterable[T],
    predicate: Callable[[T], bool],
    pagination: PaginationParams,
) -> ExecutionResult[T]:
    """Keep matching items in their original order, then paginate the result."""
    return paginate_in_memory([item for item in items if predicate(item)], pagination)


@dataclass(frozen=True, slots=True)
class FetchOutcome(Generic[T]):
    """Items drained from an offset-paged source.

    Attributes:
        items: Everything fetched, in upstream order
        truncated: Stopped at the page or item cap with more data available
        failure: Error that interrupted a fetch after at least one page succeeded
    """

    items: tuple[T, ...]
    truncated: bool = False
    failure: Failure | None = None

    @property
    def partial(self) -> bool:
        return self.failure is not None


def fetch_all_pages(
    fetch_page: Callable[[int, int], tuple[Sequence[T], int | None]],
    *,
    keep: Callable[[T], bool] | None = None,
    page_size: int = 500,
    max_pages: int = 100,
    max_items: int = 50_000,
) -> FetchOutcome[T]:
    """Drain an offset-paged upstream source, optionally keeping only matching items.

    Stops at the first short page, at the reported total, at ``max_pages`` or
    once ``max_items`` items have been kept. A failure on the first page
    propagates; a failure after that returns what was kept with ``failure`` set.

    Args:
        fetch_page: ``(offset, limit) -> (items, total or None)``
        keep: In-memory filter applied to each fetched item, in order
        page_size: Items requested per upstream call
        max_pages: Upper bound on upstream calls
        max_items: Upper bound on items kept

    Returns:
        FetchOutcome with the kept items and whether the drain was cut short
    """
    if max_items < 1:
        raise ValueError(f"max_items must be at least 1, got {max_items}")
    items: list[T] = []
    for page_index in range(max_pages):
        offset = page_index * page_size
        try:
            batch, total = fetch_page(offset, page_size)
        except Exception as e:
            if page_index == 0:
                raise
            failure = classify_exception(e)
            logger.warning("Fetch interrupted at offset %d with %d items kept: %s", offset, len(items), failure.detail)
            return FetchOutcome(tuple(items), failure=failure)

        matched = [item for item in batch if keep(item)] if keep is not None else list(batch)
        upstream_done = len(batch) < page_size or (total is not None and offset + len(batch) >= total)
        room = max_items - len(items)
        if len(matched) >= room:
            items.extend(matched[:room])
            truncated = len(matched) > room or not upstream_done
            if truncated:
                logger.warning("Fetch stopped at the %d item limit", max_items)
            return FetchOutcome(tuple(items), truncated=truncated)
        items.extend(matched)
        if upstream_done:
            return FetchOutcome(tuple(items))

    logger.warning("Fetch stopped at the %d page limit with %d items kept", max_pages, len(items))
    return FetchOutcome(tuple(items), truncated=True)
