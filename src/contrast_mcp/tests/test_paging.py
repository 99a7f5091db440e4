"""Tests for two-stage pagination and multi-page draining."""

from __future__ import annotations

import pytest

from contrast_mcp.foundation.errors import ErrorCode, HttpStatusError, UnauthorizedError
from contrast_mcp.runtime import (
    PaginationParams,
    fetch_all_pages,
    filter_and_paginate,
    has_more_pages,
    paginate_in_memory,
)

LETTERS = ["A", "B", "C", "D", "E"]


def _keep_b_d(item: str) -> bool:
    return item in {"B", "D"}


# ═════════════════════════════════════════════════════════════════════════════
# In-memory filtering
# ═════════════════════════════════════════════════════════════════════════════


def test_filter_then_paginate_first_page() -> None:
    """Page 1 of the filtered view holds the first match and reports more."""
    p = PaginationParams.of(1, 1)
    result = filter_and_paginate(LETTERS, _keep_b_d, p)
    assert result.items == ("B",)
    assert result.total_items == 2
    assert has_more_pages(result, p) is True


def test_filter_then_paginate_last_page() -> None:
    """Page 2 holds the second match and reports no more pages."""
    p = PaginationParams.of(2, 1)
    result = filter_and_paginate(LETTERS, _keep_b_d, p)
    assert result.items == ("D",)
    assert has_more_pages(result, p) is False


def test_paginate_beyond_end_is_empty() -> None:
    """An offset past the filtered list yields no items but keeps the total."""
    result = paginate_in_memory(["a", "b"], PaginationParams.of(3, 5))
    assert result.items == ()
    assert result.total_items == 2


# ═════════════════════════════════════════════════════════════════════════════
# fetch_all_pages
# ═════════════════════════════════════════════════════════════════════════════


class Source:
    """Offset-paged list that records the offsets requested."""

    def __init__(self, items: list[int], *, report_total: bool = True,
                 fail_at: dict[int, Exception] | None = None) -> None:
        self.items = items
        self.report_total = report_total
        self.fail_at = fail_at or {}
        self.offsets: list[int] = []

    def __call__(self, offset: int, limit: int) -> tuple[list[int], int | None]:
        self.offsets.append(offset)
        if offset in self.fail_at:
            raise self.fail_at[offset]
        return self.items[offset:offset + limit], len(self.items) if self.report_total else None


def test_drains_until_total() -> None:
    """Stops once the reported total is reached, even on a full page."""
    source = Source(list(range(20)))
    outcome = fetch_all_pages(source, page_size=10)
    assert outcome.items == tuple(range(20))
    assert source.offsets == [0, 10]
    assert not outcome.truncated and not outcome.partial


def test_drains_until_short_page_without_total() -> None:
    """Without a total, a short page ends the drain."""
    source = Source(list(range(25)), report_total=False)
    outcome = fetch_all_pages(source, page_size=10)
    assert len(outcome.items) == 25
    assert source.offsets == [0, 10, 20]


def test_keep_filters_in_order() -> None:
    """Only kept items are returned, in upstream order."""
    outcome = fetch_all_pages(Source(list(range(30))), keep=lambda i: i % 7 == 0, page_size=10)
    assert outcome.items == (0, 7, 14, 21, 28)


def test_page_cap_truncates() -> None:
    """Hitting max_pages with more data upstream marks the outcome truncated."""
    source = Source(list(range(100)))
    outcome = fetch_all_pages(source, page_size=10, max_pages=3)
    assert len(outcome.items) == 30
    assert outcome.truncated is True


def test_item_cap_truncates() -> None:
    """The item cap applies to kept items and marks truncation when more matched."""
    outcome = fetch_all_pages(Source(list(range(100))), page_size=10, max_items=15)
    assert outcome.items == tuple(range(15))
    assert outcome.truncated is True


def test_item_cap_exactly_exhausted_is_not_truncated() -> None:
    """Filling the cap with the very last upstream item is a complete result."""
    outcome = fetch_all_pages(Source(list(range(20))), page_size=10, max_items=20)
    assert len(outcome.items) == 20
    assert outcome.truncated is False


def test_later_page_failure_is_partial() -> None:
    """A failure after the first page returns what was kept with the failure attached."""
    source = Source(list(range(50)), fail_at={20: HttpStatusError("/traces", status=502)})
    outcome = fetch_all_pages(source, page_size=10)
    assert outcome.items == tuple(range(20))
    assert outcome.partial is True
    assert outcome.failure is not None and outcome.failure.code is ErrorCode.UPSTREAM_ERROR


def test_first_page_failure_propagates() -> None:
    """A failure on the first page is raised to the caller."""
    source = Source([1, 2, 3], fail_at={0: UnauthorizedError("/traces")})
    with pytest.raises(UnauthorizedError):
        fetch_all_pages(source, page_size=10)


def test_max_items_must_be_positive() -> None:
    """A zero item cap is rejected."""
    with pytest.raises(ValueError):
        fetch_all_pages(Source([]), max_items=0)
