"""Tests for response envelopes."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from contrast_mcp.runtime import NO_RESULTS, RESOURCE_NOT_FOUND, ExecutionResult, PaginatedToolResponse, ToolResponse


def test_success_derived_from_errors() -> None:
    """success is True exactly when there are no errors."""
    assert ToolResponse.ok({"a": 1}).success is True
    assert ToolResponse.error("boom").success is False
    assert PaginatedToolResponse.error(1, 10, ["x", "y"]).success is False


def test_not_found_is_not_an_error() -> None:
    """Not found has no errors, found=False and the not-found warning last."""
    r = ToolResponse.not_found(warnings=["defaulted"])
    assert r.success is True
    assert r.found is False
    assert r.data is None
    assert r.warnings == ("defaulted", RESOURCE_NOT_FOUND)


def test_none_warnings_become_empty() -> None:
    """None collections normalize to empty tuples."""
    r = PaginatedToolResponse(items=None, warnings=None, errors=None)
    assert r.items == ()
    assert r.warnings == ()
    assert r.errors == ()


def test_serializes_camel_case() -> None:
    """Dumps by alias use camelCase keys and include the computed success flag."""
    dumped = PaginatedToolResponse.ok(["a"], 2, 1, 5, True, duration_ms=3).model_dump(mode="json", by_alias=True)
    assert dumped == {
        "errors": [],
        "warnings": [],
        "durationMs": 3,
        "items": ["a"],
        "page": 2,
        "pageSize": 1,
        "totalItems": 5,
        "hasMorePages": True,
        "success": True,
    }


def test_empty_page_has_no_results_warning() -> None:
    """empty() reports zero items and the no-results warning."""
    r = PaginatedToolResponse.empty(1, 50)
    assert r.total_items == 0
    assert r.has_more_pages is False
    assert r.warnings == (NO_RESULTS,)


def test_envelopes_are_frozen() -> None:
    """Envelopes cannot be mutated after construction."""
    r = ToolResponse.ok(1)
    with pytest.raises(ValidationError):
        r.found = False  # type: ignore[misc]


def test_execution_result_copies_items() -> None:
    """ExecutionResult stores a tuple snapshot of the items."""
    items = ["a", "b"]
    result = ExecutionResult.of(items, 2)
    items.append("c")
    assert result.items == ("a", "b")
    assert ExecutionResult.empty().total_items == 0
    assert ExecutionResult.of(None).items == ()
