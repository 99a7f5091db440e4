"""Tests for the single-item and paginated execution pipelines."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
import pytest

from contrast_mcp.foundation.errors import (
    Err,
    ErrorCode,
    Failure,
    ForbiddenError,
    HttpStatusError,
    Ok,
    ResourceNotFoundError,
    UnauthorizedError,
)
from contrast_mcp.foundation.logging import MemoryRenderer
from contrast_mcp.runtime import (
    NO_RESULTS,
    RESOURCE_NOT_FOUND,
    BaseToolParams,
    ExecutionResult,
    PaginationParams,
    run_paginated,
    run_single,
)
from contrast_mcp.validation import ValidationContext


@dataclass(frozen=True, kw_only=True)
class AppParams(BaseToolParams):
    app_id: str | None = None

    @classmethod
    def of(cls, app_id: str | None, *, note: str | None = None) -> AppParams:
        ctx = ValidationContext()
        value = ctx.string(app_id, "appId").required().get()
        ctx.warn_if(note is not None, note or "")
        return cls(app_id=value, errors=ctx.errors, warnings=ctx.warnings)


def _never(*args: object) -> object:
    raise AssertionError("execute must not run")


# ═════════════════════════════════════════════════════════════════════════════
# run_single
# ═════════════════════════════════════════════════════════════════════════════


def test_single_validation_error_skips_execute() -> None:
    """Blank required appId fails validation without executing."""
    r = run_single("t", lambda: AppParams.of(""), _never)
    assert r.success is False
    assert r.found is False
    assert r.data is None
    assert r.errors == ("appId is required",)


def test_single_validation_error_keeps_warnings() -> None:
    """Warnings recorded during validation survive a validation failure."""
    r = run_single("t", lambda: AppParams.of(None, note="heads up"), _never)
    assert r.warnings == ("heads up",)
    assert r.errors == ("appId is required",)


def test_single_found() -> None:
    """A value is returned as found data with validation warnings and execute warnings."""

    def execute(params: AppParams, warnings: list[str]) -> dict[str, str]:
        warnings.append("from execute")
        return {"id": params.app_id or ""}

    r = run_single("t", lambda: AppParams.of("a1", note="from params"), execute)
    assert r.success and r.found
    assert r.data == {"id": "a1"}
    assert r.warnings == ("from params", "from execute")
    assert r.duration_ms is not None and r.duration_ms >= 0


def test_single_none_is_not_found() -> None:
    """None from execute is a successful not-found."""
    r = run_single("t", lambda: AppParams.of("a1"), lambda p, w: None)
    assert r.success is True
    assert r.found is False
    assert r.warnings == (RESOURCE_NOT_FOUND,)


@pytest.mark.parametrize("exc,message", [
    (UnauthorizedError("/x"), "Authentication failed. Check API credentials."),
    (ForbiddenError("/x"), "Access denied. User lacks permission for this resource."),
    (ResourceNotFoundError("application a1"), "Resource not found: application a1"),
    (HttpStatusError("/x", status=429), "Rate limit exceeded. Retry later."),
    (HttpStatusError("/x", status=503), "Contrast API error. Try again later."),
    (HttpStatusError("/x", status=418), "API error (HTTP 418)"),
    (RuntimeError("kaboom"), "Internal error: kaboom"),
    (KeyError(), "Internal error: KeyError"),
])
def test_single_exception_table(exc: Exception, message: str) -> None:
    """Exceptions from execute are mapped to the fixed messages."""

    def execute(params: AppParams, warnings: list[str]) -> object:
        raise exc

    r = run_single("t", lambda: AppParams.of("a1"), execute)
    assert r.success is False
    assert r.errors == (message,)


def test_single_network_error_message() -> None:
    """Transport errors name the host setting."""

    def execute(params: AppParams, warnings: list[str]) -> object:
        raise httpx.ConnectError("connection refused")

    r = run_single("t", lambda: AppParams.of("a1"), execute)
    assert r.errors[0].startswith("Network error connecting to Contrast server: connection refused.")
    assert "CONTRAST_HOST_NAME" in r.errors[0]


def test_single_exception_keeps_prior_warnings() -> None:
    """Warnings appended before a failure remain on the error response."""

    def execute(params: AppParams, warnings: list[str]) -> object:
        warnings.append("partial")
        raise RuntimeError("late failure")

    r = run_single("t", lambda: AppParams.of("a1", note="early"), execute)
    assert r.warnings == ("early", "partial")
    assert r.errors == ("Internal error: late failure",)


def test_single_accepts_result_values() -> None:
    """Ok unwraps to data; Err(Failure) becomes an error response."""
    ok = run_single("t", lambda: AppParams.of("a1"), lambda p, w: Ok("v"))
    assert ok.data == "v"

    err = run_single("t", lambda: AppParams.of("a1"),
                     lambda p, w: Err(Failure(code=ErrorCode.NOT_FOUND, detail="app a1")))
    assert err.errors == ("Resource not found: app a1",)

    none = run_single("t", lambda: AppParams.of("a1"), lambda p, w: Ok(None))
    assert none.found is False and none.success is True


def test_single_params_factory_exception() -> None:
    """An exception while building params is categorized like an execute failure."""

    def factory() -> AppParams:
        raise RuntimeError("bad factory")

    r = run_single("t", factory, _never)
    assert r.errors == ("Internal error: bad factory",)


# ═════════════════════════════════════════════════════════════════════════════
# run_paginated
# ═════════════════════════════════════════════════════════════════════════════


def test_paginated_zero_results_warning() -> None:
    """Zero items with a known total of zero succeeds with the no-results warning."""
    r = run_paginated("t", 1, 10, lambda: AppParams.of("a1"), lambda p, pg, w: ExecutionResult.of([], 0))
    assert r.success is True
    assert r.items == ()
    assert NO_RESULTS in r.warnings
    assert r.has_more_pages is False


def test_paginated_pagination_warnings_lead() -> None:
    """Pagination corrections come before parameter warnings."""
    r = run_paginated("t", 0, 500, lambda: AppParams.of("a1", note="param"),
                      lambda p, pg, w: ExecutionResult.of(["x"], 1))
    assert r.warnings == (
        "Invalid page number 0, using page 1",
        "Requested pageSize 500 exceeds maximum 100, capped to 100",
        "param",
    )
    assert (r.page, r.page_size) == (1, 100)


def test_paginated_passes_window_to_execute() -> None:
    """Execute receives the normalized window and its items are echoed back."""
    seen: list[PaginationParams] = []

    def execute(params: AppParams, pagination: PaginationParams, warnings: list[str]) -> ExecutionResult[int]:
        seen.append(pagination)
        return ExecutionResult.of(range(pagination.offset, pagination.offset + pagination.limit), 100)

    r = run_paginated("t", 3, 5, lambda: AppParams.of("a1"), execute)
    assert seen[0].offset == 10
    assert r.items == (10, 11, 12, 13, 14)
    assert r.total_items == 100
    assert r.has_more_pages is True


def test_paginated_validation_error_echoes_pagination() -> None:
    """Validation failures still report the normalized page and size."""
    r = run_paginated("t", 2, 20, lambda: AppParams.of(" "), _never)
    assert r.success is False
    assert (r.page, r.page_size) == (2, 20)
    assert r.errors == ("appId is required",)


def test_paginated_failure_keeps_warnings() -> None:
    """Upstream failures keep pagination warnings."""

    def execute(params: AppParams, pagination: PaginationParams, warnings: list[str]) -> ExecutionResult[str]:
        raise UnauthorizedError("/traces")

    r = run_paginated("t", -1, None, lambda: AppParams.of("a1"), execute)
    assert r.errors == ("Authentication failed. Check API credentials.",)
    assert r.warnings == ("Invalid page number -1, using page 1",)


def test_paginated_err_result() -> None:
    """Err results are rendered through the failure table."""
    r = run_paginated("t", 1, 10, lambda: AppParams.of("a1"),
                      lambda p, pg, w: Err(Failure.from_status(500, "/x")))
    assert r.errors == ("Contrast API error. Try again later.",)


def test_paginated_rejects_wrong_return_type() -> None:
    """A non-ExecutionResult return becomes an internal error response that keeps warnings."""
    r = run_paginated("t", 0, 10, lambda: AppParams.of("a1"), lambda p, pg, w: ["a"])
    assert r.success is False
    assert r.errors[0].startswith("Internal error:")
    assert "got list" in r.errors[0]
    assert r.warnings == ("Invalid page number 0, using page 1",)
    assert (r.page, r.page_size) == (1, 10)


# ═════════════════════════════════════════════════════════════════════════════
# Logging
# ═════════════════════════════════════════════════════════════════════════════


def test_logs_completion_with_request_id(logs: MemoryRenderer) -> None:
    """Each invocation logs its tool name, an 8-char request id and the duration."""
    run_single("get_thing", lambda: AppParams.of("a1"), lambda p, w: "v")
    entry = next(e for e in logs.entries if e.event == "tool completed")
    assert entry.context["tool"] == "get_thing"
    assert len(entry.context["request_id"]) == 8
    assert entry.context["found"] is True
    assert "duration_ms" in entry.context


def test_logs_validation_and_internal_failures(logs: MemoryRenderer) -> None:
    """Validation failures log at warning; unexpected exceptions log with a traceback."""
    run_single("t", lambda: AppParams.of(""), _never)
    assert "validation failed" in logs.events("warning")

    def execute(params: AppParams, warnings: list[str]) -> object:
        raise RuntimeError("kaboom")

    run_single("t", lambda: AppParams.of("a1"), execute)
    failures = [e for e in logs.entries if e.event == "tool failed unexpectedly"]
    assert failures and "RuntimeError" in failures[0].context["exc_info"]
    assert "tool failed" in logs.events("error")
