"""Execution pipelines shared by every tool.

Two runners, one per response shape:

    run_single:    parse params -> validate -> execute -> found / not found
    run_paginated: normalize pagination -> parse params -> validate -> execute -> has-more

The tool supplies only a params factory and an ``execute`` callback. The runner
owns everything else: the request id, timing, logging, the single validation
checkpoint, and mapping exceptions (or ``Err(Failure)`` results) to the fixed
error messages. Warnings recorded before a failure are kept on the response.

Example:
    >>> def execute(params: GetAppParams, warnings: list[str]) -> Application | None:
    ...     return lookup(params.app_name)
    >>> run_single("get_application", lambda: GetAppParams.of(raw_name), execute)
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol, TypeVar, runtime_checkable

from contrast_mcp.foundation.errors import ErrorCode, Failure, Result, classify_exception
from contrast_mcp.foundation.logging import BoundLogger, get_logger

from .envelope import NO_RESULTS, RESOURCE_NOT_FOUND, ExecutionResult, PaginatedToolResponse, ToolResponse
from .pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PaginationParams

P = TypeVar("P", bound="ToolParams")
R = TypeVar("R")

_log = get_logger("contrast_mcp.pipeline")


@runtime_checkable
class ToolParams(Protocol):
    """Validated tool arguments as seen by the pipeline."""

    @property
    def is_valid(self) -> bool: ...
    @property
    def errors(self) -> Sequence[str]: ...
    @property
    def warnings(self) -> Sequence[str]: ...


@dataclass(frozen=True, kw_only=True)
class BaseToolParams:
    """Base for tool parameter objects built from a ValidationContext.

    Subclasses add their resolved fields and a factory that runs the specs:

        >>> @dataclass(frozen=True, kw_only=True)
        ... class GetAppParams(BaseToolParams):
        ...     app_name: str | None = None
        ...
        ...     @classmethod
        ...     def of(cls, app_name: str | None) -> GetAppParams:
        ...         ctx = ValidationContext()
        ...         name = ctx.string(app_name, "appName").required().get()
        ...         return cls(app_name=name, errors=ctx.errors, warnings=ctx.warnings)
    """

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors


SingleExecute = Callable[[P, list[str]], "R | None | Result[R | None, Failure]"]
PageExecute = Callable[[P, PaginationParams, list[str]], "ExecutionResult[R] | Result[ExecutionResult[R], Failure]"]


# ═══════════════════════════════════════════════════════════════════════════════
# Runners
# ═══════════════════════════════════════════════════════════════════════════════


def run_single(
    tool_name: str,
    params_factory: Callable[[], P],
    execute: SingleExecute[P, R],
    *,
    logger: BoundLogger | None = None,
) -> ToolResponse[R]:
    """Run a single-item tool.

    A ``None`` result is a successful "not found" (``found=False``, no errors).

    Args:
        tool_name: Name used in logs
        params_factory: Builds and validates the tool's parameters
        execute: ``(params, warnings) -> item | None | Result``; may append to warnings
        logger: Overrides the pipeline logger

    Returns:
        ToolResponse with data, errors, warnings and duration
    """
    log, started = _bind(logger, tool_name), time.perf_counter()
    warnings: list[str] = []
    try:
        params = params_factory()
        warnings.extend(params.warnings)
        if not params.is_valid:
            _log_validation(log, params.errors)
            return ToolResponse.validation_error(params.errors, warnings, duration_ms=_elapsed(started))
        outcome = _settle(execute(params, warnings))
    except Exception as e:
        outcome = _failure_from(log, e)

    duration = _elapsed(started)
    match outcome:
        case Failure() as failure:
            _log_failure(log, failure, duration)
            return ToolResponse.error(failure.render(), warnings, duration_ms=duration)
        case None:
            log.info("tool completed", found=False, duration_ms=duration)
            return ToolResponse.not_found(RESOURCE_NOT_FOUND, warnings, duration_ms=duration)
        case value:
            log.info("tool completed", found=True, duration_ms=duration)
            return ToolResponse.ok(value, warnings, duration_ms=duration)


def run_paginated(
    tool_name: str,
    page: int | None,
    page_size: int | None,
    params_factory: Callable[[], P],
    execute: PageExecute[P, R],
    *,
    max_page_size: int = MAX_PAGE_SIZE,
    default_page_size: int = DEFAULT_PAGE_SIZE,
    logger: BoundLogger | None = None,
) -> PaginatedToolResponse[R]:
    """Run a paginated tool.

    Pagination is normalized first and always succeeds; its corrections lead the
    warning list. ``execute`` receives the normalized window and returns one page
    of items plus the total when the source knows it.

    Args:
        tool_name: Name used in logs
        page: Raw 1-based page number
        page_size: Raw page size
        params_factory: Builds and validates the tool's parameters
        execute: ``(params, pagination, warnings) -> ExecutionResult | Result``
        max_page_size: Tool-specific upper bound for page_size (at most 100)
        default_page_size: Size used when page_size is absent or invalid (capped by max_page_size)
        logger: Overrides the pipeline logger

    Returns:
        PaginatedToolResponse with items, pagination echo, errors, warnings and duration
    """
    log, started = _bind(logger, tool_name), time.perf_counter()
    pagination = PaginationParams.of(page, page_size, max_page_size, default_page_size=default_page_size)
    warnings: list[str] = list(pagination.warnings)
    try:
        params = params_factory()
        warnings.extend(params.warnings)
        if not params.is_valid:
            _log_validation(log, params.errors)
            return PaginatedToolResponse.validation_error(
                pagination.page, pagination.page_size, params.errors, warnings, duration_ms=_elapsed(started))
        outcome = _settle(execute(params, pagination, warnings))
    except Exception as e:
        outcome = _failure_from(log, e)

    duration = _elapsed(started)
    match outcome:
        case Failure() as failure:
            _log_failure(log, failure, duration)
            return PaginatedToolResponse.error(
                pagination.page, pagination.page_size, failure.render(), warnings, duration_ms=duration)
        case ExecutionResult() as result:
            if not result.items and result.total_items == 0:
                warnings.append(NO_RESULTS)
            has_more = has_more_pages(result, pagination)
            log.info("tool completed", items=len(result.items), total_items=result.total_items,
                     has_more_pages=has_more, duration_ms=duration)
            return PaginatedToolResponse.ok(
                result.items, pagination.page, pagination.page_size, result.total_items, has_more,
                warnings, duration_ms=duration)
        case other:
            failure = Failure.internal(
                TypeError(f"{tool_name}: execute must return ExecutionResult, got {type(other).__name__}"))
            _log_failure(log, failure, duration)
            return PaginatedToolResponse.error(
                pagination.page, pagination.page_size, failure.render(), warnings, duration_ms=duration)


def has_more_pages(result: ExecutionResult[object], pagination: PaginationParams) -> bool:
    """Whether another page may exist.

    With a known total this is exact. With an unknown total a full page is taken
    to mean more data may follow, so a final page that happens to be full still
    reports True.
    """
    if result.total_items is not None:
        return pagination.offset + len(result.items) < result.total_items
    return len(result.items) >= pagination.limit


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def _settle(outcome: object) -> object:
    """Unwrap a Result into its value, or into a Failure for Err."""
    if not isinstance(outcome, Result):
        return outcome
    if outcome.is_ok():
        return outcome.unwrap()
    match outcome.unwrap_err():
        case Failure() as failure:
            return failure
        case BaseException() as exc:
            return classify_exception(exc)
        case other:
            return Failure(code=ErrorCode.INTERNAL, detail=str(other))


def _failure_from(log: BoundLogger, exc: Exception) -> Failure:
    failure = classify_exception(exc)
    if failure.code is ErrorCode.INTERNAL:
        log.exception("tool failed unexpectedly", exception_type=type(exc).__name__)
    return failure


def _log_failure(log: BoundLogger, failure: Failure, duration: int) -> None:
    level = log.error if failure.code is ErrorCode.INTERNAL else log.warning
    level("tool failed", code=str(failure.code), status=failure.status, detail=failure.detail,
          duration_ms=duration)


def _log_validation(log: BoundLogger, errors: Sequence[str]) -> None:
    log.warning("validation failed", error_count=len(errors), errors=list(errors))


def _bind(logger: BoundLogger | None, tool_name: str) -> BoundLogger:
    return (logger or _log).bind(tool=tool_name, request_id=uuid.uuid4().hex[:8])


def _elapsed(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
