"""Response envelopes returned by every tool.

``ToolResponse`` wraps a single item; ``PaginatedToolResponse`` wraps a page of
items plus the pagination echo. Both are frozen pydantic models; list inputs
are copied into tuples and ``None`` becomes empty. ``success`` is derived from
``errors`` and cannot disagree with it.

Serialized with camelCase aliases:
    >>> ToolResponse.ok({"id": "a"}).model_dump(mode="json", by_alias=True)
    {'errors': [], 'warnings': [], 'durationMs': None, 'data': {'id': 'a'}, 'found': True, 'success': True}
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Generic, Self, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")

RESOURCE_NOT_FOUND = "Resource not found"
NO_RESULTS = "No results found matching the specified criteria."


def _as_tuple(v: Iterable[str] | None) -> tuple[str, ...]:
    return tuple(v) if v is not None else ()


class _Envelope(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
        revalidate_instances="never",
    )

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    duration_ms: int | None = Field(default=None, ge=0)

    @field_validator("errors", "warnings", mode="before")
    @classmethod
    def _normalize_messages(cls, v: Iterable[str] | None) -> tuple[str, ...]:
        return _as_tuple(v)

    @computed_field
    @property
    def success(self) -> bool:
        return not self.errors


class ToolResponse(_Envelope, Generic[T]):
    """Single-item result.

    ``found=False`` with no errors means nothing matched; it is not a failure.
    """

    data: T | None = None
    found: bool = False

    @classmethod
    def ok(cls, data: T, warnings: Iterable[str] | None = None, *, duration_ms: int | None = None) -> Self:
        return cls(data=data, found=True, warnings=_as_tuple(warnings), duration_ms=duration_ms)

    @classmethod
    def not_found(cls, message: str = RESOURCE_NOT_FOUND, warnings: Iterable[str] | None = None,
                  *, duration_ms: int | None = None) -> Self:
        return cls(found=False, warnings=(*_as_tuple(warnings), message), duration_ms=duration_ms)

    @classmethod
    def error(cls, errors: str | Iterable[str], warnings: Iterable[str] | None = None,
              *, duration_ms: int | None = None) -> Self:
        errs = (errors,) if isinstance(errors, str) else tuple(errors)
        return cls(found=False, errors=errs, warnings=_as_tuple(warnings), duration_ms=duration_ms)

    validation_error = error


class PaginatedToolResponse(_Envelope, Generic[T]):
    """One page of results with the pagination echo."""

    items: tuple[T, ...] = ()
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=1, ge=1)
    total_items: int | None = Field(default=None, ge=0)
    has_more_pages: bool = False

    @field_validator("items", mode="before")
    @classmethod
    def _normalize_items(cls, v: Iterable[T] | None) -> tuple[T, ...]:
        return tuple(v) if v is not None else ()

    @classmethod
    def ok(cls, items: Iterable[T], page: int, page_size: int, total_items: int | None,
            has_more_pages: bool, warnings: Iterable[str] | None = None,
            *, duration_ms: int | None = None) -> Self:
        return cls(items=tuple(items), page=page, page_size=page_size, total_items=total_items,
                   has_more_pages=has_more_pages, warnings=_as_tuple(warnings), duration_ms=duration_ms)

    @classmethod
    def error(cls, page: int, page_size: int, errors: str | Iterable[str],
              warnings: Iterable[str] | None = None, *, duration_ms: int | None = None) -> Self:
        errs = (errors,) if isinstance(errors, str) else tuple(errors)
        return cls(page=page, page_size=page_size, errors=errs, warnings=_as_tuple(warnings),
                   duration_ms=duration_ms)

    validation_error = error

    @classmethod
    def empty(cls, page: int, page_size: int, warnings: Iterable[str] | None = None,
              *, duration_ms: int | None = None) -> Self:
        return cls(page=page, page_size=page_size, total_items=0, has_more_pages=False,
                   warnings=(*_as_tuple(warnings), NO_RESULTS), duration_ms=duration_ms)


@dataclass(frozen=True, slots=True)
class ExecutionResult(Generic[T]):
    """What a paginated execute step produces: one page of items and the total, if known."""

    items: tuple[T, ...] = ()
    total_items: int | None = None

    @classmethod
    def of(cls, items: Sequence[T] | Iterable[T] | None, total_items: int | None = None) -> ExecutionResult[T]:
        return cls(tuple(items) if items is not None else (), total_items)

    @classmethod
    def empty(cls) -> ExecutionResult[T]:
        return cls((), 0)
