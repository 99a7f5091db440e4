"""Per-invocation accumulator of validation errors and warnings.

One ``ValidationContext`` is created for each tool call. Specs created through
its factory methods report into it when resolved; cross-field rules append to
it directly. Errors and warnings only ever grow.

Errors mean "fix your input and retry"; warnings mean "a default was applied,
a value was clamped, or something was excluded".

Example:
    >>> ctx = ValidationContext()
    >>> ctx.require_uuid(app_id, "appId")
    >>> severities = ctx.enum_set(raw_severities, Severity, "severities").get()
    >>> ctx.validate_date_range(after, before, "lastSeenAfter", "lastSeenBefore")
    >>> if not ctx.is_valid:
    ...     return ctx.errors
"""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import TypeVar

from .specs import (
    DateSpec,
    EnumSetSpec,
    IntSpec,
    MetadataFilterSpec,
    ParamSpec,
    StringListSpec,
    StringSpec,
)

E = TypeVar("E", bound=Enum)

_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def _has_text(value: str | None) -> bool:
    return value is not None and bool(value.strip())


class ValidationContext:
    """Collects errors and warnings for one tool invocation. Not shared across calls."""

    __slots__ = ("_errors", "_warnings", "_absorbed")

    def __init__(self) -> None:
        self._errors: list[str] = []
        self._warnings: list[str] = []
        self._absorbed: dict[int, ParamSpec[object]] = {}

    # ─── Spec Factories ────────────────────────────────────────────────

    def string(self, raw: str | None, name: str) -> StringSpec:
        return StringSpec(name=name, raw=raw, context=self)

    def integer(self, raw: int | None, name: str) -> IntSpec:
        return IntSpec(name=name, raw=raw, context=self)

    def date(self, raw: str | None, name: str) -> DateSpec:
        return DateSpec(name=name, raw=raw, context=self)

    def enum_set(self, raw: str | None, enum_type: type[E], name: str) -> EnumSetSpec[E]:
        return EnumSetSpec(name=name, raw=raw, enum_type=enum_type, context=self)

    def string_list(self, raw: str | None, name: str) -> StringListSpec:
        return StringListSpec(name=name, raw=raw, context=self)

    def metadata_filter(self, raw: str | None, name: str) -> MetadataFilterSpec:
        return MetadataFilterSpec(name=name, raw=raw, context=self)

    def absorb(self, spec: ParamSpec[object]) -> None:
        """Record a spec's errors and warnings, once per spec instance."""
        if id(spec) in self._absorbed:
            return
        self._absorbed[id(spec)] = spec  # holding the reference keeps the id unique
        resolution = spec.resolution
        self._errors.extend(resolution.errors)
        self._warnings.extend(resolution.warnings)

    # ─── Cross-Field Rules ─────────────────────────────────────────────

    def require(self, value: str | None, name: str) -> None:
        if not _has_text(value):
            self._errors.append(f"{name} is required")

    def require_uuid(self, value: str | None, name: str) -> None:
        if not _has_text(value):
            self._errors.append(f"{name} is required")
        elif not _UUID_RE.match(value.strip()):  # type: ignore[union-attr]
            self._errors.append(
                f"{name} must be a valid UUID format (e.g., 550e8400-e29b-41d4-a716-446655440000)")

    def require_if_present(self, dependent: str | None, dependent_name: str,
                           required: str | None, required_name: str) -> None:
        """``dependent`` given without ``required`` is an error."""
        if _has_text(dependent) and not _has_text(required):
            self._errors.append(f"{dependent_name} requires {required_name} to be specified")

    def mutually_exclusive(self, a_present: bool, a_name: str, b_present: bool, b_name: str,
                           message: str | None = None) -> None:
        if a_present and b_present:
            self._errors.append(message or f"{a_name} and {b_name} are mutually exclusive")

    def require_at_least_one(self, message: str, *values: str | None) -> None:
        if not any(_has_text(v) for v in values):
            self._errors.append(message)

    def validate_date_range(self, start: datetime | None, end: datetime | None,
                            start_name: str, end_name: str) -> None:
        """Start after end is an error; a missing bound is always valid."""
        if start is not None and end is not None and start > end:
            self._errors.append(f"Invalid date range: {start_name} must be before {end_name}")

    def warn_if(self, condition: bool, message: str) -> None:
        if condition:
            self._warnings.append(message)

    def error_if(self, condition: bool, message: str) -> None:
        if condition:
            self._errors.append(message)

    def add_warning(self, message: str) -> None:
        self._warnings.append(message)

    def add_error(self, message: str) -> None:
        self._errors.append(message)

    # ─── Results ───────────────────────────────────────────────────────

    @property
    def is_valid(self) -> bool:
        return not self._errors

    @property
    def errors(self) -> tuple[str, ...]:
        return tuple(self._errors)

    @property
    def warnings(self) -> tuple[str, ...]:
        return tuple(self._warnings)

    def __repr__(self) -> str:
        return f"ValidationContext(errors={self._errors!r}, warnings={self._warnings!r})"
