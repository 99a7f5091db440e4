"""Parameter specs: immutable validators for a single raw tool argument.

Each spec is a frozen value. Builder methods (``required()``, ``default_to()``,
``range()`` ...) return a new spec; nothing is validated until the
``resolution`` is read. Resolving produces a ``Resolution`` triple of
(value, errors, warnings) and is computed once per spec instance.

``get()`` hands the resolution to the owning ``ValidationContext`` (at most once
per spec) and returns the value, so specs chain naturally:

    >>> ctx = ValidationContext()
    >>> page_size = ctx.integer(raw, "pageSize").default_to(50, "Using default pageSize 50").range(1, 100).get()

Malformed input never raises: it becomes an error string in the resolution.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time as dt_time
from enum import Enum
from functools import cached_property
from typing import TYPE_CHECKING, Generic, Iterable, Self, TypeVar

import orjson

from .filters import MetadataFilter, parse_comma_separated

if TYPE_CHECKING:
    from .context import ValidationContext

T = TypeVar("T")
E = TypeVar("E", bound=Enum)

_EPOCH_RE = re.compile(r"^[+-]?\d+$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True, slots=True)
class Resolution(Generic[T]):
    """Outcome of resolving one spec."""

    value: T | None
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True, kw_only=True)
class ParamSpec(Generic[T]):
    """Base for all specs. Subclasses implement ``_resolve``."""

    name: str
    context: ValidationContext | None = field(default=None, repr=False, compare=False)

    @cached_property
    def resolution(self) -> Resolution[T]:
        return self._resolve()

    def _resolve(self) -> Resolution[T]:
        raise NotImplementedError

    def get(self) -> T | None:
        """Resolve, record problems in the owning context, and return the value."""
        if self.context is not None:
            self.context.absorb(self)
        return self.resolution.value


def _invalid_value(name: str, value: str, valid: Iterable[str]) -> str:
    return f"Invalid {name}: '{value}'. Valid values: {', '.join(valid)}"


# ═══════════════════════════════════════════════════════════════════════════════
# Scalar Specs
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, kw_only=True)
class StringSpec(ParamSpec[str]):
    """Trimmed string; blank means absent."""

    raw: str | None = None
    default: str | None = None
    default_message: str | None = None
    is_required: bool = False
    allowed: tuple[str, ...] | None = None
    upper: bool = False

    def required(self) -> Self:
        return replace(self, is_required=True)

    def default_to(self, value: str, message: str) -> Self:
        return replace(self, default=value, default_message=message)

    def allowed_values(self, values: Iterable[str]) -> Self:
        return replace(self, allowed=tuple(values))

    def to_upper(self) -> Self:
        return replace(self, upper=True)

    def _resolve(self) -> Resolution[str]:
        value = self.raw.strip() if self.raw is not None else None
        value = (value.upper() if self.upper else value) or None
        warnings: list[str] = []
        if value is None and self.default is not None:
            value = self.default
            if self.default_message:
                warnings.append(self.default_message)
        if value is None:
            errors = (f"{self.name} is required",) if self.is_required else ()
            return Resolution(None, errors, tuple(warnings))
        if self.allowed is not None and value not in self.allowed:
            return Resolution(None, (_invalid_value(self.name, value, self.allowed),), tuple(warnings))
        return Resolution(value, (), tuple(warnings))


@dataclass(frozen=True, kw_only=True)
class IntSpec(ParamSpec[int]):
    """Integer with optional default and clamping range.

    Out-of-range input is clamped to the nearest bound with a warning, never rejected.
    """

    raw: int | None = None
    default: int | None = None
    default_message: str | None = None
    minimum: int | None = None
    maximum: int | None = None

    def default_to(self, value: int, message: str) -> Self:
        return replace(self, default=value, default_message=message)

    def range(self, minimum: int, maximum: int) -> Self:
        if minimum > maximum:
            raise ValueError(f"range minimum {minimum} exceeds maximum {maximum}")
        return replace(self, minimum=minimum, maximum=maximum)

    def _resolve(self) -> Resolution[int]:
        if self.raw is None:
            if self.default is None:
                return Resolution(None)
            warnings = (self.default_message,) if self.default_message else ()
            return Resolution(self.default, (), warnings)
        if self.minimum is not None and self.raw < self.minimum:
            return Resolution(self.minimum, (), (
                f"{self.name} clamped from {self.raw} to minimum {self.minimum}",))
        if self.maximum is not None and self.raw > self.maximum:
            return Resolution(self.maximum, (), (
                f"{self.name} clamped from {self.raw} to maximum {self.maximum}",))
        return Resolution(self.raw)


@dataclass(frozen=True, kw_only=True)
class DateSpec(ParamSpec[datetime]):
    """Epoch milliseconds or ISO calendar date (local start of day); blank means absent."""

    raw: str | None = None

    def _resolve(self) -> Resolution[datetime]:
        if self.raw is None or not self.raw.strip():
            return Resolution(None)
        text = self.raw.strip()
        try:
            if _EPOCH_RE.match(text):
                return Resolution(datetime.fromtimestamp(int(text) / 1000).astimezone())
            if _ISO_DATE_RE.match(text):
                day = date.fromisoformat(text)
                return Resolution(datetime.combine(day, dt_time.min).astimezone())
        except (ValueError, OverflowError, OSError):
            pass
        return Resolution(None, (
            f"Invalid {self.name} date '{self.raw}'. Expected ISO format (YYYY-MM-DD) like "
            "'2025-01-15' or epoch timestamp like '1705276800000'.",))


# ═══════════════════════════════════════════════════════════════════════════════
# Collection Specs
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, kw_only=True)
class EnumSetSpec(ParamSpec[frozenset[E]], Generic[E]):
    """Comma-separated enum member names, matched case-insensitively by uppercasing.

    Each unknown token yields its own error; any error makes the value None.
    """

    raw: str | None = None
    enum_type: type[E]
    default: frozenset[E] | None = None
    default_message: str | None = None

    def default_to(self, members: Iterable[E], message: str) -> Self:
        return replace(self, default=frozenset(members), default_message=message)

    def _resolve(self) -> Resolution[frozenset[E]]:
        tokens = parse_comma_separated(self.raw, upper=True)
        if tokens is None:
            if self.default is None:
                return Resolution(None)
            warnings = (self.default_message,) if self.default_message else ()
            return Resolution(frozenset(self.default), (), warnings)
        members = self.enum_type.__members__
        valid = [m.name for m in self.enum_type]
        errors = tuple(_invalid_value(self.name, t, valid) for t in tokens if t not in members)
        if errors:
            return Resolution(None, errors)
        return Resolution(frozenset(members[t] for t in tokens))


@dataclass(frozen=True, kw_only=True)
class StringListSpec(ParamSpec[tuple[str, ...]]):
    """Comma-separated strings checked against an optional case-sensitive allowed set."""

    raw: str | None = None
    default: tuple[str, ...] | None = None
    default_message: str | None = None
    allowed: tuple[str, ...] | None = None
    upper: bool = False

    def default_to(self, values: Iterable[str], message: str) -> Self:
        return replace(self, default=tuple(values), default_message=message)

    def allowed_values(self, values: Iterable[str]) -> Self:
        return replace(self, allowed=tuple(values))

    def to_upper(self) -> Self:
        return replace(self, upper=True)

    def _resolve(self) -> Resolution[tuple[str, ...]]:
        tokens = parse_comma_separated(self.raw, upper=self.upper)
        if tokens is None:
            if self.default is None:
                return Resolution(None)
            warnings = (self.default_message,) if self.default_message else ()
            return Resolution(self.default, (), warnings)
        if self.allowed is not None:
            errors = tuple(_invalid_value(self.name, t, self.allowed) for t in tokens if t not in self.allowed)
            if errors:
                return Resolution(None, errors)
        return Resolution(tuple(tokens))


@dataclass(frozen=True, kw_only=True)
class MetadataFilterSpec(ParamSpec[tuple[MetadataFilter, ...]]):
    """Flat JSON object of field -> string | number | [string | number, ...].

    Example:
        >>> ctx.metadata_filter('{"branch": "main", "build": [101, 102]}', "metadataFilters").get()
        (MetadataFilter(field_name='branch', values=('main',)), MetadataFilter(field_name='build', values=('101', '102')))
    """

    raw: str | None = None

    def _resolve(self) -> Resolution[tuple[MetadataFilter, ...]]:
        if self.raw is None or not self.raw.strip():
            return Resolution(None)
        try:
            parsed = orjson.loads(self.raw)
        except orjson.JSONDecodeError as e:
            return Resolution(None, (
                f"Invalid JSON for {self.name}: {e}. "
                'Expected format: {"field":"value"} or {"field":["value1","value2"]}',))
        if not isinstance(parsed, dict):
            return Resolution(None, (
                f"Invalid JSON for {self.name}: expected an object but got {type(parsed).__name__}. "
                'Expected format: {"field":"value"} or {"field":["value1","value2"]}',))

        filters: list[MetadataFilter] = []
        invalid: list[str] = []
        for key, val in parsed.items():
            match val:
                case None:
                    continue
                case list():
                    values = [_scalar_text(item) for item in val if item is not None]
                    if any(v is None for v in values):
                        invalid.append(f"'{key}' (array contains non-string values)")
                        continue
                    text_values = tuple(v for v in values if v is not None)
                case _:
                    text = _scalar_text(val)
                    if text is None:
                        invalid.append(f"'{key}' (expected string or array of strings)")
                        continue
                    text_values = (text,)
            if not key.strip():
                invalid.append(f"'{key}' (field name must not be blank)")
                continue
            filters.append(MetadataFilter(key, text_values))

        if invalid:
            return Resolution(None, (
                f"Invalid values in {self.name} for fields: {', '.join(invalid)}. "
                "Values must be strings or arrays of strings.",))
        return Resolution(tuple(filters) or None)


def _scalar_text(value: object) -> str | None:
    """String form of a JSON scalar; None for anything that is not a string or number."""
    match value:
        case bool():
            return None
        case str():
            return value
        case int():
            return str(value)
        case float() if value.is_integer():
            return str(int(value))
        case float():
            return repr(value)
        case _:
            return None
