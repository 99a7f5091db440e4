"""Result type for upstream calls that report failure without raising.

``attempt`` runs a client call and returns ``Ok(value)`` or ``Err(Failure)``.
Tools use it where a failure should degrade the answer rather than end it
(optional enrichment calls), and an execute step may return the Result as is:
the pipelines settle ``Err(Failure)`` exactly like a raised exception.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from .errors import Failure, classify_exception

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")


class Result(Generic[T, E]):
    """Success (Ok) or failure (Err).

    Examples:
        >>> Ok(3).map(lambda n: n + 1).unwrap()
        4
        >>> Err("boom").unwrap_or(0)
        0
    """

    __slots__ = ("_value", "_is_ok")
    __match_args__ = ("_value",)

    def __init__(self, value: T | E, is_ok: bool) -> None:
        self._value = value
        self._is_ok = is_ok

    def is_ok(self) -> bool:
        return self._is_ok

    def is_err(self) -> bool:
        return not self._is_ok

    def unwrap(self) -> T:
        """Extract Ok value. Raises RuntimeError on Err."""
        if self._is_ok:
            return self._value  # type: ignore[return-value]
        raise RuntimeError(f"unwrap() on Err: {self._value}")

    def unwrap_err(self) -> E:
        """Extract Err value. Raises RuntimeError on Ok."""
        if not self._is_ok:
            return self._value  # type: ignore[return-value]
        raise RuntimeError(f"unwrap_err() on Ok: {self._value}")

    def unwrap_or(self, default: T) -> T:
        return self._value if self._is_ok else default  # type: ignore[return-value]

    def map(self, f: Callable[[T], U]) -> Result[U, E]:
        """Transform the Ok value, passing Err through."""
        return Result(f(self._value), True) if self._is_ok else Result(self._value, False)  # type: ignore[arg-type]

    def __repr__(self) -> str:
        return f"{'Ok' if self._is_ok else 'Err'}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        return self._is_ok == other._is_ok and self._value == other._value


def Ok(value: T) -> Result[T, E]:  # noqa: N802
    """Construct Ok variant (success)."""
    return Result(value, True)


def Err(error: E) -> Result[T, E]:  # noqa: N802
    """Construct Err variant (failure)."""
    return Result(error, False)


def attempt(fn: Callable[[], T]) -> Result[T, Failure]:
    """Run fn, returning Ok(value) or Err(Failure) classified from what it raised.

    Example:
        >>> attempt(lambda: client.list_applications(org_id)).map(len)
    """
    try:
        return Ok(fn())
    except Exception as e:
        return Err(classify_exception(e))
