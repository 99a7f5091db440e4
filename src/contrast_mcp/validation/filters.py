"""Filter value types and token parsing shared by the parameter specs."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class MetadataFilter:
    """Match on one metadata field against any of its values.

    Field names are kept as the caller supplied them; resolving a name to an
    upstream field id is the consuming tool's concern.
    """

    field_name: str
    values: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.field_name or not self.field_name.strip():
            raise ValueError("field_name must not be blank")

    def matches(self, value: str | None) -> bool:
        """Case-insensitive membership test."""
        if value is None:
            return False
        needle = value.casefold()
        return any(v.casefold() == needle for v in self.values)


def parse_comma_separated(raw: str | None, *, upper: bool = False) -> list[str] | None:
    """Split on commas, trim, drop empty tokens and duplicates (first occurrence wins).

    Returns None when nothing usable remains.

    Example:
        >>> parse_comma_separated("LOW,,HIGH,  ,LOW")
        ['LOW', 'HIGH']
    """
    if raw is None or not raw.strip():
        return None
    tokens: list[str] = []
    for part in raw.split(","):
        token = part.strip()
        if upper:
            token = token.upper()
        if token and token not in tokens:
            tokens.append(token)
    return tokens or None
