"""Parameter validation: typed specs and the per-call validation context."""

from .context import ValidationContext
from .filters import MetadataFilter, parse_comma_separated
from .specs import (
    DateSpec,
    EnumSetSpec,
    IntSpec,
    MetadataFilterSpec,
    ParamSpec,
    Resolution,
    StringListSpec,
    StringSpec,
)

__all__ = [
    "DateSpec",
    "EnumSetSpec",
    "IntSpec",
    "MetadataFilter",
    "MetadataFilterSpec",
    "ParamSpec",
    "Resolution",
    "StringListSpec",
    "StringSpec",
    "ValidationContext",
    "parse_comma_separated",
]
