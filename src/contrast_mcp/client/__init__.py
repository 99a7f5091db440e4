"""Contrast REST client and payload models."""

from .client import ContrastClient
from .models import (
    AgentSession,
    Application,
    Attack,
    AttackApplication,
    AttackFilter,
    AttackPage,
    Cve,
    CveApplication,
    CveData,
    CveLibrary,
    EventSummary,
    Library,
    LibraryObservation,
    LibraryVulnerability,
    MetadataEntity,
    MetadataItem,
    Route,
    RouteCoverageRequest,
    RouteObservation,
    SessionMetadata,
    SessionMetadataField,
    Trace,
    TraceApplication,
    TraceFilter,
    TracePage,
    iso_timestamp,
)

__all__ = [
    "AgentSession",
    "Application",
    "Attack",
    "AttackApplication",
    "AttackFilter",
    "AttackPage",
    "ContrastClient",
    "Cve",
    "CveApplication",
    "CveData",
    "CveLibrary",
    "EventSummary",
    "Library",
    "LibraryObservation",
    "LibraryVulnerability",
    "MetadataEntity",
    "MetadataItem",
    "Route",
    "RouteCoverageRequest",
    "RouteObservation",
    "SessionMetadata",
    "SessionMetadataField",
    "Trace",
    "TraceApplication",
    "TraceFilter",
    "TracePage",
    "iso_timestamp",
]
