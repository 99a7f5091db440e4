"""Pydantic models for Contrast REST payloads.

Upstream responses carry many more fields than the tools need; every model
ignores unknown keys. Field names follow the wire format through aliases, so
models validate straight from ``response.json()``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel


class _Payload(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        revalidate_instances="never",
    )


def _none_to_list(v: object) -> object:
    return [] if v is None else v


# Upstream sends null for empty collections
NullableList = BeforeValidator(_none_to_list)


def iso_timestamp(epoch_ms: int | None) -> str | None:
    """Local ISO-8601 rendering of an epoch-milliseconds timestamp."""
    return datetime.fromtimestamp(epoch_ms / 1000).astimezone().isoformat() if epoch_ms is not None else None


# ═══════════════════════════════════════════════════════════════════════════════
# Applications
# ═══════════════════════════════════════════════════════════════════════════════


class MetadataEntity(_Payload):
    """One application metadata field value."""

    id: str | None = None
    field_name: str | None = Field(default=None, alias="fieldName")
    field_value: str | None = Field(default=None, alias="fieldValue")
    type: str | None = None


class Application(_Payload):
    """An application as returned by the applications listing."""

    app_id: str = Field(validation_alias=AliasChoices("app_id", "appId", "id"))
    name: str = ""
    path: str | None = None
    language: str | None = None
    status: str | None = None
    importance: str | None = None
    archived: bool = False
    created: int | None = None
    tags: Annotated[tuple[str, ...], NullableList] = ()
    techs: Annotated[tuple[str, ...], NullableList] = ()
    metadata_entities: Annotated[tuple[MetadataEntity, ...], NullableList] = Field(default=(), alias="metadataEntities")

    def metadata_value(self, field_name: str) -> str | None:
        """Value of a metadata field, matched case-insensitively on the field name."""
        wanted = field_name.casefold()
        for entity in self.metadata_entities:
            if entity.field_name is not None and entity.field_name.casefold() == wanted:
                return entity.field_value
        return None


# ═══════════════════════════════════════════════════════════════════════════════
# Traces
# ═══════════════════════════════════════════════════════════════════════════════


class MetadataItem(_Payload):
    display_label: str | None = None
    agent_label: str | None = None
    value: str | None = None


class SessionMetadata(_Payload):
    """Metadata reported by the agent for one session a trace was seen in."""

    session_id: str | None = None
    metadata: Annotated[tuple[MetadataItem, ...], NullableList] = ()


class TraceApplication(_Payload):
    app_id: str | None = None
    name: str | None = None


class Trace(_Payload):
    """A vulnerability (trace) as returned by the trace filter endpoint."""

    uuid: str
    title: str = ""
    rule_name: str | None = None
    severity: str | None = None
    status: str | None = None
    first_time_seen: int | None = None
    last_time_seen: int | None = None
    closed_time: int | None = None
    server_environments: Annotated[tuple[str, ...], NullableList] = ()
    tags: Annotated[tuple[str, ...], NullableList] = ()
    application: TraceApplication | None = None
    session_metadata: Annotated[tuple[SessionMetadata, ...], NullableList] = ()


class TracePage(_Payload):
    """One page of traces plus the upstream match count."""

    traces: tuple[Trace, ...] | None = None
    count: int | None = None


class TraceFilter(BaseModel):
    """Server-side trace filter, sent as the camelCase POST body.

    Example:
        >>> TraceFilter(severities=["HIGH"], vuln_types=["sql-injection"]).to_body()
        {'severities': ['HIGH'], 'vulnTypes': ['sql-injection']}
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    severities: list[str] | None = None
    status: list[str] | None = None
    vuln_types: list[str] | None = None
    environments: list[str] | None = None
    start_date: int | None = None
    end_date: int | None = None
    filter_tags: list[str] | None = None

    @staticmethod
    def epoch_millis(value: datetime | None) -> int | None:
        return int(value.timestamp() * 1000) if value is not None else None

    def to_body(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Agent Sessions
# ═══════════════════════════════════════════════════════════════════════════════


class SessionMetadataField(_Payload):
    display_label: str | None = Field(default=None, validation_alias=AliasChoices("displayLabel", "display_label"))
    agent_label: str | None = Field(default=None, validation_alias=AliasChoices("agentLabel", "agent_label"))
    value: str | None = Field(default=None, validation_alias=AliasChoices("value", "fieldValue"))


class AgentSession(_Payload):
    """Latest agent session of an application with its metadata values."""

    agent_session_id: str = Field(alias="agentSessionId")
    metadata_sessions: Annotated[tuple[SessionMetadataField, ...], NullableList] = Field(default=(), alias="metadataSessions")
    created_date: int | None = Field(default=None, alias="createdDate")
    session_status: str | None = Field(default=None, alias="sessionStatus")

    @field_validator("created_date", mode="before")
    @classmethod
    def _whole_millis(cls, v: object) -> object:
        return int(v) if isinstance(v, float) else v


# ═══════════════════════════════════════════════════════════════════════════════
# Libraries
# ═══════════════════════════════════════════════════════════════════════════════


class LibraryVulnerability(_Payload):
    name: str | None = None
    severity_code: str | None = None
    description: str | None = None


class Library(_Payload):
    """A third-party library used by an application."""

    library_id: str | None = Field(default=None, validation_alias=AliasChoices("library_id", "id"))
    hash: str
    file_name: str = ""
    version: str | None = None
    latest_version: str | None = None
    grade: str | None = None
    class_count: Annotated[int, Field(ge=0)] = 0
    classes_used: Annotated[int, Field(ge=0)] = 0
    total_vulnerabilities: int = 0
    high_vulnerabilities: int = 0
    vulns: Annotated[tuple[LibraryVulnerability, ...], NullableList] = ()

    @computed_field
    @property
    def used(self) -> bool:
        """Whether any class of the library was loaded at runtime."""
        return self.classes_used > 0


class LibraryObservation(_Payload):
    """One class of a library observed in use by the agent."""

    name: str
    first_observed_time: int | None = Field(default=None, alias="firstObservedTime")
    last_observed_time: int | None = Field(default=None, alias="lastObservedTime")


# ═══════════════════════════════════════════════════════════════════════════════
# Vulnerability Details
# ═══════════════════════════════════════════════════════════════════════════════


class Stacktrace(_Payload):
    description: str | None = None


class EventDetail(_Payload):
    stacktraces: Annotated[tuple[Stacktrace, ...], NullableList] = ()


class EventResource(_Payload):
    """One event of a trace's event summary (creation, propagation, trigger)."""

    type: str | None = None
    event: EventDetail | None = None


class EventSummary(_Payload):
    events: Annotated[tuple[EventResource, ...], NullableList] = ()

    def trigger_frames(self) -> list[str]:
        """Stack frame descriptions of the first trigger event, outermost first."""
        trigger = next((e for e in self.events if (e.type or "").casefold() == "trigger"), None)
        if trigger is None or trigger.event is None:
            return []
        return [s.description for s in trigger.event.stacktraces if s.description]


# ═══════════════════════════════════════════════════════════════════════════════
# Route Coverage
# ═══════════════════════════════════════════════════════════════════════════════


class RouteObservation(_Payload):
    verb: str | None = None
    url: str | None = None


class Route(_Payload):
    """An application route with its coverage status."""

    signature: str = ""
    environments: Annotated[tuple[str, ...], NullableList] = ()
    status: str | None = None
    route_hash: str | None = None
    vulnerabilities: int = 0
    critical_vulnerabilities: int = 0
    exercised: int = 0
    discovered: int = 0
    servers_total: int = 0
    observations: Annotated[tuple[RouteObservation, ...], NullableList] = ()
    total_observations: int | None = Field(default=None, validation_alias=AliasChoices(
        "total_observations", "totalObservations"))


class RouteCoverageRequest(BaseModel):
    """Session filter posted to the route coverage endpoint.

    Either a session id or one metadata label with its value:

        >>> RouteCoverageRequest(session_id="s1").to_body()
        {'sessionID': 's1'}
        >>> RouteCoverageRequest.for_metadata("branch", "main").to_body()
        {'values': [{'label': 'branch', 'values': ['main']}]}
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    session_id: str | None = Field(default=None, serialization_alias="sessionID")
    values: list[dict[str, object]] | None = None

    @classmethod
    def for_metadata(cls, label: str, value: str) -> RouteCoverageRequest:
        return cls(values=[{"label": label, "values": [value]}])

    def to_body(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Attacks
# ═══════════════════════════════════════════════════════════════════════════════


class AttackApplication(_Payload):
    """Application affected by an attack, with the per-application outcome."""

    status: str | None = None
    severity: str | None = None
    start_time: int | None = Field(default=None, validation_alias=AliasChoices("start_time", "startTime"))
    end_time: int | None = Field(default=None, validation_alias=AliasChoices("end_time", "endTime"))
    application: Application | None = None


class Attack(_Payload):
    """An attack detected by Contrast Protect."""

    uuid: str
    status: str | None = None
    source: str | None = None
    rules: Annotated[tuple[str, ...], NullableList] = ()
    probes: int = 0
    start_time: int | None = None
    end_time: int | None = None
    first_event_time: int | None = None
    last_event_time: int | None = None
    attacks_application: Annotated[tuple[AttackApplication, ...], NullableList] = Field(
        default=(), validation_alias=AliasChoices("attacks_application", "attacksApplication"))


class AttackPage(_Payload):
    """One page of attacks plus the total, reported as ``count`` or ``total``."""

    attacks: tuple[Attack, ...] | None = None
    count: int | None = None
    total: int | None = None

    @property
    def total_count(self) -> int | None:
        return self.count if self.count is not None else self.total


class AttackFilter(BaseModel):
    """Attack filter, sent as the camelCase POST body.

    Example:
        >>> AttackFilter(quick_filter="ACTIVE", keyword="sql").to_body()["quickFilter"]
        'ACTIVE'
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    quick_filter: str = "ALL"
    keyword: str = ""
    include_suppressed: bool = False
    include_bot_blockers: bool = False
    include_ip_blacklist: bool = False
    status_filter: list[str] = Field(default_factory=list)

    def to_body(self) -> dict[str, object]:
        return self.model_dump(by_alias=True)


# ═══════════════════════════════════════════════════════════════════════════════
# CVEs
# ═══════════════════════════════════════════════════════════════════════════════


class Cve(_Payload):
    name: str | None = None
    uuid: str | None = None
    description: str | None = None
    status: str | None = None
    score: float | None = None
    availability_impact: str | None = Field(default=None, alias="availabilityImpact")
    confidentiality_impact: str | None = Field(default=None, alias="confidentialityImpact")
    integrity_impact: str | None = Field(default=None, alias="integrityImpact")
    access_vector: str | None = Field(default=None, alias="accessVector")
    access_complexity: str | None = Field(default=None, alias="accessComplexity")
    references: Annotated[tuple[str, ...], NullableList] = ()


class CveLibrary(_Payload):
    """A library version affected by a CVE."""

    hash: str
    version: str | None = None
    file_name: str | None = None
    group: str | None = None


class CveApplication(_Payload):
    """An application containing a vulnerable library.

    ``class_count``/``class_usage`` are zero unless the application uses a class
    of the vulnerable library.
    """

    app_id: str = Field(validation_alias=AliasChoices("app_id", "appId"))
    name: str = ""
    first_seen: int | None = None
    last_seen: int | None = None
    importance_description: str | None = None
    class_count: int = Field(default=0, validation_alias=AliasChoices("class_count", "classCount"))
    class_usage: int = Field(default=0, validation_alias=AliasChoices("class_usage", "classUsage"))


class CveData(_Payload):
    """A CVE with the organization's affected libraries and applications."""

    cve: Cve | None = None
    libraries: Annotated[tuple[CveLibrary, ...], NullableList] = ()
    apps: Annotated[tuple[CveApplication, ...], NullableList] = ()
