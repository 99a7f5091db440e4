"""Vulnerability search for one application.

Two execution paths:

    server-side:  every filter is pushed into the trace filter body and the
                  upstream pages the result (total from the upstream count)
    session:      session metadata and "latest session" cannot be expressed in
                  the filter body, so traces are drained page by page, matched
                  in memory, then paginated (total is the matched count)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from contrast_mcp.client import SessionMetadata, Trace, TraceFilter, iso_timestamp
from contrast_mcp.runtime import (
    BaseToolParams,
    ExecutionResult,
    PaginatedToolResponse,
    PaginationParams,
    fetch_all_pages,
    paginate_in_memory,
    run_paginated,
)
from contrast_mcp.validation import ValidationContext

from .context import ServerContext


class Severity(StrEnum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    NOTE = "NOTE"


class Environment(StrEnum):
    DEVELOPMENT = "DEVELOPMENT"
    QA = "QA"
    PRODUCTION = "PRODUCTION"


STATUSES = ("Reported", "Suspicious", "Confirmed", "NotAProblem", "Remediated", "Fixed", "AutoRemediated")
ACTIONABLE_STATUSES = ("Reported", "Suspicious", "Confirmed")

ACTIONABLE_ONLY = ("Showing actionable vulnerabilities only (excluding Fixed and Remediated). "
                   "To see all statuses, specify statuses parameter explicitly.")
LAST_ACTIVITY_NOTE = "Time filters apply to LAST ACTIVITY DATE (lastTimeSeen), not discovery date."
NO_TRACE_DATA = "API returned no trace data. Verify permissions and filters."
NO_SESSIONS = ("No sessions found for this application. "
               "Returning all vulnerabilities across all sessions for this application.")
TRUNCATED = ("IMPORTANT: Results were truncated due to limits (max {max_traces} traces or {max_pages} pages). "
             "This application may have more matching vulnerabilities than returned. To get complete results, "
             "narrow your search using filters: severity (e.g., 'CRITICAL,HIGH'), status (e.g., 'Confirmed'), "
             "or environment (e.g., 'PRODUCTION'). Without narrower filters, you may be missing critical "
             "security findings.")
PARTIAL = ("WARNING: Partial data returned due to API error during multi-page fetch. Retrieved {count} "
           "matching vulnerabilities before error occurred. Additional vulnerabilities may exist. "
           "Details: {details}")


class VulnerabilityView(BaseModel):
    """Compact vulnerability summary returned to the caller."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    title: str
    type: str | None = None
    vuln_id: str
    severity: str | None = None
    status: str | None = None
    app_id: str | None = None
    app_name: str | None = None
    first_seen_at: str | None = None
    last_seen_at: str | None = None
    closed_at: str | None = None
    environments: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    session_metadata: tuple[SessionMetadata, ...] = ()

    @classmethod
    def from_trace(cls, trace: Trace) -> VulnerabilityView:
        app = trace.application
        return cls(
            title=trace.title,
            type=trace.rule_name,
            vuln_id=trace.uuid,
            severity=trace.severity,
            status=trace.status,
            app_id=app.app_id if app else None,
            app_name=app.name if app else None,
            first_seen_at=iso_timestamp(trace.first_time_seen),
            last_seen_at=iso_timestamp(trace.last_time_seen),
            closed_at=iso_timestamp(trace.closed_time),
            environments=trace.server_environments,
            tags=trace.tags,
            session_metadata=trace.session_metadata,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Parameters
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, kw_only=True)
class SearchVulnerabilitiesParams(BaseToolParams):
    app_id: str = ""
    severities: frozenset[Severity] | None = None
    statuses: tuple[str, ...] | None = None
    vuln_types: tuple[str, ...] | None = None
    environments: frozenset[Environment] | None = None
    last_seen_after: datetime | None = None
    last_seen_before: datetime | None = None
    vuln_tags: tuple[str, ...] | None = None
    session_metadata_name: str | None = None
    session_metadata_value: str | None = None
    use_latest_session: bool = False

    @classmethod
    def of(
        cls,
        app_id: str | None,
        severities: str | None = None,
        statuses: str | None = None,
        vuln_types: str | None = None,
        environments: str | None = None,
        last_seen_after: str | None = None,
        last_seen_before: str | None = None,
        vuln_tags: str | None = None,
        session_metadata_name: str | None = None,
        session_metadata_value: str | None = None,
        use_latest_session: bool | None = None,
    ) -> SearchVulnerabilitiesParams:
        ctx = ValidationContext()
        ctx.require_uuid(app_id, "appId")
        after = ctx.date(last_seen_after, "lastSeenAfter").get()
        before = ctx.date(last_seen_before, "lastSeenBefore").get()
        ctx.validate_date_range(after, before, "lastSeenAfter", "lastSeenBefore")
        ctx.warn_if(after is not None or before is not None, LAST_ACTIVITY_NOTE)
        ctx.require_if_present(session_metadata_value, "sessionMetadataValue",
                               session_metadata_name, "sessionMetadataName")
        return cls(
            app_id=(app_id or "").strip(),
            severities=ctx.enum_set(severities, Severity, "severities").get(),
            statuses=(ctx.string_list(statuses, "statuses")
                      .allowed_values(STATUSES)
                      .default_to(ACTIONABLE_STATUSES, ACTIONABLE_ONLY)
                      .get()),
            vuln_types=ctx.string_list(vuln_types, "vulnTypes").get(),
            environments=ctx.enum_set(environments, Environment, "environments").get(),
            last_seen_after=after,
            last_seen_before=before,
            vuln_tags=ctx.string_list(vuln_tags, "vulnTags").get(),
            session_metadata_name=ctx.string(session_metadata_name, "sessionMetadataName").get(),
            session_metadata_value=ctx.string(session_metadata_value, "sessionMetadataValue").get(),
            use_latest_session=bool(use_latest_session),
            errors=ctx.errors,
            warnings=ctx.warnings,
        )

    @property
    def needs_session_filtering(self) -> bool:
        return self.use_latest_session or self.session_metadata_name is not None

    def trace_filter(self) -> TraceFilter:
        """Filters the upstream can apply, with enum sets in declaration order."""
        return TraceFilter(
            severities=[s.value for s in Severity if s in self.severities] if self.severities else None,
            status=list(self.statuses) if self.statuses else None,
            vuln_types=list(self.vuln_types) if self.vuln_types else None,
            environments=[e.value for e in Environment if e in self.environments] if self.environments else None,
            start_date=TraceFilter.epoch_millis(self.last_seen_after),
            end_date=TraceFilter.epoch_millis(self.last_seen_before),
            filter_tags=list(self.vuln_tags) if self.vuln_tags else None,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Session Matching
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SessionMatcher:
    """In-memory trace predicate over session metadata.

    A trace matches when one of its session entries satisfies every constraint
    present: the session id, a metadata item whose display label equals
    ``name`` and whose value equals ``value`` (both case-insensitive; any value
    when ``value`` is None).
    """

    session_id: str | None = None
    name: str | None = None
    value: str | None = None

    def __call__(self, trace: Trace) -> bool:
        if self.session_id is None and self.name is None:
            return True
        return any(self._entry_matches(sm) for sm in trace.session_metadata)

    def _entry_matches(self, sm: SessionMetadata) -> bool:
        if self.session_id is not None and sm.session_id != self.session_id:
            return False
        if self.name is None:
            return True
        label = self.name.casefold()
        for item in sm.metadata:
            if item.display_label is None or item.display_label.casefold() != label:
                continue
            if self.value is None or (item.value is not None and item.value.casefold() == self.value.casefold()):
                return True
        return False


# ═══════════════════════════════════════════════════════════════════════════════
# Tool
# ═══════════════════════════════════════════════════════════════════════════════


def search_app_vulnerabilities(
    ctx: ServerContext,
    app_id: str | None = None,
    severities: str | None = None,
    statuses: str | None = None,
    vuln_types: str | None = None,
    environments: str | None = None,
    last_seen_after: str | None = None,
    last_seen_before: str | None = None,
    vuln_tags: str | None = None,
    session_metadata_name: str | None = None,
    session_metadata_value: str | None = None,
    use_latest_session: bool | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> PaginatedToolResponse[VulnerabilityView]:
    """Search the vulnerabilities of one application."""

    def execute(params: SearchVulnerabilitiesParams, pagination: PaginationParams,
                warnings: list[str]) -> ExecutionResult[VulnerabilityView]:
        if params.needs_session_filtering:
            return _search_by_session(ctx, params, pagination, warnings)
        page_ = ctx.client.get_traces(ctx.org_id, params.app_id, params.trace_filter(),
                                      offset=pagination.offset, limit=pagination.limit)
        if page_.traces is None:
            warnings.append(NO_TRACE_DATA)
            return ExecutionResult.empty()
        return ExecutionResult.of([VulnerabilityView.from_trace(t) for t in page_.traces], page_.count)

    return run_paginated(
        "search_app_vulnerabilities", page, page_size,
        lambda: SearchVulnerabilitiesParams.of(
            app_id, severities, statuses, vuln_types, environments, last_seen_after, last_seen_before,
            vuln_tags, session_metadata_name, session_metadata_value, use_latest_session),
        execute,
        max_page_size=ctx.settings.pagination.max_page_size,
        default_page_size=ctx.settings.pagination.default_page_size,
    )


def _search_by_session(
    ctx: ServerContext,
    params: SearchVulnerabilitiesParams,
    pagination: PaginationParams,
    warnings: list[str],
) -> ExecutionResult[VulnerabilityView]:
    org_id, app_id = ctx.org_id, params.app_id
    limits = ctx.settings.session_filter

    session_id: str | None = None
    if params.use_latest_session:
        session = ctx.client.get_latest_session(org_id, app_id)
        if session is None:
            warnings.append(NO_SESSIONS)
        else:
            session_id = session.agent_session_id

    trace_filter = params.trace_filter()

    def fetch_page(offset: int, limit: int) -> tuple[tuple[Trace, ...], int | None]:
        result = ctx.client.get_traces(org_id, app_id, trace_filter, offset=offset, limit=limit)
        return result.traces or (), result.count

    outcome = fetch_all_pages(
        fetch_page,
        keep=SessionMatcher(session_id, params.session_metadata_name, params.session_metadata_value),
        page_size=limits.fetch_page_size,
        max_pages=limits.max_pages,
        max_items=limits.max_traces,
    )
    if outcome.truncated:
        warnings.append(TRUNCATED.format(max_traces=limits.max_traces, max_pages=limits.max_pages))
    if outcome.failure is not None:
        warnings.append(PARTIAL.format(count=len(outcome.items), details=outcome.failure.render()))
    return paginate_in_memory([VulnerabilityView.from_trace(t) for t in outcome.items], pagination)
