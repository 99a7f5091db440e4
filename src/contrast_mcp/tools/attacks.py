"""Attack search across the organization (Contrast Protect).

Filtering, sorting and paging are all done upstream; the tool validates the
arguments and reshapes each attack into a compact summary.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from contrast_mcp.client import Attack, AttackApplication, AttackFilter, iso_timestamp
from contrast_mcp.runtime import (
    BaseToolParams,
    ExecutionResult,
    PaginatedToolResponse,
    PaginationParams,
    run_paginated,
)
from contrast_mcp.validation import ValidationContext

from .context import ServerContext

QUICK_FILTERS = ("ALL", "ACTIVE", "MANUAL", "AUTOMATED", "PRODUCTION", "EFFECTIVE")
STATUS_FILTERS = ("EXPLOITED", "PROBED", "BLOCKED", "BLOCKED_PERIMETER", "PROBED_PERIMETER", "SUSPICIOUS")
SORT_FIELDS = ("sourceIP", "status", "startTime", "endTime", "type")

NO_QUICK_FILTER = "No quickFilter applied - showing all attack types"
SUPPRESSED_EXCLUDED = ("Excluding suppressed attacks by default. "
                       "To see all attacks including suppressed, set includeSuppressed=true.")
INVALID_SORT = ("Invalid sort field '{field}'. Valid fields: {valid}. Use '-' prefix for descending order "
                "(e.g., '-startTime'). Default: -startTime")
NO_ATTACK_DATA = "API returned no attack data. Verify permissions and filters."


class AttackedApplication(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    application_id: str | None = None
    application_name: str | None = None
    language: str | None = None
    severity: str | None = None
    status: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    start_time_ms: int | None = None
    end_time_ms: int | None = None

    @classmethod
    def from_payload(cls, entry: AttackApplication) -> AttackedApplication:
        app = entry.application
        return cls(
            application_id=app.app_id if app else None,
            application_name=app.name if app else None,
            language=app.language if app else None,
            severity=entry.severity,
            status=entry.status,
            start_time=iso_timestamp(entry.start_time),
            end_time=iso_timestamp(entry.end_time),
            start_time_ms=entry.start_time,
            end_time_ms=entry.end_time,
        )


class AttackSummary(BaseModel):
    """Compact attack summary returned to the caller."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    attack_id: str
    status: str | None = None
    source: str | None = None
    rules: tuple[str, ...] = ()
    probes: int = 0
    start_time: str | None = None
    end_time: str | None = None
    start_time_ms: int | None = None
    end_time_ms: int | None = None
    first_event_time: str | None = None
    last_event_time: str | None = None
    first_event_time_ms: int | None = None
    last_event_time_ms: int | None = None
    applications: tuple[AttackedApplication, ...] = ()

    @classmethod
    def from_attack(cls, attack: Attack) -> AttackSummary:
        return cls(
            attack_id=attack.uuid,
            status=attack.status,
            source=attack.source,
            rules=attack.rules,
            probes=attack.probes,
            start_time=iso_timestamp(attack.start_time),
            end_time=iso_timestamp(attack.end_time),
            start_time_ms=attack.start_time,
            end_time_ms=attack.end_time,
            first_event_time=iso_timestamp(attack.first_event_time),
            last_event_time=iso_timestamp(attack.last_event_time),
            first_event_time_ms=attack.first_event_time,
            last_event_time_ms=attack.last_event_time,
            applications=tuple(AttackedApplication.from_payload(a) for a in attack.attacks_application),
        )


@dataclass(frozen=True, kw_only=True)
class SearchAttacksParams(BaseToolParams):
    quick_filter: str = "ALL"
    status_filters: tuple[str, ...] | None = None
    keyword: str | None = None
    include_suppressed: bool = False
    include_bot_blockers: bool = False
    include_ip_blacklist: bool = False
    sort: str | None = None

    @classmethod
    def of(
        cls,
        quick_filter: str | None = None,
        status_filter: str | None = None,
        keyword: str | None = None,
        include_suppressed: bool | None = None,
        include_bot_blockers: bool | None = None,
        include_ip_blacklist: bool | None = None,
        sort: str | None = None,
    ) -> SearchAttacksParams:
        ctx = ValidationContext()
        quick = (ctx.string(quick_filter, "quickFilter")
                 .to_upper()
                 .allowed_values(QUICK_FILTERS)
                 .default_to("ALL", NO_QUICK_FILTER)
                 .get())
        statuses = ctx.string_list(status_filter, "statusFilter").to_upper().allowed_values(STATUS_FILTERS).get()
        ctx.warn_if(include_suppressed is None, SUPPRESSED_EXCLUDED)
        sort_ = ctx.string(sort, "sort").get()
        sort_field = sort_.removeprefix("-") if sort_ else None
        ctx.error_if(sort_field is not None and sort_field not in SORT_FIELDS,
                     INVALID_SORT.format(field=sort_field, valid=", ".join(sorted(SORT_FIELDS))))
        return cls(
            quick_filter=quick or "ALL",
            status_filters=statuses,
            keyword=ctx.string(keyword, "keyword").get(),
            include_suppressed=bool(include_suppressed),
            include_bot_blockers=bool(include_bot_blockers),
            include_ip_blacklist=bool(include_ip_blacklist),
            sort=sort_,
            errors=ctx.errors,
            warnings=ctx.warnings,
        )

    def attack_filter(self) -> AttackFilter:
        return AttackFilter(
            quick_filter=self.quick_filter,
            keyword=self.keyword or "",
            include_suppressed=self.include_suppressed,
            include_bot_blockers=self.include_bot_blockers,
            include_ip_blacklist=self.include_ip_blacklist,
            status_filter=list(self.status_filters or ()),
        )


def search_attacks(
    ctx: ServerContext,
    quick_filter: str | None = None,
    status_filter: str | None = None,
    keyword: str | None = None,
    include_suppressed: bool | None = None,
    include_bot_blockers: bool | None = None,
    include_ip_blacklist: bool | None = None,
    sort: str | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> PaginatedToolResponse[AttackSummary]:
    """Search attacks by categorization, outcome and keyword."""

    def execute(params: SearchAttacksParams, pagination: PaginationParams,
                warnings: list[str]) -> ExecutionResult[AttackSummary]:
        result = ctx.client.search_attacks(ctx.org_id, params.attack_filter(),
                                           offset=pagination.offset, limit=pagination.limit, sort=params.sort)
        if result.attacks is None:
            warnings.append(NO_ATTACK_DATA)
            return ExecutionResult.empty()
        return ExecutionResult.of([AttackSummary.from_attack(a) for a in result.attacks], result.total_count)

    return run_paginated(
        "search_attacks", page, page_size,
        lambda: SearchAttacksParams.of(quick_filter, status_filter, keyword, include_suppressed,
                                       include_bot_blockers, include_ip_blacklist, sort),
        execute,
        max_page_size=ctx.settings.pagination.max_page_size,
        default_page_size=ctx.settings.pagination.default_page_size,
    )
