"""Application discovery tools.

The organization's application list is fetched once per cache TTL and
filtered in memory; the upstream listing has no name, tag or metadata filter.
"""

from __future__ import annotations

from dataclasses import dataclass

from contrast_mcp.client import Application
from contrast_mcp.runtime import (
    BaseToolParams,
    ExecutionResult,
    PaginatedToolResponse,
    PaginationParams,
    ToolResponse,
    filter_and_paginate,
    run_paginated,
    run_single,
)
from contrast_mcp.validation import MetadataFilter, ValidationContext

from .context import ServerContext


def cached_applications(ctx: ServerContext, *, refresh: bool = False) -> list[Application]:
    """Every application of the organization, from cache when fresh."""
    org_id = ctx.org_id
    cache = ctx.caches.applications
    if refresh:
        cache.invalidate(org_id)
    return cache.get_or_compute(org_id, lambda: ctx.client.list_applications(org_id))


# ═══════════════════════════════════════════════════════════════════════════════
# search_applications
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, kw_only=True)
class SearchApplicationsParams(BaseToolParams):
    name: str | None = None
    tag: str | None = None
    metadata_filters: tuple[MetadataFilter, ...] | None = None

    @classmethod
    def of(cls, name: str | None, tag: str | None, metadata_filters: str | None) -> SearchApplicationsParams:
        ctx = ValidationContext()
        return cls(
            name=ctx.string(name, "name").get(),
            tag=ctx.string(tag, "tag").get(),
            metadata_filters=ctx.metadata_filter(metadata_filters, "metadataFilters").get(),
            errors=ctx.errors,
            warnings=ctx.warnings,
        )

    def matches(self, app: Application) -> bool:
        """Name is a case-insensitive substring, tag is exact, every metadata filter matches."""
        if self.name and self.name.casefold() not in app.name.casefold():
            return False
        if self.tag and self.tag not in app.tags:
            return False
        return all(f.matches(app.metadata_value(f.field_name)) for f in self.metadata_filters or ())


def search_applications(
    ctx: ServerContext,
    name: str | None = None,
    tag: str | None = None,
    metadata_filters: str | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> PaginatedToolResponse[Application]:
    """Search applications by name, tag and metadata field values."""

    def execute(params: SearchApplicationsParams, pagination: PaginationParams,
                warnings: list[str]) -> ExecutionResult[Application]:
        return filter_and_paginate(cached_applications(ctx), params.matches, pagination)

    return run_paginated(
        "search_applications", page, page_size,
        lambda: SearchApplicationsParams.of(name, tag, metadata_filters),
        execute,
        max_page_size=ctx.settings.pagination.max_page_size,
        default_page_size=ctx.settings.pagination.default_page_size,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# get_application
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, kw_only=True)
class GetApplicationParams(BaseToolParams):
    app_name: str = ""

    @classmethod
    def of(cls, app_name: str | None) -> GetApplicationParams:
        ctx = ValidationContext()
        return cls(app_name=ctx.string(app_name, "appName").required().get() or "",
                   errors=ctx.errors, warnings=ctx.warnings)


def _by_name(apps: list[Application], name: str) -> Application | None:
    wanted = name.casefold()
    return next((a for a in apps if a.name.casefold() == wanted), None)


def find_application(ctx: ServerContext, name: str) -> Application | None:
    """Application with exactly this name (case-insensitive).

    A miss on the cached list refreshes it once, so newly onboarded
    applications are found without waiting for the TTL.
    """
    found = _by_name(cached_applications(ctx), name)
    if found is None:
        found = _by_name(cached_applications(ctx, refresh=True), name)
    return found


def get_application(ctx: ServerContext, app_name: str | None = None) -> ToolResponse[Application]:
    """Look up one application by exact name (case-insensitive)."""

    def execute(params: GetApplicationParams, warnings: list[str]) -> Application | None:
        return find_application(ctx, params.app_name)

    return run_single("get_application", lambda: GetApplicationParams.of(app_name), execute)
