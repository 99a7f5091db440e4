"""Third-party library tools.

Library lists and usage observations are fetched whole, cached, and paginated
in memory.
"""

from __future__ import annotations

from dataclasses import dataclass

from contrast_mcp.client import Library, LibraryObservation
from contrast_mcp.runtime import (
    BaseToolParams,
    ExecutionResult,
    PaginatedToolResponse,
    PaginationParams,
    paginate_in_memory,
    run_paginated,
)
from contrast_mcp.validation import ValidationContext

from .context import ServerContext

LIBRARIES_MAX_PAGE_SIZE = 50

NO_LIBRARIES = ("No libraries found for this application. The application may not have any third-party "
                "dependencies, or library data may not have been collected yet.")


def cached_libraries(ctx: ServerContext, app_id: str) -> list[Library]:
    """Every library of an application, from cache when fresh."""
    org_id = ctx.org_id
    return ctx.caches.libraries.get_or_compute(
        f"{org_id}:{app_id}", lambda: ctx.client.list_libraries(org_id, app_id))


def cached_observations(ctx: ServerContext, app_id: str, library_id: str) -> list[LibraryObservation]:
    """Every usage observation of one library, from cache when fresh."""
    org_id = ctx.org_id
    return ctx.caches.library_observations.get_or_compute(
        f"{org_id}:{app_id}:{library_id}",
        lambda: ctx.client.list_library_observations(org_id, app_id, library_id))


@dataclass(frozen=True, kw_only=True)
class ApplicationLibrariesParams(BaseToolParams):
    app_id: str = ""

    @classmethod
    def of(cls, app_id: str | None) -> ApplicationLibrariesParams:
        ctx = ValidationContext()
        ctx.require_uuid(app_id, "appId")
        return cls(app_id=(app_id or "").strip(), errors=ctx.errors, warnings=ctx.warnings)


@dataclass(frozen=True, kw_only=True)
class LibraryObservationsParams(BaseToolParams):
    app_id: str = ""
    library_id: str = ""

    @classmethod
    def of(cls, app_id: str | None, library_id: str | None) -> LibraryObservationsParams:
        ctx = ValidationContext()
        ctx.require_uuid(app_id, "appId")
        return cls(
            app_id=(app_id or "").strip(),
            library_id=ctx.string(library_id, "libraryId").required().get() or "",
            errors=ctx.errors,
            warnings=ctx.warnings,
        )


def list_application_libraries(
    ctx: ServerContext,
    app_id: str | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> PaginatedToolResponse[Library]:
    """Libraries used by an application, with vulnerability counts."""

    def execute(params: ApplicationLibrariesParams, pagination: PaginationParams,
                warnings: list[str]) -> ExecutionResult[Library]:
        libraries = cached_libraries(ctx, params.app_id)
        if not libraries:
            warnings.append(NO_LIBRARIES)
        return paginate_in_memory(libraries, pagination)

    return run_paginated(
        "list_application_libraries", page, page_size,
        lambda: ApplicationLibrariesParams.of(app_id),
        execute,
        max_page_size=min(LIBRARIES_MAX_PAGE_SIZE, ctx.settings.pagination.max_page_size),
        default_page_size=ctx.settings.pagination.default_page_size,
    )


def list_library_observations(
    ctx: ServerContext,
    app_id: str | None = None,
    library_id: str | None = None,
    page: int | None = None,
    page_size: int | None = None,
) -> PaginatedToolResponse[LibraryObservation]:
    """Classes of one library observed in use at runtime, most recent first."""

    def execute(params: LibraryObservationsParams, pagination: PaginationParams,
                warnings: list[str]) -> ExecutionResult[LibraryObservation]:
        return paginate_in_memory(cached_observations(ctx, params.app_id, params.library_id), pagination)

    return run_paginated(
        "list_library_observations", page, page_size,
        lambda: LibraryObservationsParams.of(app_id, library_id),
        execute,
        max_page_size=ctx.settings.pagination.max_page_size,
        default_page_size=ctx.settings.pagination.default_page_size,
    )
