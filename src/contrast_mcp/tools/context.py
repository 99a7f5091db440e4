"""Collaborators shared by every tool invocation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from contrast_mcp.client import (
    AgentSession,
    Application,
    AttackFilter,
    AttackPage,
    CveData,
    EventSummary,
    Library,
    LibraryObservation,
    Route,
    RouteCoverageRequest,
    Trace,
    TraceFilter,
    TracePage,
)
from contrast_mcp.foundation.config import ContrastSettings
from contrast_mcp.io.cache import CacheManager


class ContrastApi(Protocol):
    """Upstream operations the tools depend on."""

    def list_applications(self, org_id: str) -> list[Application]: ...

    def get_traces(self, org_id: str, app_id: str, trace_filter: TraceFilter, *,
                   offset: int = 0, limit: int = 50) -> TracePage: ...

    def get_latest_session(self, org_id: str, app_id: str) -> AgentSession | None: ...

    def list_libraries(self, org_id: str, app_id: str) -> list[Library]: ...

    def list_library_observations(self, org_id: str, app_id: str, library_id: str) -> list[LibraryObservation]: ...

    def get_trace(self, org_id: str, app_id: str, vuln_id: str) -> Trace | None: ...

    def get_recommendation(self, org_id: str, vuln_id: str) -> str | None: ...

    def get_http_request(self, org_id: str, vuln_id: str) -> str | None: ...

    def get_event_summary(self, org_id: str, vuln_id: str) -> EventSummary: ...

    def get_route_coverage(self, org_id: str, app_id: str,
                           request: RouteCoverageRequest | None = None) -> list[Route] | None: ...

    def search_attacks(self, org_id: str, attack_filter: AttackFilter, *,
                       offset: int = 0, limit: int = 50, sort: str | None = None) -> AttackPage: ...

    def get_cve(self, org_id: str, cve_id: str) -> CveData | None: ...


@dataclass(slots=True)
class ServerContext:
    """Settings, upstream client and caches for one server process.

    Example:
        >>> settings = get_settings()
        >>> ctx = ServerContext(settings, ContrastClient.from_settings(settings))
        >>> search_applications(ctx, name="shop")
    """

    settings: ContrastSettings
    client: ContrastApi
    caches: CacheManager = field(default=None)  # type: ignore[assignment]
    clock: Callable[[], float] | None = None

    def __post_init__(self) -> None:
        if self.caches is None:
            opts = {"clock": self.clock} if self.clock is not None else {}
            self.caches = CacheManager.from_settings(self.settings.cache, **opts)

    @property
    def org_id(self) -> str:
        if not self.settings.org_id:
            raise ValueError("CONTRAST_ORG_ID is not configured")
        return self.settings.org_id
