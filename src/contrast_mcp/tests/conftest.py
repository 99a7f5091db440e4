"""Shared fixtures: fake clock, fake Contrast API, settings and captured logs."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from contrast_mcp.client import (
    AgentSession,
    Application,
    Attack,
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
from contrast_mcp.foundation.config import ContrastSettings, clear_settings_cache
from contrast_mcp.foundation.logging import MemoryRenderer, configure_logging
from contrast_mcp.tools import ServerContext

ORG_ID = "org-1"
APP_ID = "550e8400-e29b-41d4-a716-446655440000"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeContrastApi:
    """In-memory stand-in for ContrastClient that records every call.

    ``traces`` is paged by offset/limit like the upstream filter endpoint;
    ``fail_traces_at`` raises the given exception for a specific offset.
    ``failures`` raises for every call of the named method; per-application
    library lists and per-library observations override the shared defaults.
    """

    def __init__(self) -> None:
        self.applications: list[Application] = []
        self.traces: list[Trace] = []
        self.traces_missing = False
        self.session: AgentSession | None = None
        self.libraries: list[Library] = []
        self.observations: list[LibraryObservation] = []
        self.libraries_by_app: dict[str, list[Library] | Exception] = {}
        self.observations_by_library: dict[str, list[LibraryObservation]] = {}
        self.recommendation: str | None = None
        self.http_request: str | None = None
        self.event_summary = EventSummary()
        self.routes: list[Route] | None = []
        self.route_requests: list[RouteCoverageRequest | None] = []
        self.attacks: list[Attack] = []
        self.attacks_missing = False
        self.attack_requests: list[tuple[AttackFilter, str | None]] = []
        self.cve: CveData | None = None
        self.failures: dict[str, Exception] = {}
        self.fail_traces_at: dict[int, Exception] = {}
        self.error: Exception | None = None
        self.calls: list[tuple[str, tuple[object, ...]]] = []
        self.filters: list[TraceFilter] = []

    def _record(self, name: str, *args: object) -> None:
        self.calls.append((name, args))
        if self.error is not None:
            raise self.error
        if name in self.failures:
            raise self.failures[name]

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    def list_applications(self, org_id: str) -> list[Application]:
        self._record("list_applications", org_id)
        return list(self.applications)

    def get_traces(self, org_id: str, app_id: str, trace_filter: TraceFilter, *,
                   offset: int = 0, limit: int = 50) -> TracePage:
        self._record("get_traces", org_id, app_id, offset, limit)
        self.filters.append(trace_filter)
        if offset in self.fail_traces_at:
            raise self.fail_traces_at[offset]
        if self.traces_missing:
            return TracePage()
        return TracePage(traces=tuple(self.traces[offset:offset + limit]), count=len(self.traces))

    def get_latest_session(self, org_id: str, app_id: str) -> AgentSession | None:
        self._record("get_latest_session", org_id, app_id)
        return self.session

    def list_libraries(self, org_id: str, app_id: str) -> list[Library]:
        self._record("list_libraries", org_id, app_id)
        libraries = self.libraries_by_app.get(app_id, self.libraries)
        if isinstance(libraries, Exception):
            raise libraries
        return list(libraries)

    def list_library_observations(self, org_id: str, app_id: str, library_id: str) -> list[LibraryObservation]:
        self._record("list_library_observations", org_id, app_id, library_id)
        return list(self.observations_by_library.get(library_id, self.observations))

    def get_trace(self, org_id: str, app_id: str, vuln_id: str) -> Trace | None:
        self._record("get_trace", org_id, app_id, vuln_id)
        return next((t for t in self.traces if t.uuid == vuln_id), None)

    def get_recommendation(self, org_id: str, vuln_id: str) -> str | None:
        self._record("get_recommendation", org_id, vuln_id)
        return self.recommendation

    def get_http_request(self, org_id: str, vuln_id: str) -> str | None:
        self._record("get_http_request", org_id, vuln_id)
        return self.http_request

    def get_event_summary(self, org_id: str, vuln_id: str) -> EventSummary:
        self._record("get_event_summary", org_id, vuln_id)
        return self.event_summary

    def get_route_coverage(self, org_id: str, app_id: str,
                           request: RouteCoverageRequest | None = None) -> list[Route] | None:
        self._record("get_route_coverage", org_id, app_id)
        self.route_requests.append(request)
        return None if self.routes is None else list(self.routes)

    def search_attacks(self, org_id: str, attack_filter: AttackFilter, *,
                       offset: int = 0, limit: int = 50, sort: str | None = None) -> AttackPage:
        self._record("search_attacks", org_id, offset, limit)
        self.attack_requests.append((attack_filter, sort))
        if self.attacks_missing:
            return AttackPage()
        return AttackPage(attacks=tuple(self.attacks[offset:offset + limit]), total=len(self.attacks))

    def get_cve(self, org_id: str, cve_id: str) -> CveData | None:
        self._record("get_cve", org_id, cve_id)
        return self.cve


def make_trace(uuid: str, *sessions: tuple[str, dict[str, str]], **fields: object) -> Trace:
    """Trace with session metadata given as (session_id, {display_label: value}) pairs."""
    session_metadata = [
        {"session_id": sid, "metadata": [{"display_label": k, "value": v} for k, v in items.items()]}
        for sid, items in sessions
    ]
    return Trace.model_validate({"uuid": uuid, "title": f"Trace {uuid}", "session_metadata": session_metadata,
                                 **fields})


def make_app(app_id: str, name: str, *, tags: tuple[str, ...] = (), **metadata: str) -> Application:
    return Application.model_validate({
        "app_id": app_id,
        "name": name,
        "tags": list(tags),
        "metadataEntities": [{"fieldName": k, "fieldValue": v} for k, v in metadata.items()],
    })


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def api() -> FakeContrastApi:
    return FakeContrastApi()


@pytest.fixture
def settings() -> ContrastSettings:
    return ContrastSettings(
        _env_file=None,
        host_name="teamserver.example.com",
        api_key="api-key",
        service_key="service-key",
        username="someone@example.com",
        org_id=ORG_ID,
    )


@pytest.fixture
def ctx(settings: ContrastSettings, api: FakeContrastApi, clock: FakeClock) -> ServerContext:
    return ServerContext(settings, api, clock=clock)


@pytest.fixture
def logs() -> Iterator[MemoryRenderer]:
    """Capture structured log entries at DEBUG and silence output afterwards."""
    renderer = MemoryRenderer()
    configure_logging(level="DEBUG", renderer=renderer)
    yield renderer
    configure_logging("none")


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    clear_settings_cache()
    yield
    clear_settings_cache()
