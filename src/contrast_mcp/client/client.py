"""Synchronous Contrast REST client over httpx.

Non-success statuses are raised as the typed errors from
``contrast_mcp.foundation.errors`` so the pipelines can classify them; network
failures surface as ``httpx.TransportError``.

Example:
    >>> with ContrastClient.from_settings(get_settings()) as client:
    ...     apps = client.list_applications(org_id)
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Self

import httpx
import orjson

from contrast_mcp.foundation.errors import (
    ForbiddenError,
    HttpStatusError,
    ResourceNotFoundError,
    UnauthorizedError,
)

from .models import (
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

if TYPE_CHECKING:
    from contrast_mcp.foundation.config import ContrastSettings

logger = logging.getLogger("contrast_mcp.client")

TRACE_EXPAND = "session_metadata,server_environments,application"
LIBRARY_PAGE_SIZE = 50
OBSERVATION_PAGE_SIZE = 25
MAX_LIST_PAGES = 200
ROUTE_EXPAND = "skip_links,observations"
DEFAULT_ATTACK_SORT = "-startTime"


class ContrastClient:
    """Thin typed wrapper around the Contrast REST API.

    Args:
        base_url: API root, e.g. ``https://app.contrastsecurity.com/Contrast/api``
        username: Account user name
        service_key: Account service key
        api_key: Organization API key
        timeout: Request timeout in seconds
        proxy: Optional proxy URL
        transport: Custom httpx transport (tests use ``httpx.MockTransport``)
    """

    __slots__ = ("_http",)

    def __init__(
        self,
        base_url: str,
        *,
        username: str,
        service_key: str,
        api_key: str,
        timeout: float = 30.0,
        proxy: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        token = base64.b64encode(f"{username}:{service_key}".encode()).decode()
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": token,
                "API-Key": api_key,
                "Accept": "application/json",
            },
            timeout=timeout,
            proxy=proxy,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: ContrastSettings, *, transport: httpx.BaseTransport | None = None) -> Self:
        """Build a client from settings. Raises ValueError naming any missing connection setting."""
        missing = settings.missing_credentials()
        if missing or settings.base_url is None:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")
        return cls(
            settings.base_url,
            username=settings.username or "",
            service_key=settings.service_key.get_secret_value() if settings.service_key else "",
            api_key=settings.api_key.get_secret_value() if settings.api_key else "",
            timeout=settings.timeout,
            proxy=settings.proxy_url,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ═══════════════════════════════════════════════════════════════════════════
    # Endpoints
    # ═══════════════════════════════════════════════════════════════════════════

    def list_applications(self, org_id: str) -> list[Application]:
        body = self._request("GET", f"/ng/{org_id}/applications",
                             params={"expand": "metadata,technologies,skip_links"})
        return [Application.model_validate(a) for a in _list(body, "applications")]

    def get_traces(
        self,
        org_id: str,
        app_id: str,
        trace_filter: TraceFilter,
        *,
        offset: int = 0,
        limit: int = 50,
    ) -> TracePage:
        """One page of traces for an application, newest activity first."""
        body = self._request(
            "POST",
            f"/ng/{org_id}/traces/{app_id}/filter",
            params={"offset": offset, "limit": limit, "sort": "-lastTimeSeen", "expand": TRACE_EXPAND},
            json=trace_filter.to_body(),
        )
        return TracePage.model_validate(body or {})

    def get_latest_session(self, org_id: str, app_id: str) -> AgentSession | None:
        """Latest agent session of an application, or None when it has none."""
        try:
            body = self._request(
                "GET", f"/ng/organizations/{org_id}/applications/{app_id}/agent-sessions/latest")
        except ResourceNotFoundError:
            return None
        session = body.get("agentSession") if isinstance(body, Mapping) else None
        if not session or not session.get("agentSessionId"):
            return None
        return AgentSession.model_validate(session)

    def list_libraries(self, org_id: str, app_id: str) -> list[Library]:
        """Every library of an application, with its known vulnerabilities."""
        libraries: list[Library] = []
        offset = 0
        for _ in range(MAX_LIST_PAGES):
            body = self._request(
                "GET", f"/ng/{org_id}/applications/{app_id}/libraries",
                params={"expand": "vulns", "offset": offset, "limit": LIBRARY_PAGE_SIZE})
            batch = _list(body, "libraries")
            libraries.extend(Library.model_validate(lib) for lib in batch)
            offset += len(batch)
            if len(batch) < LIBRARY_PAGE_SIZE:
                return libraries
        logger.warning("Library listing for application %s stopped at the %d page cap (%d libraries)",
                       app_id, MAX_LIST_PAGES, len(libraries))
        return libraries

    def list_library_observations(self, org_id: str, app_id: str, library_id: str) -> list[LibraryObservation]:
        """Every class usage observation recorded for one library, most recent first."""
        observations: list[LibraryObservation] = []
        offset = 0
        for _ in range(MAX_LIST_PAGES):
            body = self._request(
                "GET",
                f"/ng/organizations/{org_id}/applications/{app_id}/libraries/{library_id}/reports/library-usage",
                params={"offset": offset, "limit": OBSERVATION_PAGE_SIZE,
                        "sortBy": "lastObservedTime", "sortDirection": "DESC"},
            )
            batch = _list(body, "observations")
            observations.extend(LibraryObservation.model_validate(o) for o in batch)
            offset += len(batch)
            total = body.get("total") if isinstance(body, Mapping) else None
            if not batch or (isinstance(total, int) and offset >= total):
                return observations
        logger.warning("Observation listing for library %s stopped at the %d page cap (%d observations)",
                       library_id, MAX_LIST_PAGES, len(observations))
        return observations

    def get_trace(self, org_id: str, app_id: str, vuln_id: str) -> Trace | None:
        """One trace of an application by id, or None when there is no such trace."""
        try:
            body = self._request("GET", f"/ng/{org_id}/traces/{app_id}/trace/{vuln_id}",
                                 params={"expand": TRACE_EXPAND})
        except ResourceNotFoundError:
            return None
        trace = body.get("trace") if isinstance(body, Mapping) else None
        return Trace.model_validate(trace) if trace else None

    def get_recommendation(self, org_id: str, vuln_id: str) -> str | None:
        body = self._request("GET", f"/ng/{org_id}/traces/{vuln_id}/recommendation")
        return _text(body, "recommendation")

    def get_http_request(self, org_id: str, vuln_id: str) -> str | None:
        body = self._request("GET", f"/ng/{org_id}/traces/{vuln_id}/httprequest")
        return _text(body, "http_request")

    def get_event_summary(self, org_id: str, vuln_id: str) -> EventSummary:
        body = self._request("GET", f"/ng/{org_id}/traces/{vuln_id}/events/summary")
        return EventSummary.model_validate(body or {})

    def get_route_coverage(
        self,
        org_id: str,
        app_id: str,
        request: RouteCoverageRequest | None = None,
    ) -> list[Route] | None:
        """Routes of an application with observations inline.

        Unfiltered coverage is a GET; a session filter is posted to the filter
        endpoint. Returns None when the upstream sends no body at all.
        """
        path = f"/ng/{org_id}/applications/{app_id}/route"
        params = {"expand": ROUTE_EXPAND}
        if request is None:
            body = self._request("GET", path, params=params)
        else:
            body = self._request("POST", f"{path}/filter", params=params, json=request.to_body())
        if not isinstance(body, Mapping):
            return None
        return [Route.model_validate(r) for r in _list(body, "routes")]

    def search_attacks(
        self,
        org_id: str,
        attack_filter: AttackFilter,
        *,
        offset: int = 0,
        limit: int = 50,
        sort: str | None = None,
    ) -> AttackPage:
        """One page of attacks across the organization, newest first unless ``sort`` says otherwise."""
        body = self._request(
            "POST",
            f"/ng/{org_id}/attacks",
            params={"expand": "skip_links", "offset": offset, "limit": limit, "sort": sort or DEFAULT_ATTACK_SORT},
            json=attack_filter.to_body(),
        )
        return AttackPage.model_validate(body or {})

    def get_cve(self, org_id: str, cve_id: str) -> CveData | None:
        """A CVE with the organization's affected libraries and applications, or None if unknown."""
        try:
            body = self._request("GET", f"/ng/organizations/{org_id}/cves/{cve_id}")
        except ResourceNotFoundError:
            return None
        return CveData.model_validate(body) if isinstance(body, Mapping) else None

    # ─────────────────────────────────────────────────────────────────────────
    # Transport
    # ─────────────────────────────────────────────────────────────────────────

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: object = None,
    ) -> Any:
        content = orjson.dumps(json) if json is not None else None
        headers = {"Content-Type": "application/json"} if content is not None else None
        logger.debug("%s %s params=%s", method, path, params)
        response = self._http.request(method, path, params=params, content=content, headers=headers)
        _raise_for_status(response, path)
        return orjson.loads(response.content) if response.content else None


def _raise_for_status(response: httpx.Response, path: str) -> None:
    status = response.status_code
    if status < 400:
        return
    logger.debug("HTTP %d from %s", status, path)
    match status:
        case 401: raise UnauthorizedError(path)
        case 403: raise ForbiddenError(path)
        case 404: raise ResourceNotFoundError(path)
        case _: raise HttpStatusError(path, status=status)


def _list(body: object, key: str) -> list[Any]:
    if not isinstance(body, Mapping):
        return []
    return body.get(key) or []


def _text(body: object, key: str) -> str | None:
    block = body.get(key) if isinstance(body, Mapping) else None
    return block.get("text") if isinstance(block, Mapping) else None
