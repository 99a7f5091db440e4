"""Tests for the Contrast REST client against a mocked transport."""

from __future__ import annotations

import base64
from collections.abc import Callable

import httpx
import orjson
import pytest

import contrast_mcp.client.client as client_module
from contrast_mcp.client import AttackFilter, ContrastClient, RouteCoverageRequest, TraceFilter
from contrast_mcp.foundation.config import ContrastSettings
from contrast_mcp.foundation.errors import ForbiddenError, HttpStatusError, ResourceNotFoundError, UnauthorizedError

BASE = "https://teamserver.example.com/Contrast/api"

Handler = Callable[[httpx.Request], httpx.Response]


def _client(handler: Handler) -> ContrastClient:
    return ContrastClient(BASE, username="someone", service_key="svc", api_key="key",
                          transport=httpx.MockTransport(handler))


def _json(body: object, status: int = 200) -> httpx.Response:
    return httpx.Response(status, content=orjson.dumps(body), headers={"Content-Type": "application/json"})


# ═════════════════════════════════════════════════════════════════════════════
# Requests
# ═════════════════════════════════════════════════════════════════════════════


def test_auth_headers() -> None:
    """Requests carry the base64 user:service-key token and the API key."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _json({"applications": []})

    _client(handler).list_applications("org")
    request = seen[0]
    assert request.headers["Authorization"] == base64.b64encode(b"someone:svc").decode()
    assert request.headers["API-Key"] == "key"
    assert request.url.path == "/Contrast/api/ng/org/applications"
    assert request.url.params["expand"] == "metadata,technologies,skip_links"


def test_list_applications_parses_models() -> None:
    """Application payloads validate into models; unknown fields are ignored."""

    def handler(request: httpx.Request) -> httpx.Response:
        return _json({"applications": [{
            "app_id": "a1", "name": "Shop", "tags": None, "unknown": 1,
            "metadataEntities": [{"fieldName": "Team", "fieldValue": "payments"}],
        }]})

    apps = _client(handler).list_applications("org")
    assert apps[0].app_id == "a1"
    assert apps[0].tags == ()
    assert apps[0].metadata_value("team") == "payments"


def test_get_traces_posts_filter() -> None:
    """The trace filter is posted as a camelCase JSON body with paging params."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _json({"traces": [{"uuid": "t1", "title": "SQLi", "session_metadata": None}], "count": 7})

    page = _client(handler).get_traces(
        "org", "app", TraceFilter(severities=["HIGH"], start_date=1), offset=50, limit=25)
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path.endswith("/ng/org/traces/app/filter")
    assert request.url.params["offset"] == "50"
    assert request.url.params["limit"] == "25"
    assert request.url.params["sort"] == "-lastTimeSeen"
    assert orjson.loads(request.content) == {"severities": ["HIGH"], "startDate": 1}
    assert page.count == 7
    assert page.traces is not None and page.traces[0].uuid == "t1"


def test_latest_session_missing_is_none() -> None:
    """A 404 or an empty agentSession means no session."""
    assert _client(lambda r: httpx.Response(404)).get_latest_session("org", "app") is None
    assert _client(lambda r: _json({"success": True, "agentSession": None})).get_latest_session("org", "app") is None


def test_latest_session_parses() -> None:
    """The agentSession wrapper is unwrapped into a model."""
    body = {"agentSession": {"agentSessionId": "s1", "createdDate": 1.7e12,
                             "metadataSessions": [{"displayLabel": "Branch", "value": "main"}]}}
    session = _client(lambda r: _json(body)).get_latest_session("org", "app")
    assert session is not None
    assert session.agent_session_id == "s1"
    assert session.created_date == 1_700_000_000_000
    assert session.metadata_sessions[0].display_label == "Branch"


def test_library_observations_pages_until_total() -> None:
    """Observation pages are requested until the reported total is reached."""
    offsets: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        offset = int(request.url.params["offset"])
        offsets.append(str(offset))
        names = [{"name": f"C{i}"} for i in range(offset, min(offset + 25, 30))]
        return _json({"observations": names, "total": 30})

    observations = _client(handler).list_library_observations("org", "app", "lib")
    assert len(observations) == 30
    assert offsets == ["0", "25"]


def test_libraries_page_until_short_page() -> None:
    """Library pages are requested until a short page arrives."""
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        offset = int(request.url.params["offset"])
        calls.append(offset)
        count = 50 if offset == 0 else 3
        return _json({"libraries": [{"hash": f"h{offset + i}", "file_name": "x.jar"} for i in range(count)]})

    libraries = _client(handler).list_libraries("org", "app")
    assert len(libraries) == 53
    assert calls == [0, 50]


def test_library_paging_stops_at_page_cap(monkeypatch: pytest.MonkeyPatch,
                                          caplog: pytest.LogCaptureFixture) -> None:
    """An upstream that never sends a short page is cut off at the page cap with a warning."""
    monkeypatch.setattr(client_module, "MAX_LIST_PAGES", 3)
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(int(request.url.params["offset"]))
        return _json({"libraries": [{"hash": f"h{i}"} for i in range(50)]})

    with caplog.at_level("WARNING", logger="contrast_mcp.client"):
        libraries = _client(handler).list_libraries("org", "app")
    assert calls == [0, 50, 100]
    assert len(libraries) == 150
    assert "page cap" in caplog.text


def test_observation_paging_stops_at_page_cap(monkeypatch: pytest.MonkeyPatch,
                                              caplog: pytest.LogCaptureFixture) -> None:
    """Observation paging stops at the cap even when the reported total is never reached."""
    monkeypatch.setattr(client_module, "MAX_LIST_PAGES", 2)

    def handler(request: httpx.Request) -> httpx.Response:
        return _json({"observations": [{"name": "C"}] * 25, "total": 10_000})

    with caplog.at_level("WARNING", logger="contrast_mcp.client"):
        observations = _client(handler).list_library_observations("org", "app", "lib")
    assert len(observations) == 50
    assert "lib stopped at the 2 page cap" in caplog.text


# ═════════════════════════════════════════════════════════════════════════════
# Details, Routes, Attacks, CVEs
# ═════════════════════════════════════════════════════════════════════════════


def test_get_trace_missing_is_none() -> None:
    """A 404 for a single trace means it does not exist."""
    assert _client(lambda r: httpx.Response(404)).get_trace("org", "app", "t1") is None


def test_vulnerability_detail_endpoints() -> None:
    """Trace, recommendation, HTTP request and event summary unwrap their wrappers."""
    bodies = {
        "/Contrast/api/ng/org/traces/app/trace/t1": {
            "trace": {"uuid": "t1", "title": "SQLi", "rule_name": "sql-injection"}},
        "/Contrast/api/ng/org/traces/t1/recommendation": {"recommendation": {"text": "Use prepared statements"}},
        "/Contrast/api/ng/org/traces/t1/httprequest": {"http_request": {"text": "GET /login"}},
        "/Contrast/api/ng/org/traces/t1/events/summary": {"events": [
            {"type": "Creation", "event": {"stacktraces": [{"description": "ignored"}]}},
            {"type": "Trigger", "event": {"stacktraces": [{"description": "org.h2.Driver.run"}, {}]}},
        ]},
    }
    client = _client(lambda r: _json(bodies[r.url.path]))
    trace = client.get_trace("org", "app", "t1")
    assert trace is not None and trace.rule_name == "sql-injection"
    assert client.get_recommendation("org", "t1") == "Use prepared statements"
    assert client.get_http_request("org", "t1") == "GET /login"
    assert client.get_event_summary("org", "t1").trigger_frames() == ["org.h2.Driver.run"]


def test_route_coverage_get_and_filtered_post() -> None:
    """Unfiltered coverage is a GET; a session filter is posted to the filter endpoint."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _json({"success": True, "routes": [{"signature": "GET /a", "status": "EXERCISED",
                                                   "route_hash": "r1", "observations": None}]})

    client = _client(handler)
    routes = client.get_route_coverage("org", "app")
    assert routes is not None and routes[0].route_hash == "r1"
    assert routes[0].observations == ()
    client.get_route_coverage("org", "app", RouteCoverageRequest.for_metadata("branch", "main"))
    assert seen[0].method == "GET"
    assert seen[0].url.path.endswith("/ng/org/applications/app/route")
    assert seen[0].url.params["expand"] == "skip_links,observations"
    assert seen[1].method == "POST"
    assert seen[1].url.path.endswith("/route/filter")
    assert orjson.loads(seen[1].content) == {"values": [{"label": "branch", "values": ["main"]}]}


def test_route_coverage_null_routes() -> None:
    """Null routes become an empty list; an empty body is None."""
    assert _client(lambda r: _json({"success": True, "routes": None})).get_route_coverage("org", "app") == []
    assert _client(lambda r: httpx.Response(200)).get_route_coverage("org", "app") is None


def test_search_attacks_posts_filter() -> None:
    """Attack filters are posted with paging and the default sort."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _json({"attacks": [{"uuid": "a1", "rules": None, "attacksApplication": None}], "total": 9})

    page = _client(handler).search_attacks("org", AttackFilter(quick_filter="ACTIVE"), offset=10, limit=5)
    request = seen[0]
    assert request.url.path.endswith("/ng/org/attacks")
    assert request.url.params["sort"] == "-startTime"
    assert request.url.params["offset"] == "10"
    body = orjson.loads(request.content)
    assert body["quickFilter"] == "ACTIVE"
    assert body["includeSuppressed"] is False
    assert page.total_count == 9
    assert page.attacks is not None and page.attacks[0].rules == ()


def test_get_cve() -> None:
    """CVE data parses; an unknown CVE is None."""
    body = {"cve": {"name": "CVE-2021-44228", "score": 10.0}, "libraries": [{"hash": "h1"}],
            "apps": [{"app_id": "a1", "name": "Shop", "classCount": 0}]}
    data = _client(lambda r: _json(body)).get_cve("org", "CVE-2021-44228")
    assert data is not None
    assert data.cve is not None and data.cve.score == 10.0
    assert data.apps[0].app_id == "a1"
    assert _client(lambda r: httpx.Response(404)).get_cve("org", "CVE-2021-44228") is None


# ═════════════════════════════════════════════════════════════════════════════
# Errors
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize("status,exc_type", [
    (401, UnauthorizedError),
    (403, ForbiddenError),
    (404, ResourceNotFoundError),
    (500, HttpStatusError),
])
def test_status_errors(status: int, exc_type: type[Exception]) -> None:
    """Non-success statuses raise the matching typed error."""
    with pytest.raises(exc_type) as info:
        _client(lambda r: httpx.Response(status)).list_applications("org")
    assert info.value.status == status  # type: ignore[attr-defined]


def test_transport_errors_propagate() -> None:
    """Connection failures surface as httpx transport errors."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(httpx.TransportError):
        _client(handler).list_applications("org")


def test_from_settings_requires_credentials() -> None:
    """Building from incomplete settings names what is missing."""
    with pytest.raises(ValueError, match="CONTRAST_API_KEY"):
        ContrastClient.from_settings(ContrastSettings(_env_file=None, host_name="h", org_id="o"))


def test_from_settings(settings: ContrastSettings) -> None:
    """A complete configuration produces a working client."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _json({"applications": []})

    with ContrastClient.from_settings(settings, transport=httpx.MockTransport(handler)) as client:
        client.list_applications("org-1")
    assert str(seen[0].url).startswith("https://teamserver.example.com/Contrast/api/ng/org-1/applications")
