"""MCP transport for the Contrast tools.

Registers every tool with FastMCP. Handlers are thin: they forward the raw
arguments to the tool function and return the envelope as a JSON-compatible
dict with camelCase keys.

Example:
    >>> ctx = ServerContext(settings, ContrastClient.from_settings(settings))
    >>> mcp = create_server(ctx)
    >>> run(mcp, transport="sse", port=8080)
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from fastmcp import FastMCP
from pydantic import BaseModel, Field

from contrast_mcp.tools import (
    ServerContext,
    clear_caches,
    get_application,
    get_route_coverage,
    get_session_metadata,
    get_vulnerability,
    list_application_libraries,
    list_applications_by_cve,
    list_library_observations,
    search_app_vulnerabilities,
    search_applications,
    search_attacks,
)

Transport = Literal["stdio", "sse", "streamable-http"]

SERVER_NAME = "contrast-mcp"

Page = Annotated[int | None, Field(description="1-based page number (default 1)")]
PageSize = Annotated[int | None, Field(description="Items per page (default 50)")]
AppId = Annotated[str | None, Field(description="Application ID (UUID)")]
MetadataName = Annotated[str | None, Field(description="Session metadata display label to match, e.g. branchName")]
LatestSession = Annotated[bool | None, Field(description="Only data from the latest agent session")]


def _dump(envelope: BaseModel) -> dict[str, Any]:
    return envelope.model_dump(mode="json", by_alias=True)


def create_server(ctx: ServerContext, name: str = SERVER_NAME) -> FastMCP:
    """Create a FastMCP server with every tool bound to ``ctx``."""
    mcp = FastMCP(name)

    def search_applications_handler(
        name: Annotated[str | None, Field(description="Case-insensitive substring of the application name")] = None,
        tag: Annotated[str | None, Field(description="Exact application tag")] = None,
        metadata_filters: Annotated[str | None, Field(
            description='JSON object of metadata field to value(s), e.g. {"team":"payments"} or {"env":["qa","prod"]}',
        )] = None,
        page: Page = None,
        page_size: PageSize = None,
    ) -> dict[str, Any]:
        return _dump(search_applications(ctx, name, tag, metadata_filters, page, page_size))

    def get_application_handler(
        app_name: Annotated[str | None, Field(description="Exact application name (case-insensitive)")] = None,
    ) -> dict[str, Any]:
        return _dump(get_application(ctx, app_name))

    def search_app_vulnerabilities_handler(
        app_id: AppId = None,
        severities: Annotated[str | None, Field(
            description="Comma-separated: CRITICAL, HIGH, MEDIUM, LOW, NOTE")] = None,
        statuses: Annotated[str | None, Field(
            description="Comma-separated: Reported, Suspicious, Confirmed, NotAProblem, Remediated, Fixed, "
                        "AutoRemediated (default Reported,Suspicious,Confirmed)")] = None,
        vuln_types: Annotated[str | None, Field(description="Comma-separated rule names, e.g. sql-injection")] = None,
        environments: Annotated[str | None, Field(
            description="Comma-separated: DEVELOPMENT, QA, PRODUCTION")] = None,
        last_seen_after: Annotated[str | None, Field(
            description="YYYY-MM-DD or epoch milliseconds; filters on last activity")] = None,
        last_seen_before: Annotated[str | None, Field(
            description="YYYY-MM-DD or epoch milliseconds; filters on last activity")] = None,
        vuln_tags: Annotated[str | None, Field(description="Comma-separated vulnerability tags")] = None,
        session_metadata_name: MetadataName = None,
        session_metadata_value: Annotated[str | None, Field(
            description="Value for session_metadata_name (requires it)")] = None,
        use_latest_session: LatestSession = None,
        page: Page = None,
        page_size: PageSize = None,
    ) -> dict[str, Any]:
        return _dump(search_app_vulnerabilities(
            ctx, app_id, severities, statuses, vuln_types, environments, last_seen_after, last_seen_before,
            vuln_tags, session_metadata_name, session_metadata_value, use_latest_session, page, page_size))

    def get_session_metadata_handler(app_id: AppId = None) -> dict[str, Any]:
        return _dump(get_session_metadata(ctx, app_id))

    def list_application_libraries_handler(
        app_id: AppId = None,
        page: Page = None,
        page_size: Annotated[int | None, Field(description="Items per page (default 50, max 50)")] = None,
    ) -> dict[str, Any]:
        return _dump(list_application_libraries(ctx, app_id, page, page_size))

    def list_library_observations_handler(
        app_id: AppId = None,
        library_id: Annotated[str | None, Field(description="Library ID (hash) from list_application_libraries")] = None,
        page: Page = None,
        page_size: PageSize = None,
    ) -> dict[str, Any]:
        return _dump(list_library_observations(ctx, app_id, library_id, page, page_size))

    def get_vulnerability_handler(
        vuln_id: Annotated[str | None, Field(description="Vulnerability ID (UUID) from search_app_vulnerabilities")] = None,
        app_id: Annotated[str | None, Field(description="Application ID (UUID); give this or app_name")] = None,
        app_name: Annotated[str | None, Field(description="Exact application name; give this or app_id")] = None,
    ) -> dict[str, Any]:
        return _dump(get_vulnerability(ctx, vuln_id, app_id, app_name))

    def get_route_coverage_handler(
        app_id: AppId = None,
        session_metadata_name: MetadataName = None,
        session_metadata_value: Annotated[str | None, Field(
            description="Value for session_metadata_name (both or neither)")] = None,
        use_latest_session: LatestSession = None,
    ) -> dict[str, Any]:
        return _dump(get_route_coverage(ctx, app_id, session_metadata_name, session_metadata_value,
                                        use_latest_session))

    def search_attacks_handler(
        quick_filter: Annotated[str | None, Field(
            description="ALL (default), ACTIVE, MANUAL, AUTOMATED, PRODUCTION or EFFECTIVE")] = None,
        status_filter: Annotated[str | None, Field(
            description="Comma-separated: EXPLOITED, PROBED, BLOCKED, BLOCKED_PERIMETER, PROBED_PERIMETER, "
                        "SUSPICIOUS")] = None,
        keyword: Annotated[str | None, Field(description="Matched against rule names, sources and notes")] = None,
        include_suppressed: Annotated[bool | None, Field(description="Include suppressed attacks")] = None,
        include_bot_blockers: Annotated[bool | None, Field(description="Include bot blocker attacks")] = None,
        include_ip_blacklist: Annotated[bool | None, Field(description="Include attacks from blacklisted IPs")] = None,
        sort: Annotated[str | None, Field(
            description="sourceIP, status, startTime, endTime or type; '-' prefix for descending "
                        "(default -startTime)")] = None,
        page: Page = None,
        page_size: PageSize = None,
    ) -> dict[str, Any]:
        return _dump(search_attacks(ctx, quick_filter, status_filter, keyword, include_suppressed,
                                    include_bot_blockers, include_ip_blacklist, sort, page, page_size))

    def list_applications_by_cve_handler(
        cve_id: Annotated[str | None, Field(description="CVE identifier, e.g. CVE-2021-44228")] = None,
    ) -> dict[str, Any]:
        return _dump(list_applications_by_cve(ctx, cve_id))

    def clear_caches_handler() -> dict[str, Any]:
        return _dump(clear_caches(ctx))

    tools = (
        ("search_applications", search_applications_handler,
         "Search applications by name, tag or metadata values."),
        ("get_application", get_application_handler,
         "Get one application by its exact name."),
        ("search_app_vulnerabilities", search_app_vulnerabilities_handler,
         "Search vulnerabilities of one application, optionally filtered by session metadata "
         "or limited to the latest agent session."),
        ("get_session_metadata", get_session_metadata_handler,
         "Get the latest agent session of an application with its metadata values."),
        ("list_application_libraries", list_application_libraries_handler,
         "List third-party libraries used by an application with vulnerability counts."),
        ("list_library_observations", list_library_observations_handler,
         "List classes of a library observed in use at runtime."),
        ("get_vulnerability", get_vulnerability_handler,
         "Get one vulnerability with remediation advice, the HTTP request and the vulnerable libraries "
         "in its trigger stack."),
        ("get_route_coverage", get_route_coverage_handler,
         "Get route coverage of an application, optionally for the latest session or one session "
         "metadata value."),
        ("search_attacks", search_attacks_handler,
         "Search attacks detected by Contrast Protect across the organization."),
        ("list_applications_by_cve", list_applications_by_cve_handler,
         "List applications and library versions affected by a CVE, with class usage per application."),
        ("clear_caches", clear_caches_handler,
         "Clear cached applications, libraries and observations."),
    )
    for tool_name, handler, description in tools:
        mcp.tool(name=tool_name, description=description)(handler)
    return mcp


def run(mcp: FastMCP, transport: Transport = "stdio", *, host: str = "127.0.0.1", port: int = 8080) -> None:
    """Start the server (blocking).

    Args:
        mcp: Server from ``create_server``
        transport: "stdio" (CLI), "sse" (HTTP), "streamable-http"
        host: Host for HTTP transports
        port: Port for HTTP transports
    """
    if transport == "stdio":
        mcp.run()
    else:
        mcp.run(transport=transport, host=host, port=port)
