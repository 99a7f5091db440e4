"""Route coverage for one application.

Coverage can be scoped to the latest agent session or to the sessions carrying
one metadata value; without either, every route across all sessions is
returned. ``use_latest_session`` wins when both are given.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, computed_field
from pydantic.alias_generators import to_camel

from contrast_mcp.client import Route, RouteCoverageRequest
from contrast_mcp.runtime import BaseToolParams, ToolResponse, run_single
from contrast_mcp.validation import ValidationContext

from .context import ServerContext

EXERCISED = "EXERCISED"

LATEST_SESSION_WINS = ("Both useLatestSession and sessionMetadataName provided - useLatestSession takes "
                       "precedence and sessionMetadata filter will be ignored")


class RouteCoverage(BaseModel):
    """Routes of an application with coverage totals derived from them."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    routes: tuple[Route, ...] = ()

    @computed_field
    @property
    def total_routes(self) -> int:
        return len(self.routes)

    @computed_field
    @property
    def exercised_count(self) -> int:
        return sum(1 for r in self.routes if r.status == EXERCISED)

    @computed_field
    @property
    def discovered_count(self) -> int:
        """Routes known to the agent that never received a request."""
        return self.total_routes - self.exercised_count

    @computed_field
    @property
    def coverage_percent(self) -> float:
        return self.exercised_count * 100.0 / self.total_routes if self.routes else 0.0

    @computed_field
    @property
    def total_vulnerabilities(self) -> int:
        return sum(r.vulnerabilities for r in self.routes)

    @computed_field
    @property
    def total_critical_vulnerabilities(self) -> int:
        return sum(r.critical_vulnerabilities for r in self.routes)


@dataclass(frozen=True, kw_only=True)
class RouteCoverageParams(BaseToolParams):
    app_id: str = ""
    session_metadata_name: str | None = None
    session_metadata_value: str | None = None
    use_latest_session: bool = False

    @classmethod
    def of(
        cls,
        app_id: str | None,
        session_metadata_name: str | None = None,
        session_metadata_value: str | None = None,
        use_latest_session: bool | None = None,
    ) -> RouteCoverageParams:
        ctx = ValidationContext()
        ctx.require_uuid(app_id, "appId")
        name = ctx.string(session_metadata_name, "sessionMetadataName").get()
        value = ctx.string(session_metadata_value, "sessionMetadataValue").get()
        ctx.error_if(name is not None and value is None,
                     "sessionMetadataValue is required when sessionMetadataName is provided")
        ctx.error_if(value is not None and name is None,
                     "sessionMetadataName is required when sessionMetadataValue is provided")
        ctx.warn_if(bool(use_latest_session) and name is not None, LATEST_SESSION_WINS)
        return cls(
            app_id=(app_id or "").strip(),
            session_metadata_name=name,
            session_metadata_value=value,
            use_latest_session=bool(use_latest_session),
            errors=ctx.errors,
            warnings=ctx.warnings,
        )

    def metadata_request(self) -> RouteCoverageRequest | None:
        if self.session_metadata_name is None or self.session_metadata_value is None:
            return None
        return RouteCoverageRequest.for_metadata(self.session_metadata_name, self.session_metadata_value)


def get_route_coverage(
    ctx: ServerContext,
    app_id: str | None = None,
    session_metadata_name: str | None = None,
    session_metadata_value: str | None = None,
    use_latest_session: bool | None = None,
) -> ToolResponse[RouteCoverage]:
    """Route coverage of an application, optionally scoped to a session.

    An application without any agent session has no latest-session coverage,
    which is reported as not found.
    """

    def execute(params: RouteCoverageParams, warnings: list[str]) -> RouteCoverage | None:
        org_id = ctx.org_id
        if params.use_latest_session:
            session = ctx.client.get_latest_session(org_id, params.app_id)
            if session is None:
                return None
            request = RouteCoverageRequest(session_id=session.agent_session_id)
        else:
            request = params.metadata_request()
        routes = ctx.client.get_route_coverage(org_id, params.app_id, request)
        return RouteCoverage(routes=tuple(routes)) if routes is not None else None

    return run_single(
        "get_route_coverage",
        lambda: RouteCoverageParams.of(app_id, session_metadata_name, session_metadata_value, use_latest_session),
        execute,
    )
