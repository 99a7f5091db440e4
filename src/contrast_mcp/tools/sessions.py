"""Agent session lookup."""

from __future__ import annotations

from dataclasses import dataclass

from contrast_mcp.client import AgentSession
from contrast_mcp.runtime import BaseToolParams, ToolResponse, run_single
from contrast_mcp.validation import ValidationContext

from .context import ServerContext


@dataclass(frozen=True, kw_only=True)
class SessionMetadataParams(BaseToolParams):
    app_id: str = ""

    @classmethod
    def of(cls, app_id: str | None) -> SessionMetadataParams:
        ctx = ValidationContext()
        ctx.require_uuid(app_id, "appId")
        return cls(app_id=(app_id or "").strip(), errors=ctx.errors, warnings=ctx.warnings)


def get_session_metadata(ctx: ServerContext, app_id: str | None = None) -> ToolResponse[AgentSession]:
    """Latest agent session of an application and the metadata values reported for it."""

    def execute(params: SessionMetadataParams, warnings: list[str]) -> AgentSession | None:
        return ctx.client.get_latest_session(ctx.org_id, params.app_id)

    return run_single("get_session_metadata", lambda: SessionMetadataParams.of(app_id), execute)
