"""Full details of one vulnerability.

The trace itself is required; everything else (the remediation advice, the
captured HTTP request, the trigger stack and the libraries it runs through) is
best-effort. A failed enrichment call becomes a warning and leaves its field
empty.

Stack frames are attributed to libraries through runtime class observations:
a frame belongs to a library when one of the library's observed class names
is a case-insensitive prefix of the frame.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from contrast_mcp.client import Library
from contrast_mcp.foundation.errors import attempt
from contrast_mcp.runtime import BaseToolParams, ToolResponse, run_single
from contrast_mcp.validation import ValidationContext

from .applications import find_application
from .context import ServerContext
from .libraries import cached_libraries, cached_observations

T = TypeVar("T")

APP_REQUIRED = "Either appId or appName is required"
UNKNOWN_APPLICATION = "No application named '{name}' was found."
ENRICHMENT_FAILED = "Could not retrieve {what} for this vulnerability: {details}"


class StackFrameLibrary(BaseModel):
    """A trigger stack frame and the vulnerable library it runs in, if any."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    frame: str
    library_hash: str | None = None


class VulnerabilityDetails(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    vuln_id: str
    title: str
    type: str | None = None
    severity: str | None = None
    status: str | None = None
    app_id: str
    recommendation: str | None = None
    http_request: str | None = None
    stack_libs: tuple[StackFrameLibrary, ...] = ()
    libraries: tuple[Library, ...] = ()


@dataclass(frozen=True, kw_only=True)
class GetVulnerabilityParams(BaseToolParams):
    vuln_id: str = ""
    app_id: str | None = None
    app_name: str | None = None

    @classmethod
    def of(cls, vuln_id: str | None, app_id: str | None = None,
           app_name: str | None = None) -> GetVulnerabilityParams:
        ctx = ValidationContext()
        vuln = ctx.string(vuln_id, "vulnId").required().get()
        app_id_ = ctx.string(app_id, "appId").get()
        name = ctx.string(app_name, "appName").get()
        ctx.require_at_least_one(APP_REQUIRED, app_id_, name)
        ctx.mutually_exclusive(app_id_ is not None, "appId", name is not None, "appName")
        if app_id_ is not None:
            ctx.require_uuid(app_id_, "appId")
        return cls(vuln_id=vuln or "", app_id=app_id_, app_name=name, errors=ctx.errors, warnings=ctx.warnings)


def _optional(warnings: list[str], what: str, fetch: Callable[[], T]) -> T | None:
    result = attempt(fetch)
    if result.is_err():
        warnings.append(ENRICHMENT_FAILED.format(what=what, details=result.unwrap_err().render()))
    return result.unwrap_or(None)


def match_frames(
    frames: Sequence[str],
    observed: Sequence[tuple[Library, Sequence[str]]],
) -> tuple[tuple[StackFrameLibrary, ...], tuple[Library, ...]]:
    """Attribute each frame to the first library with an observed class prefixing it.

    Only libraries with known vulnerabilities are attributed; the second element
    lists each attributed library once, in first-seen order.
    """
    prefixes = [(lib, [n.casefold() for n in names]) for lib, names in observed]
    stack: list[StackFrameLibrary] = []
    matched: dict[str, Library] = {}
    for frame in frames:
        lowered = frame.casefold()
        owner = next((lib for lib, names in prefixes if any(lowered.startswith(n) for n in names)), None)
        if owner is not None and owner.vulns:
            matched.setdefault(owner.hash, owner)
            stack.append(StackFrameLibrary(frame=frame, library_hash=owner.hash))
        else:
            stack.append(StackFrameLibrary(frame=frame))
    return tuple(stack), tuple(matched.values())


def _observed_classes(ctx: ServerContext, app_id: str) -> list[tuple[Library, list[str]]]:
    # libraries with no loaded classes have no observations to fetch
    return [
        (lib, [o.name for o in cached_observations(ctx, app_id, lib.hash)])
        for lib in cached_libraries(ctx, app_id)
        if lib.used
    ]


def get_vulnerability(
    ctx: ServerContext,
    vuln_id: str | None = None,
    app_id: str | None = None,
    app_name: str | None = None,
) -> ToolResponse[VulnerabilityDetails]:
    """One vulnerability with remediation advice, HTTP request and library attribution.

    The application is given either by id or by exact name.
    """

    def execute(params: GetVulnerabilityParams, warnings: list[str]) -> VulnerabilityDetails | None:
        org_id = ctx.org_id
        app_id_ = params.app_id
        if app_id_ is None:
            app = find_application(ctx, params.app_name or "")
            if app is None:
                warnings.append(UNKNOWN_APPLICATION.format(name=params.app_name))
                return None
            app_id_ = app.app_id

        trace = ctx.client.get_trace(org_id, app_id_, params.vuln_id)
        if trace is None:
            return None

        frames = _optional(warnings, "the trigger stack trace",
                           lambda: ctx.client.get_event_summary(org_id, trace.uuid).trigger_frames()) or []
        observed = _optional(warnings, "library data", lambda: _observed_classes(ctx, app_id_)) if frames else None
        stack_libs, libraries = match_frames(frames, observed or [])
        return VulnerabilityDetails(
            vuln_id=trace.uuid,
            title=trace.title,
            type=trace.rule_name,
            severity=trace.severity,
            status=trace.status,
            app_id=app_id_,
            recommendation=_optional(warnings, "the recommendation",
                                     lambda: ctx.client.get_recommendation(org_id, trace.uuid)),
            http_request=_optional(warnings, "the HTTP request",
                                   lambda: ctx.client.get_http_request(org_id, trace.uuid)),
            stack_libs=stack_libs,
            libraries=libraries,
        )

    return run_single("get_vulnerability", lambda: GetVulnerabilityParams.of(vuln_id, app_id, app_name), execute)
