"""Applications affected by a CVE.

The CVE lookup names the vulnerable library versions and the applications that
contain them. Each application is then enriched with class usage from its own
(cached) library list: a vulnerable library whose classes are never loaded is
much less likely to be exploitable.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import partial

from contrast_mcp.client import CveApplication, CveData
from contrast_mcp.foundation.errors import Failure, Result, attempt
from contrast_mcp.runtime import BaseToolParams, ToolResponse, run_single
from contrast_mcp.validation import ValidationContext

from .context import ServerContext
from .libraries import cached_libraries

CVE_PATTERN = re.compile(r"^CVE-\d{4}-\d{4,}$")

INVALID_CVE = ("cveId must be in CVE format (e.g., CVE-2021-44228). "
               "Format: CVE-YYYY-NNNNN where YYYY is the year and NNNNN is a sequence number.")
NO_AFFECTED_APPS = ("No applications found with this CVE. The CVE may not affect any libraries in your "
                    "organization, or the CVE ID may be invalid.")
NO_CLASS_USAGE = "Could not fetch class usage data for application '{name}': {details}"


@dataclass(frozen=True, kw_only=True)
class CveParams(BaseToolParams):
    cve_id: str = ""

    @classmethod
    def of(cls, cve_id: str | None) -> CveParams:
        ctx = ValidationContext()
        value = ctx.string(cve_id, "cveId").required().get()
        ctx.error_if(value is not None and not CVE_PATTERN.match(value), INVALID_CVE)
        return cls(cve_id=value or "", errors=ctx.errors, warnings=ctx.warnings)


def _with_class_usage(ctx: ServerContext, app: CveApplication, vulnerable: frozenset[str],
                      warnings: list[str]) -> CveApplication:
    libraries = attempt(partial(cached_libraries, ctx, app.app_id))
    if libraries.is_err():
        warnings.append(NO_CLASS_USAGE.format(name=app.name, details=libraries.unwrap_err().render()))
        return app
    used = next((lib for lib in libraries.unwrap() if lib.hash in vulnerable and lib.used), None)
    if used is None:
        return app
    return app.model_copy(update={"class_count": used.class_count, "class_usage": used.classes_used})


def _enrich(ctx: ServerContext, data: CveData | None, warnings: list[str]) -> CveData | None:
    if data is None:
        return None
    if not data.apps:
        warnings.append(NO_AFFECTED_APPS)
        return data
    vulnerable = frozenset(lib.hash for lib in data.libraries)
    apps = tuple(_with_class_usage(ctx, app, vulnerable, warnings) for app in data.apps)
    return data.model_copy(update={"apps": apps})


def list_applications_by_cve(ctx: ServerContext, cve_id: str | None = None) -> ToolResponse[CveData]:
    """Applications and library versions affected by a CVE, with class usage per application.

    A failed library lookup for one application leaves its class usage at zero
    and adds a warning; the rest of the answer is still returned.
    """

    def execute(params: CveParams, warnings: list[str]) -> Result[CveData | None, Failure]:
        return (attempt(partial(ctx.client.get_cve, ctx.org_id, params.cve_id))
                .map(lambda data: _enrich(ctx, data, warnings)))

    return run_single("list_applications_by_cve", lambda: CveParams.of(cve_id), execute)
