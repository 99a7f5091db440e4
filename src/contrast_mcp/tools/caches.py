"""Cache maintenance tool."""

from __future__ import annotations

from dataclasses import dataclass

from contrast_mcp.runtime import BaseToolParams, ToolResponse, run_single

from .context import ServerContext


@dataclass(frozen=True, kw_only=True)
class ClearCachesParams(BaseToolParams):
    pass


def clear_caches(ctx: ServerContext) -> ToolResponse[dict[str, int]]:
    """Drop every cached application, library and observation list.

    Returns the number of entries removed per named cache.
    """

    def execute(params: ClearCachesParams, warnings: list[str]) -> dict[str, int]:
        return ctx.caches.invalidate_all()

    return run_single("clear_caches", ClearCachesParams, execute)
