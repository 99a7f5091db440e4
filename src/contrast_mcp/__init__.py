"""Contrast MCP - Contrast Security data exposed as tools for AI agents.

Every tool shares one execution model: raw arguments are validated into a
parameter object, errors stop execution before any network call, the tool's
execute step runs against the Contrast REST API, and the outcome is wrapped in
a response envelope carrying data, errors and warnings.

Writing a Tool:
    >>> from dataclasses import dataclass
    >>> from contrast_mcp import BaseToolParams, ValidationContext, run_single
    >>>
    >>> @dataclass(frozen=True, kw_only=True)
    ... class GetAppParams(BaseToolParams):
    ...     app_id: str | None = None
    ...
    ...     @classmethod
    ...     def of(cls, app_id: str | None) -> GetAppParams:
    ...         ctx = ValidationContext()
    ...         ctx.require_uuid(app_id, "appId")
    ...         return cls(app_id=app_id, errors=ctx.errors, warnings=ctx.warnings)
    >>>
    >>> run_single("get_app", lambda: GetAppParams.of(""), lambda p, w: None).errors
    ('appId is required',)

Running the Server:
    $ CONTRAST_HOST_NAME=app.contrastsecurity.com CONTRAST_ORG_ID=... contrast-mcp
    $ contrast-mcp --transport sse --port 8080
"""

from .foundation.config import ContrastSettings, clear_settings_cache, get_settings
from .foundation.errors import ErrorCode, Failure, Result, classify_exception
from .foundation.logging import configure_logging, get_logger
from .io.cache import CacheManager, TTLCache
from .runtime import (
    BaseToolParams,
    ExecutionResult,
    PaginatedToolResponse,
    PaginationParams,
    ToolResponse,
    run_paginated,
    run_single,
)
from .validation import ValidationContext

__version__ = "0.4.0"

__all__ = [
    "BaseToolParams",
    "CacheManager",
    "ContrastSettings",
    "ErrorCode",
    "ExecutionResult",
    "Failure",
    "PaginatedToolResponse",
    "PaginationParams",
    "Result",
    "TTLCache",
    "ToolResponse",
    "ValidationContext",
    "__version__",
    "classify_exception",
    "clear_settings_cache",
    "configure_logging",
    "get_logger",
    "get_settings",
    "run_paginated",
    "run_single",
]
