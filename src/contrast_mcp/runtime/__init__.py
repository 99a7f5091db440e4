"""Tool runtime: pagination, response envelopes and execution pipelines."""

from .envelope import NO_RESULTS, RESOURCE_NOT_FOUND, ExecutionResult, PaginatedToolResponse, ToolResponse
from .pagination import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PaginationParams
from .paging import FetchOutcome, fetch_all_pages, filter_and_paginate, paginate_in_memory
from .pipeline import BaseToolParams, ToolParams, has_more_pages, run_paginated, run_single

__all__ = [
    "DEFAULT_PAGE",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "NO_RESULTS",
    "RESOURCE_NOT_FOUND",
    "BaseToolParams",
    "ExecutionResult",
    "FetchOutcome",
    "PaginatedToolResponse",
    "PaginationParams",
    "ToolParams",
    "ToolResponse",
    "fetch_all_pages",
    "filter_and_paginate",
    "has_more_pages",
    "paginate_in_memory",
    "run_paginated",
    "run_single",
]
