"""Error codes, failure values and the Result type."""

from .errors import (
    ContrastApiError,
    ErrorCode,
    Failure,
    ForbiddenError,
    HttpStatusError,
    ResourceNotFoundError,
    UnauthorizedError,
    classify_exception,
)
from .result import Err, Ok, Result, attempt

__all__ = [
    "ContrastApiError",
    "Err",
    "ErrorCode",
    "Failure",
    "ForbiddenError",
    "HttpStatusError",
    "Ok",
    "ResourceNotFoundError",
    "Result",
    "UnauthorizedError",
    "attempt",
    "classify_exception",
]
