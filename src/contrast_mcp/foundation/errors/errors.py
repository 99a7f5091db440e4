"""Error taxonomy for upstream calls.

Upstream failures are converted once, at the pipeline boundary, into a
``Failure`` value carrying an ``ErrorCode``. ``Failure.render()`` produces the
short user-facing text; raw exception text and tracebacks never reach the
caller beyond that message.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Self

import httpx
from pydantic import BaseModel, ConfigDict, Field, computed_field


class ErrorCode(StrEnum):
    """Categories of tool failure.

    Used to pick the user-facing message and to decide log severity.
    """
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_PARAMS = "INVALID_PARAMS"
    INTERNAL = "INTERNAL"


_RETRYABLE_CODES: frozenset[ErrorCode] = frozenset({
    ErrorCode.RATE_LIMITED,
    ErrorCode.UPSTREAM_ERROR,
    ErrorCode.NETWORK_ERROR,
})


# ═══════════════════════════════════════════════════════════════════════════════
# Upstream Exceptions
# ═══════════════════════════════════════════════════════════════════════════════


class ContrastApiError(Exception):
    """Base for errors raised by the Contrast API client.

    Attributes:
        status: HTTP status code of the failed response, if one was received
        detail: Short description (usually the request path or server message)
    """

    def __init__(self, detail: str, *, status: int | None = None) -> None:
        self.detail = detail
        self.status = status
        super().__init__(detail)


class UnauthorizedError(ContrastApiError):
    """Credentials rejected (HTTP 401)."""

    def __init__(self, detail: str, *, status: int | None = 401) -> None:
        super().__init__(detail, status=status)


class ForbiddenError(ContrastApiError):
    """Authenticated user lacks access (HTTP 403)."""

    def __init__(self, detail: str, *, status: int | None = 403) -> None:
        super().__init__(detail, status=status)


class ResourceNotFoundError(ContrastApiError):
    """Requested resource does not exist (HTTP 404 or a typed lookup miss)."""

    def __init__(self, detail: str, *, status: int | None = 404) -> None:
        super().__init__(detail, status=status)


class HttpStatusError(ContrastApiError):
    """Any other non-success HTTP status."""


# ═══════════════════════════════════════════════════════════════════════════════
# Failure Value
# ═══════════════════════════════════════════════════════════════════════════════


class Failure(BaseModel):
    """Categorized failure from the execute step.

    Attributes:
        code: Failure category
        detail: Context for the message (resource, exception text)
        status: HTTP status when the failure came from a response
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, revalidate_instances="never")

    code: ErrorCode = ErrorCode.INTERNAL
    detail: str = ""
    status: int | None = Field(default=None, ge=100, le=599)

    @classmethod
    def from_status(cls, status: int, detail: str = "") -> Self:
        """Classify an HTTP status code."""
        match status:
            case 401: code = ErrorCode.UNAUTHORIZED
            case 403: code = ErrorCode.FORBIDDEN
            case 404: code = ErrorCode.NOT_FOUND
            case 429: code = ErrorCode.RATE_LIMITED
            case s if s >= 500: code = ErrorCode.UPSTREAM_ERROR
            case _: code = ErrorCode.HTTP_ERROR
        return cls(code=code, detail=detail, status=status)

    @classmethod
    def internal(cls, exc: BaseException) -> Self:
        return cls(code=ErrorCode.INTERNAL, detail=str(exc) or type(exc).__name__)

    @computed_field
    @property
    def recoverable(self) -> bool:
        """Whether retrying the same call later might succeed."""
        return self.code in _RETRYABLE_CODES

    def render(self) -> str:
        """User-facing error text."""
        match self.code:
            case ErrorCode.UNAUTHORIZED:
                return "Authentication failed. Check API credentials."
            case ErrorCode.FORBIDDEN:
                return "Access denied. User lacks permission for this resource."
            case ErrorCode.NOT_FOUND:
                return f"Resource not found: {self.detail}"
            case ErrorCode.RATE_LIMITED:
                return "Rate limit exceeded. Retry later."
            case ErrorCode.UPSTREAM_ERROR:
                return "Contrast API error. Try again later."
            case ErrorCode.HTTP_ERROR:
                return f"API error (HTTP {self.status})"
            case ErrorCode.NETWORK_ERROR:
                return (f"Network error connecting to Contrast server: {self.detail}. "
                        "Check CONTRAST_HOST_NAME and network connectivity.")
            case ErrorCode.INVALID_PARAMS:
                return self.detail
            case _:
                return f"Internal error: {self.detail}"

    __str__ = render


def classify_exception(exc: BaseException) -> Failure:
    """Map an exception raised during execution to a Failure."""
    match exc:
        case ResourceNotFoundError():
            return Failure(code=ErrorCode.NOT_FOUND, detail=exc.detail, status=exc.status)
        case UnauthorizedError():
            return Failure(code=ErrorCode.UNAUTHORIZED, detail=exc.detail, status=exc.status)
        case ForbiddenError():
            return Failure(code=ErrorCode.FORBIDDEN, detail=exc.detail, status=exc.status)
        case ContrastApiError(status=int() as status):
            return Failure.from_status(status, exc.detail)
        case httpx.HTTPStatusError():
            return Failure.from_status(exc.response.status_code, str(exc.request.url))
        case httpx.TransportError():
            return Failure(code=ErrorCode.NETWORK_ERROR, detail=str(exc) or type(exc).__name__)
        case _:
            return Failure.internal(exc)
