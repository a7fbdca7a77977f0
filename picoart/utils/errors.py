from __future__ import annotations

import traceback
from enum import Enum
from typing import Any, Optional

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse

DEFAULT_RETRY_AFTER_SECONDS = 10.0


def api_error(message: str, *, status_code: int = status.HTTP_400_BAD_REQUEST, **extra: Any) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": message, **extra})


def missing_fields_error(*required: str) -> HTTPException:
    return api_error("Missing required fields", required=list(required))


def failure_response(exc: Exception, *, include_stack: bool = False) -> JSONResponse:
    """500 body for a failure caught at the top of a handler."""
    payload: dict[str, Any] = {"error": str(exc) or exc.__class__.__name__}
    if isinstance(exc, UpstreamRateLimited):
        payload["retry_after"] = exc.retry_after
    if include_stack:
        payload["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)


class UpstreamErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    UPSTREAM_ERROR = "upstream_error"
    UNREACHABLE = "unreachable"


class UpstreamError(Exception):
    """Base class for failures reported by the generation provider."""

    kind: UpstreamErrorKind = UpstreamErrorKind.UPSTREAM_ERROR

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "status_code": self.status_code, "message": self.message}


class UpstreamRateLimited(UpstreamError):
    """The provider asked us to back off; ``retry_after`` is in seconds."""

    kind = UpstreamErrorKind.RATE_LIMITED

    def __init__(self, retry_after_seconds: Optional[float] = None, detail: Optional[str] = None) -> None:
        super().__init__(detail or "Rate limited", status_code=status.HTTP_429_TOO_MANY_REQUESTS)
        self.detail = detail
        self.retry_after = retry_after_seconds if retry_after_seconds is not None else DEFAULT_RETRY_AFTER_SECONDS

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"retry_after": self.retry_after, "detail": self.detail})
        return payload


class UpstreamFailure(UpstreamError):
    kind = UpstreamErrorKind.UPSTREAM_ERROR

    def __init__(self, status_code: int, label: str = "Upstream", message: Optional[str] = None) -> None:
        super().__init__(message or f"{label} API error: {status_code}", status_code=status_code)
        self.label = label


class UpstreamUnreachable(UpstreamError):
    kind = UpstreamErrorKind.UNREACHABLE

    def __init__(self, label: str, reason: str) -> None:
        super().__init__(f"Failed to reach {label} backend: {reason}")
        self.label = label
        self.reason = reason
