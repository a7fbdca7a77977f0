from __future__ import annotations

import json
from typing import Any, Optional, Tuple

import httpx

from .errors import DEFAULT_RETRY_AFTER_SECONDS


def _parse_body(text: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def _coerce_seconds(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


def extract_rate_limit(text: str, retry_after_header: Optional[str] = None) -> Tuple[Optional[str], float]:
    """Return ``(detail, retry_after)`` from a 429 body.

    The body is normally ``{"detail": "...", "retry_after": 15}``. A missing
    or malformed value falls back to the ``Retry-After`` header, then to
    :data:`DEFAULT_RETRY_AFTER_SECONDS`.
    """
    data = _parse_body(text)
    detail: Optional[str] = None
    retry_after: Optional[float] = None
    if isinstance(data, dict):
        raw_detail = data.get("detail")
        if isinstance(raw_detail, str) and raw_detail.strip():
            detail = raw_detail
        retry_after = _coerce_seconds(data.get("retry_after"))
    if retry_after is None:
        retry_after = _coerce_seconds(retry_after_header)
    if retry_after is None:
        retry_after = DEFAULT_RETRY_AFTER_SECONDS
    return detail, retry_after


def extract_http_error(
    response: httpx.Response,
    *,
    default_message: str = "Upstream request failed",
    default_code: str = "upstream_error",
) -> Tuple[str, str]:
    data = _parse_body(response.text)
    message = default_message
    code = default_code
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            message = str(error.get("message") or message)
            code = str(error.get("code") or code)
        elif isinstance(error, str) and error:
            message = error
        elif isinstance(data.get("detail"), str) and data["detail"]:
            message = data["detail"]
        if isinstance(data.get("title"), str) and message == default_message:
            message = data["title"]
    elif response.text.strip():
        message = response.text.strip()[:500]
    return message, code
