import logging
import uuid
from typing import Any, Dict, Optional

import httpx

from .errors import UpstreamFailure, UpstreamRateLimited, UpstreamUnreachable
from .http import extract_http_error, extract_rate_limit

logger = logging.getLogger("picoart.http_client")


class UpstreamHttpClient:
    """Thin JSON client for the generation provider.

    Raises the ``UpstreamError`` family instead of ``httpx`` exceptions and
    never retries; retry decisions belong to whoever reads ``retry_after``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = httpx.Timeout(timeout)
        self.client = httpx.AsyncClient(base_url=base_url, timeout=self.timeout, transport=transport)

    def _headers(self, headers: Optional[Dict[str, str]], correlation_id: Optional[str]) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Correlation-ID": correlation_id or str(uuid.uuid4()),
            **({"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}),
            **(headers or {}),
        }

    async def post_json(self, path: str, json: Dict[str, Any], *, label: str,
                        headers: Optional[Dict[str, str]] = None,
                        correlation_id: Optional[str] = None) -> Dict[str, Any]:
        try:
            response = await self.client.post(path, json=json, headers=self._headers(headers, correlation_id))
        except httpx.RequestError as e:
            logger.error(f"Request to {self.base_url}{path} failed: {e}")
            raise UpstreamUnreachable(label, str(e)) from e
        return self._handle(response, label)

    async def get_json(self, path: str, *, label: str, correlation_id: Optional[str] = None) -> Dict[str, Any]:
        try:
            response = await self.client.get(path, headers=self._headers(None, correlation_id))
        except httpx.RequestError as e:
            logger.error(f"Request to {self.base_url}{path} failed: {e}")
            raise UpstreamUnreachable(label, str(e)) from e
        return self._handle(response, label)

    def _handle(self, response: httpx.Response, label: str) -> Dict[str, Any]:
        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                logger.error(f"{label} returned malformed JSON: {response.text[:200]!r}")
                raise UpstreamFailure(
                    response.status_code,
                    label,
                    message=f"{label} returned a success response ({response.status_code}) that could not be parsed as JSON",
                ) from e

        error_text = response.text
        if response.status_code == 429:
            logger.warning(f"{label} rate limited: {error_text[:500]}")
            detail, retry_after = extract_rate_limit(error_text, response.headers.get("Retry-After"))
            raise UpstreamRateLimited(retry_after, detail)
        message, code = extract_http_error(response, default_message=f"{label} request failed")
        logger.error(f"{label} error: {response.status_code} ({code}) {message}")
        raise UpstreamFailure(response.status_code, label)

    async def aclose(self) -> None:
        await self.client.aclose()
