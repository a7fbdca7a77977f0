from __future__ import annotations

from typing import Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class PermissiveCORSMiddleware(BaseHTTPMiddleware):
    """Answers every OPTIONS request and stamps open CORS headers on all responses.

    Unlike ``CORSMiddleware`` the headers are sent whether or not the
    request carries an ``Origin``.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS":
            response: Response = Response(status_code=200)
        else:
            response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response
