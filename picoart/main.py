from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, Iterator, List, Optional, Tuple

import httpx
from fastapi import APIRouter, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import BaseRoute

from picoart.config import Settings, get_settings
from picoart.services.replicate import ReplicateClient
from picoart.utils.cors import PermissiveCORSMiddleware
from picoart.utils.errors import missing_fields_error
from picoart.utils.logging_middleware import LoggingMiddleware
from picoart.utils.throttle import AdmissionGate

# Routers
from picoart.routes import health, predictions, transfer

logger = logging.getLogger("picoart")


ROUTERS = (health.router, transfer.router, predictions.router)

# Body-validation failures answer with the route's required fields
REQUIRED_FIELDS_BY_ROUTER = {
    transfer.router: transfer.REQUIRED_FIELDS,
    predictions.router: predictions.REQUIRED_FIELDS,
}


def _route_paths(routes: Iterable[BaseRoute], prefix: str = "") -> Iterator[str]:
    # Walks nested routers so the table never depends on how app.routes is laid out
    for route in routes:
        if isinstance(route, APIRoute):
            path = route.path
            yield path if path.startswith(prefix) else prefix + path
            continue
        nested = getattr(route, "routes", None)
        if nested:
            yield from _route_paths(nested, prefix + getattr(route, "prefix", ""))


def router_paths(router: APIRouter) -> List[str]:
    return list(_route_paths(router.routes, router.prefix))


def build_route_table(routers: Iterable[APIRouter]) -> List[str]:
    return sorted({path for router in routers for path in router_paths(router)})


def build_required_fields(mapping: Dict[APIRouter, Tuple[str, ...]]) -> Dict[str, Tuple[str, ...]]:
    return {path: fields for router, fields in mapping.items() for path in router_paths(router)}


def create_app(settings: Optional[Settings] = None, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Composition root: one gate per process, shared by every upstream call
        gate = AdmissionGate(limit=settings.upstream_concurrency)
        client = ReplicateClient(settings, gate, transport=transport)
        app.state.gate = gate
        app.state.replicate = client
        logger.info("Admission gate ready (limit=%d)", gate.limit)
        try:
            yield
        finally:
            if not await gate.drain(timeout=settings.shutdown_drain_timeout):
                logger.warning("Shutting down with %d queued upstream calls", gate.waiting + gate.in_flight)
            await client.aclose()

    app = FastAPI(title="PicoArt Transfer API", description="Artist style transfer via Replicate", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.route_table = build_route_table(ROUTERS)
    required_fields = build_required_fields(REQUIRED_FIELDS_BY_ROUTER)

    # Middlewares (last added runs first)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(PermissiveCORSMiddleware)

    # Exceptions → flat {"error": ...} bodies
    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        detail = exc.detail
        if isinstance(detail, dict) and "error" in detail:
            payload = detail
        elif exc.status_code == status.HTTP_404_NOT_FOUND:
            payload = {"error": "API endpoint not found", "available": request.app.state.route_table}
        elif exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            payload = {"error": "Method not allowed"}
        else:
            payload = {"error": detail if isinstance(detail, str) else "Unexpected error"}
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        fields = required_fields.get(request.url.path)
        if fields:
            error = missing_fields_error(*fields)
            return JSONResponse(status_code=error.status_code, content=error.detail)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
        )

    # /health, /api/flux-transfer, /api/sdxl-lightning-test, /api/check-prediction
    for router in ROUTERS:
        app.include_router(router)

    return app

# Export for uvicorn (picoart.main:app)
app = create_app()
