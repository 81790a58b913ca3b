"""Starlette HTTP server assembly for the SSF transmitter."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from lookout_ssf.app import AppContext, get_app_context

logger = logging.getLogger(__name__)

INTAKE_PATH = "/intake/lookout"


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Logs one line per request: method, path, status and duration."""

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error: %s %s", request.method, request.url.path)
            return PlainTextResponse("Internal server error", status_code=500)

        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response


def create_http_app(context: AppContext | None = None, *, start_poller: bool = True) -> Starlette:
    """Create the relay application.

    The lifespan loads the signing key before serving anything, so a broken
    key aborts startup, then arms the device poller.
    """
    ctx = context or get_app_context()

    async def root_handler(request: Request) -> Response:
        return PlainTextResponse("ok")

    async def health_handler(request: Request) -> Response:
        return JSONResponse({"status": "healthy"})

    async def poller_status_handler(request: Request) -> Response:
        snapshot = ctx.heartbeat.snapshot()
        data = snapshot.to_dict()
        data["running"] = ctx.poller.running
        data["tracked_subjects"] = len(ctx.state_store)
        return JSONResponse(data)

    async def discovery_handler(request: Request) -> Response:
        return JSONResponse(ctx.discovery_document)

    async def jwks_handler(request: Request) -> Response:
        try:
            document = ctx.jwks.get()
        except (OSError, ValueError) as exc:
            logger.error("JWKS unavailable at %s: %s", ctx.jwks.path, exc)
            return JSONResponse(
                status_code=500,
                content={"error": "jwks_unavailable", "message": "Key set is not available"},
            )
        return JSONResponse(document)

    async def intake_handler(request: Request) -> Response:
        """Accept one risk change and relay it as a SET.

        202 once delivered. 400 for invalid_json, missing_fields,
        invalid_event_timestamp, and no_transition when current and previous
        levels normalize to the same value. 500 when signing or delivery fails.
        """
        body = await request.body()
        result = await ctx.intake.handle_body(body)
        return JSONResponse(result.body, status_code=result.status_code)

    routes = [
        Route("/", endpoint=root_handler, methods=["GET", "HEAD"]),
        Route("/status", endpoint=root_handler, methods=["GET", "HEAD"]),
        Route("/health", endpoint=health_handler, methods=["GET"]),
        Route("/status/poller", endpoint=poller_status_handler, methods=["GET"]),
        Route("/.well-known/ssf-configuration", endpoint=discovery_handler, methods=["GET"]),
        Route("/jwks.json", endpoint=jwks_handler, methods=["GET"]),
        Route(INTAKE_PATH, endpoint=intake_handler, methods=["POST"]),
    ]

    @asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info("SSF issuer: %s", ctx.settings.ssf.issuer)
        ctx.forge.warm_up()
        if start_poller:
            ctx.poller.start()
        try:
            yield
        finally:
            await ctx.poller.stop()
            logger.info("SSF relay stopped")

    app = Starlette(
        routes=routes,
        middleware=[Middleware(RequestLogMiddleware)],
        lifespan=lifespan,
    )
    app.state.context = ctx
    return app
