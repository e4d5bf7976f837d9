"""
FastAPI application entry point for the gateway.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from gateway.config import get_settings
from gateway.errors import GatewayError
from gateway.routes import router

logger = logging.getLogger(__name__)

# Browser-based panels call the gateway from any origin.
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    logger.warning("%s %s -> %s", request.method, request.url.path, exc.kind)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def cors_middleware(request: Request, call_next):
    if request.method == "OPTIONS":
        response = Response(status_code=204)
    else:
        response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    app = FastAPI(title="Firebase Device Gateway", version="0.1.0")
    app.middleware("http")(cors_middleware)
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
