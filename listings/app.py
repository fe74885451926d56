"""
FastAPI application entry point for the listings backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from listings.config import get_settings
from listings.errors import RecordNotFound, StoreError
from listings.routes import debug_router, router

logger = logging.getLogger(__name__)


async def record_not_found_handler(request: Request, exc: RecordNotFound):
    return JSONResponse(status_code=404, content={"detail": "Listing not found"})


async def store_error_handler(request: Request, exc: StoreError):
    # Remote endpoint details stay in the log.
    logger.error(
        "%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc
    )
    return JSONResponse(
        status_code=500, content={"detail": "Listing storage is unavailable"}
    )


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(
        "%s %s failed unexpectedly", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=500, content={"detail": "Listing operation failed"}
    )


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="Listings Backend (FastAPI)", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RecordNotFound, record_not_found_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    @app.get("/health", response_class=PlainTextResponse)
    def health() -> str:
        return "ok"

    app.include_router(router, prefix=settings.api_prefix)
    if settings.enable_debug_routes:
        app.include_router(debug_router)
    return app


app = create_app()
