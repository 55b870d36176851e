"""
FastAPI application entry point for the ConnectUtahToday events API.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from events_api.config import get_settings
from events_api.errors import ErrorKind, SourceError
from events_api.event_routes import router as event_router
from events_api.routes import router
from events_api.schemas import ErrorResponse

logger = logging.getLogger(__name__)

ERROR_TITLES = {
    ErrorKind.VALIDATION: "Invalid request",
    ErrorKind.NOT_FOUND: "Not found",
    ErrorKind.CONFIGURATION_MISSING: "Server is not configured",
    ErrorKind.SOURCE_UNAVAILABLE: "Upstream source unavailable",
}


async def source_error_handler(request: Request, exc: SourceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %r", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ERROR_TITLES[exc.kind], details=exc.message
        ).model_dump(),
    )


async def not_found_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"error": "Not found"})
    return await http_exception_handler(request, exc)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="ConnectUtahToday API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SourceError, source_error_handler)
    app.add_exception_handler(StarletteHTTPException, not_found_handler)

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    def health() -> str:
        return "ConnectUtahToday API is running."

    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(event_router, prefix=settings.api_prefix)
    return app


app = create_app()
