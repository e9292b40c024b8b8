"""Tablets API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery), at the root and under /api
    - Global error handlers map TabletsError → structured JSON responses
    - Every response carries permissive CORS headers; any OPTIONS request → 200, empty body
    - The Persistence Client is created once in the lifespan and held on app.state
    - Missing DATABASE_URL does not stop startup; database routes answer 500 instead

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - /api prefix mirrors the paths the bundled frontend calls
    - Static frontend mounted last so API routes take precedence
"""

import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.datastructures import Headers

from tablets_api.api.error_handlers import register_error_handlers
from tablets_api.api.routes import diagnostics, health, tablets
from tablets_api.config import get_settings
from tablets_api.infrastructure.database import init_db
from tablets_api.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_HEADERS = ["Content-Type", "Authorization"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    app.state.db_manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Tablets API started")
    try:
        yield
    finally:
        logger.info("Tablets API shutting down")
        if app.state.db_manager is not None:
            await app.state.db_manager.dispose()
        app.state.db_manager = None


app = FastAPI(title="Tablets API", version="1.0.0", lifespan=lifespan)
app.state.db_manager = None


@app.middleware("http")
async def short_circuit_options(request: Request, call_next):
    """Non-preflight OPTIONS requests get 200 with an empty body."""
    if request.method == "OPTIONS":
        return Response(status_code=200)
    return await call_next(request)


class EmptyPreflightCORSMiddleware(CORSMiddleware):
    """CORSMiddleware whose preflight answers are 200 with an empty body."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        headers = {
            k: v for k, v in response.headers.items()
            if k not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)


register_error_handlers(app)

# Must wrap the OPTIONS short-circuit and the catch-all, so it is added after them
settings = get_settings()
app.add_middleware(
    EmptyPreflightCORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=CORS_METHODS,
    allow_headers=CORS_HEADERS,
)

for prefix in ("", "/api"):
    app.include_router(tablets.router, prefix=prefix)
    app.include_router(health.router, prefix=prefix)
    app.include_router(diagnostics.router, prefix=prefix)

if os.path.isdir(settings.static_dir):
    app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")


def run() -> None:
    """Console entry point: serve on settings.host:settings.port."""
    current = get_settings()
    uvicorn.run(
        "tablets_api.main:app",
        host=current.host,
        port=current.port,
        log_level=current.log_level.lower(),
    )
