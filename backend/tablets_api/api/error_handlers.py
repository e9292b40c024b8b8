"""Error Handlers: global exception handlers for the Tablets API.

Invariants:
    - TabletsError → its own {error, details, code} envelope and status
    - RequestValidationError (malformed JSON, bad path params) → 400 with field details
    - HTTPException → JSON envelope; 405 carries an Allow header listing the path's methods
    - Exception (catch-all) → 500 with the raw message in details, inside the CORS wrap

Design Decisions:
    - Four-layer handler: domain (TabletsError), validation (Pydantic), HTTP (routing), catch-all
    - Catch-all surfaces the raw message: internal/admin service, operators read it directly
    - Catch-all is an http middleware, not an Exception handler: Starlette runs Exception
      handlers in ServerErrorMiddleware, outside CORS, and the frontend could not read them
    - Allow computed from the registered routes: a path with GET and POST on separate
      routes still reports both
"""

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException

from tablets_api.core.errors import TabletsError

logger = logging.getLogger(__name__)

_METHOD_ORDER = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_tablets_error_handler(app)
    _register_validation_error_handler(app)
    _register_http_error_handler(app)
    _register_generic_error_handler(app)


def _register_tablets_error_handler(app: FastAPI) -> None:

    @app.exception_handler(TabletsError)
    async def tablets_error_handler(request: Request, exc: TabletsError):
        """Handle all Tablets API domain/infrastructure errors."""
        logger.error(
            f"TabletsError: {exc.message}",
            extra={
                "error_code": exc.code,
                "severity": exc.severity.value,
                "category": exc.category.value,
                "path": request.url.path,
                "method": request.method,
            },
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_http_error_handler(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        headers = dict(exc.headers or {})
        details = str(exc.detail)
        if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            headers["Allow"] = ", ".join(allowed_methods(app, request.url.path))
            details = f"Method {request.method} Not Allowed"
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": _http_title(exc.status_code),
                "details": details,
                "code": f"HTTP_{exc.status_code}",
            },
            headers=headers,
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.middleware("http")
    async def catch_unhandled_errors(request: Request, call_next):
        """Catch-all: 500 with the raw message for operator diagnosis."""
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                f"Unhandled exception on {request.url.path}: {exc}",
                exc_info=True,
                extra={"path": request.url.path, "method": request.method},
            )
            return _internal_error_response(exc)


def _internal_error_response(exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "details": str(exc) or "Unknown error occurred",
            "code": "INTERNAL_ERROR",
        },
    )


def allowed_methods(app: FastAPI, path: str) -> list[str]:
    """Methods registered for any route matching path, plus OPTIONS."""
    methods = {"OPTIONS"}
    for route in app.router.routes:
        if isinstance(route, APIRoute) and route.path_regex.match(path):
            methods |= route.methods
    ordered = [m for m in _METHOD_ORDER if m in methods]
    return ordered + sorted(methods - set(ordered))


def _http_title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    """Build structured validation error response."""
    errors = exc.errors()
    return {
        "error": "Invalid Request",
        "details": "Invalid request data",
        "code": "VALIDATION_ERROR",
        "fields": [
            {
                "field": ".".join(str(loc) for loc in e["loc"]),
                "message": e["msg"],
                "type": e["type"],
            }
            for e in errors
        ],
    }
