"""Global error handlers — every failure leaves as ``{"code", "detail"}`` JSON."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from viewerledger.errors import ServiceError, StoreError

logger = structlog.get_logger()

_HTTP_CODES = {
    404: "not_found",
    405: "unimplemented",
    501: "unimplemented",
}


def error_response(status_code: int, code: str, detail: str, **extra: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"code": code, "detail": detail, **extra})


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(ServiceError)
    async def service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
        return error_response(exc.status_code, exc.kind, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        default = "internal" if exc.status_code >= 500 else "invalid_argument"
        return error_response(exc.status_code, _HTTP_CODES.get(exc.status_code, default), str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        # ctx may hold exception instances, which are not JSON serialisable
        errors = [{k: v for k, v in error.items() if k != "ctx"} for error in exc.errors()]
        return error_response(422, "invalid_argument", "Validation error", errors=errors)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error("store_error", path=request.url.path, error=str(exc))
        return error_response(500, "internal", "Internal server error")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions — always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return error_response(500, "internal", "Internal server error")
