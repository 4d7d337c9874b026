"""Structured error responses."""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import structlog
from .correlation import get_correlation_id
from ..errors import GatewayError

log = structlog.get_logger()


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    correlation_id = get_correlation_id()
    log.warning(
        "gateway.error",
        status_code=exc.status_code,
        code=exc.code,
        path=request.url.path,
    )
    headers = {"WWW-Authenticate": 'Bearer realm="agentgate"'} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.__class__.__name__,
            "message": exc.message,
            "code": exc.code,
            "status_code": exc.status_code,
            "correlation_id": correlation_id,
            "path": str(request.url.path)
        },
        headers=headers,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    correlation_id = get_correlation_id()
    log.error(
        "unhandled.exception",
        error_type=exc.__class__.__name__,
        path=request.url.path,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "InternalServerError",
            "message": "An unexpected error occurred",
            "correlation_id": correlation_id,
            "path": str(request.url.path)
        }
    )


def install_error_handlers(app: FastAPI):
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
