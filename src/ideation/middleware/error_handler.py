"""Global error handlers: every failure becomes ``{success: false, message, data: null}``."""

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ideation.errors import InternalError, WorkflowError

logger = structlog.get_logger()


def _error(status_code: int, message: str, errors: list[Any] | None = None) -> JSONResponse:
    content: dict[str, Any] = {"success": False, "message": message, "data": None}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(WorkflowError)
    async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("workflow_error", path=request.url.path, error=exc.message)
        return _error(exc.status_code, exc.message, exc.errors)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed input is a 400, with one entry per failing field."""
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
            for err in exc.errors()
        ]
        return _error(400, "Validation error", errors)

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        """A unique/check constraint lost a race with a concurrent write."""
        logger.warning("integrity_conflict", path=request.url.path, error=str(exc.orig))
        return _error(409, "Conflicts with existing data")

    @app.exception_handler(DBAPIError)
    async def database_error_handler(request: Request, exc: DBAPIError) -> JSONResponse:
        """Driver and connection failures; the details stay in the log."""
        logger.error("database_error", path=request.url.path, method=request.method, error=str(exc.orig))
        error = InternalError()
        return _error(error.status_code, error.message)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; always JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        error = InternalError()
        return _error(error.status_code, error.message)
