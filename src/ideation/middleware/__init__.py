"""Middleware registration."""

from fastapi import FastAPI

from ideation.config import Settings
from ideation.middleware.cors import setup_cors
from ideation.middleware.error_handler import setup_error_handlers
from ideation.middleware.logging import setup_logging
from ideation.middleware.request_id import RequestIdMiddleware
from ideation.middleware.timeout import TimeoutMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register middleware; the last one added is the outermost.

    Order from the outside in: CORS, request id, timeout, then the routes.
    The request id is bound before the timeout starts so a 504 is still
    logged against it.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
