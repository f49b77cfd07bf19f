"""End-to-end request timeout.

The handler runs inside the timeout scope, so running out of budget cancels
it where it is awaiting. Its session is closed without a commit and the
transaction rolls back before the 504 goes out.
"""

import asyncio

import structlog
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = structlog.get_logger()

_EXEMPT_PATHS = frozenset({"/health", "/ready", "/version"})


class TimeoutMiddleware:
    def __init__(self, app: ASGIApp, timeout_seconds: float = 30.0) -> None:
        self.app = app
        self.timeout_seconds = timeout_seconds

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["path"] in _EXEMPT_PATHS or self.timeout_seconds <= 0:
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            async with asyncio.timeout(self.timeout_seconds):
                await self.app(scope, receive, send_wrapper)
        except TimeoutError:
            logger.warning(
                "request_timeout",
                timeout_seconds=self.timeout_seconds,
                response_started=response_started,
            )
            if response_started:
                # Headers are already out; the client sees a truncated body.
                return
            response = JSONResponse(
                status_code=504,
                content={"success": False, "message": "Request timed out", "data": None},
            )
            await response(scope, receive, send)
