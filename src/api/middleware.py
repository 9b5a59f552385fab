"""
Request body size enforcement.

Starlette parses multipart bodies into spooled temp files before a route
ever sees them, so a per-route check would come too late to stop a client
from filling the disk. This middleware caps the body at the ASGI layer:

- a declared Content-Length above the ceiling is rejected with 413 before
  the application runs
- otherwise the receive channel is wrapped and raises PayloadTooLargeError
  as soon as the running total crosses the ceiling
"""

import logging

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.errors import PayloadTooLargeError

logger = logging.getLogger(__name__)


class MaxBodySizeMiddleware:
    """Pure ASGI middleware limiting request bodies to max_body_size bytes."""

    def __init__(self, app: ASGIApp, max_body_size: int) -> None:
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_body_size:
            logger.warning(
                "Rejected oversized request",
                extra={
                    "path": scope.get("path"),
                    "content_length": int(declared),
                    "max_body_size": self.max_body_size,
                }
            )
            response = JSONResponse(
                status_code=PayloadTooLargeError.status_code,
                content={"detail": PayloadTooLargeError.default_detail},
            )
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_size:
                    raise PayloadTooLargeError()
            return message

        await self.app(scope, limited_receive, send)
