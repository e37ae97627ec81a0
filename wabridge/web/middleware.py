"""
Body Size Limit - ASGI Middleware
=================================

Rejects request bodies over the configured limit with a 413 in the common
error shape. Content-Length is checked up front; chunked bodies are counted
as they arrive, and the route's body read fails once the limit is passed.
"""

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .errors import PayloadTooLargeError


class BodySizeLimitMiddleware:
    def __init__(self, app: ASGIApp, limit_mb: int):
        self.app = app
        self.limit_mb = limit_mb
        self.max_bytes = limit_mb * 1024 * 1024

    def _error(self) -> PayloadTooLargeError:
        return PayloadTooLargeError(
            "Request entity too large",
            f"Body exceeds {self.limit_mb} MB limit",
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length", "")
        if length.isdigit() and int(length) > self.max_bytes:
            exc = self._error()
            response = JSONResponse(status_code=exc.status_code, content=exc.to_dict())
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    # Raised inside the route's body read; mapped by the
                    # GatewayError handler
                    raise self._error()
            return message

        await self.app(scope, limited_receive, send)
