"""Request body size limit."""

import logging
from typing import List

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)


class RequestSizeLimitMiddleware:
    """Reject request bodies larger than ``max_size`` bytes.

    A declared Content-Length is checked before anything is read. Bodies sent
    without one (chunked transfer) are buffered up to ``max_size`` and
    replayed to the app, so oversized prompts never reach the JSON parser or
    the provider either way.
    """

    def __init__(self, app: ASGIApp, max_size: int = 8192):
        self.app = app
        self.max_size = max_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                size = int(content_length)
            except (ValueError, TypeError):
                logger.warning(f"Invalid Content-Length header: {content_length}")
                response = JSONResponse(
                    status_code=400,
                    content={
                        "error": "InvalidRequest",
                        "message": "Invalid Content-Length header"
                    }
                )
                await response(scope, receive, send)
                return
            if size > self.max_size:
                await self._too_large(scope, receive, send, size)
                return
            await self.app(scope, receive, send)
            return

        buffered: List[Message] = []
        received = 0
        while True:
            message = await receive()
            buffered.append(message)
            if message.get("type") != "http.request":
                break
            received += len(message.get("body") or b"")
            if received > self.max_size:
                await self._too_large(scope, receive, send, received)
                return
            if not message.get("more_body", False):
                break

        async def replay_receive() -> Message:
            if buffered:
                return buffered.pop(0)
            return await receive()

        await self.app(scope, replay_receive, send)

    async def _too_large(self, scope: Scope, receive: Receive, send: Send, size: int) -> None:
        client = scope.get("client")
        logger.warning(
            f"Request size {size} bytes exceeds limit {self.max_size} bytes",
            extra={
                "content_length": size,
                "max_size": self.max_size,
                "client": client[0] if client else "unknown"
            }
        )
        response = JSONResponse(
            status_code=413,
            content={
                "error": "PayloadTooLarge",
                "message": f"Request body too large. Maximum size is {self.max_size} bytes",
                "max_size_bytes": self.max_size
            }
        )
        await response(scope, receive, send)
