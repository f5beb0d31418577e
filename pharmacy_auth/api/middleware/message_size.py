"""
Reject request messages larger than the configured limit.

Works for both Content-Length and chunked bodies: the declared length is
checked up front, and the bytes actually received are counted while the
handler reads the body.
"""

from fastapi import status
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from pharmacy_auth.logging_config import get_logger

logger = get_logger(__name__)


class _MessageTooLarge(Exception):
    pass


def _too_large() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        content={"detail": "Message too large"},
    )


class MessageSizeLimitMiddleware:
    """Answer 413 once a request body exceeds ``max_bytes``."""

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        length = Headers(scope=scope).get("content-length")
        if length is not None:
            try:
                declared = int(length)
            except ValueError:
                response = JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={"detail": "Invalid Content-Length"},
                )
                await response(scope, receive, send)
                return
            if declared > self.max_bytes:
                logger.warning(
                    "Message too large",
                    extra={"path": path, "content_length": declared},
                )
                await _too_large()(scope, receive, send)
                return

        received = 0
        exceeded = False
        started = False

        async def receive_limited() -> Message:
            nonlocal received, exceeded
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    exceeded = True
                    raise _MessageTooLarge()
            return message

        async def send_guarded(message: Message) -> None:
            nonlocal started
            # Once over the limit the handler's own reply (FastAPI turns body
            # read failures into 400) is replaced by the 413 below.
            if exceeded and not started:
                return
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, receive_limited, send_guarded)
        except _MessageTooLarge:
            if started:
                raise

        if exceeded and not started:
            logger.warning(
                "Message too large",
                extra={"path": path, "received_bytes": received},
            )
            await _too_large()(scope, receive, send)
