"""Request body size enforcement."""
from fastapi import Request
from starlette.requests import ClientDisconnect
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from project_admin.utils.errors import PayloadTooLargeError, ValidationError, app_error_handler
from project_admin.utils.logger import get_logger

logger = get_logger(__name__)

# Default mirrors the usual 100kb JSON body limit
DEFAULT_MAX_BODY_BYTES = 100 * 1024


class BodyLimitMiddleware:
    """
    Reject requests whose body exceeds `max_body_bytes`.

    A declared `Content-Length` is checked before anything is read. Bodies
    without one (chunked uploads) are counted as they are received; once the
    count passes the limit the downstream app sees a disconnect, its response
    is discarded and a 413 is sent instead.

    JSON decoding and schema validation happen in the route layer.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int = DEFAULT_MAX_BODY_BYTES):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                size = int(content_length)
            except ValueError:
                response = await app_error_handler(
                    request, ValidationError("Invalid Content-Length header")
                )
                await response(scope, receive, send)
                return

            if size > self.max_body_bytes:
                await self._reject(request, size, scope, receive, send)
                return

        received = 0
        exceeded = False
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received, exceeded
            if exceeded:
                return {"type": "http.disconnect"}

            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    exceeded = True
                    return {"type": "http.disconnect"}
            return message

        async def guarded_send(message: Message) -> None:
            nonlocal response_started
            if exceeded and not response_started:
                return
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, guarded_send)
        except ClientDisconnect:
            if not exceeded:
                raise

        if exceeded and not response_started:
            await self._reject(request, received, scope, receive, send)

    async def _reject(
        self, request: Request, size: int, scope: Scope, receive: Receive, send: Send
    ) -> None:
        logger.warning(
            "Request body too large",
            path=request.url.path,
            size=size,
            limit=self.max_body_bytes,
        )
        response = await app_error_handler(request, PayloadTooLargeError(size, self.max_body_bytes))
        await response(scope, receive, send)
