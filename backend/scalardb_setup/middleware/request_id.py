"""Request ID middleware: tags every HTTP request and response with an ID.

Pure ASGI, so error responses (including CORS headers) pass through
untouched. WebSocket scopes are forwarded as-is.
"""

import uuid
from typing import Any

from starlette.types import ASGIApp, Receive, Scope, Send

HEADER = b"x-request-id"


class RequestIDMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = ""
        for name, value in scope.get("headers", []):
            if name == HEADER:
                request_id = value.decode("latin-1")
                break
        request_id = request_id or uuid.uuid4().hex

        # request.state.request_id downstream
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_id(message: Any) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = [*message.get("headers", []), (HEADER, request_id.encode("latin-1"))]
            await send(message)

        await self.app(scope, receive, send_with_id)
