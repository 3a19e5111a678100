# backend/rentals/middleware/request_id.py
from __future__ import annotations

import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

REQUEST_ID_HEADER = "X-Request-ID"

# ids from the dashboard or the proxy end up in JSON log lines verbatim
_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

_current_request_id: ContextVar[Optional[str]] = ContextVar("rentals_request_id", default=None)


def get_request_id() -> Optional[str]:
    return _current_request_id.get()


def resolve_request_id(incoming: Optional[str]) -> str:
    """Reuses a well-formed caller id, otherwise mints a new one."""
    rid = (incoming or "").strip()
    if rid and _ACCEPTED_ID.match(rid):
        return rid
    return uuid.uuid4().hex


class RequestIDMiddleware:
    """
    Plain ASGI middleware: tags every HTTP request with an id.

    The id is visible to handlers as request.state.request_id, to log
    records through get_request_id(), and to the caller in X-Request-ID.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        rid = resolve_request_id(Headers(scope=scope).get(REQUEST_ID_HEADER))
        scope.setdefault("state", {})["request_id"] = rid

        async def send_with_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = rid
            await send(message)

        token = _current_request_id.set(rid)
        try:
            await self.app(scope, receive, send_with_id)
        finally:
            _current_request_id.reset(token)
