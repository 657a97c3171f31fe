"""
ASGI middleware applied in front of the GraphQL endpoint.
"""

import time
from dataclasses import dataclass
from typing import Iterable, Tuple

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from graphgate.core.errors import CorsRejected, error_response
from graphgate.core.logging import LogContext, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CorsPolicy:
    """Origins allowed to call the gateway from a browser."""
    allow_origins: Tuple[str, ...]
    allow_credentials: bool = True

    @classmethod
    def from_origins(cls, origins: Iterable[str], allow_credentials: bool = True) -> "CorsPolicy":
        return cls(tuple(o.rstrip("/") for o in origins), allow_credentials)

    @property
    def allows_any(self) -> bool:
        return "*" in self.allow_origins

    def is_allowed(self, origin: str) -> bool:
        return self.allows_any or origin.rstrip("/") in self.allow_origins


class OriginGuardMiddleware:
    """
    Reject cross-origin requests before they reach the schema.

    Requests without an ``Origin`` header are not cross-origin browser calls
    and pass through. Only paths under ``path`` are guarded.
    """

    def __init__(self, app: ASGIApp, *, policy: CorsPolicy, path: str):
        self.app = app
        self.policy = policy
        self.path = path.rstrip("/")

    def _guards(self, path: str) -> bool:
        return path == self.path or path.startswith(f"{self.path}/")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self._guards(scope["path"]):
            await self.app(scope, receive, send)
            return

        origin = Headers(scope=scope).get("origin")
        if origin is not None and not self.policy.is_allowed(origin):
            logger.warning("Rejected cross-origin request", origin=origin, path=scope["path"])
            response = error_response(CorsRejected(origin))
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)


class RequestLoggingMiddleware:
    """Bind request metadata to the log context and log each response."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        status_code = 500
        start_time = time.perf_counter()

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        headers = Headers(scope=scope)
        with LogContext(
            request_id=headers.get("x-request-id"),
            method=scope["method"],
            path=scope["path"],
        ):
            try:
                await self.app(scope, receive, send_wrapper)
            finally:
                logger.info(
                    "Request handled",
                    status=status_code,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )
