"""ASGI and WSGI adapters.

Both adapters either hand the request to the wrapped application or answer
it with ``403 Blocked`` themselves, never both.

FastAPI / Starlette::

    from wafris.middleware import WafrisMiddleware

    app.add_middleware(WafrisMiddleware, redis_url="redis://localhost:6379")

Flask::

    from wafris import wafris_sync
    from wafris.middleware import WafrisWSGIMiddleware

    app.wsgi_app = WafrisWSGIMiddleware(app.wsgi_app, wafris_sync())
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Iterable, MutableMapping

from ._logging import logger
from .client import Wafris, WafrisSync
from .client import wafris as create_wafris

BLOCKED_STATUS = 403
BLOCKED_BODY = "Blocked"

_BLOCKED_BYTES = BLOCKED_BODY.encode("utf-8")
_BLOCKED_HEADERS = [
    (b"content-type", b"text/plain; charset=utf-8"),
    (b"content-length", str(len(_BLOCKED_BYTES)).encode("latin-1")),
]

Scope = MutableMapping[str, Any]
Message = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]


async def send_blocked(send: Send) -> None:
    """Write the fixed ``403 Blocked`` response to an ASGI ``send``."""
    await send(
        {
            "type": "http.response.start",
            "status": BLOCKED_STATUS,
            "headers": list(_BLOCKED_HEADERS),
        }
    )
    await send({"type": "http.response.body", "body": _BLOCKED_BYTES})


class WafrisMiddleware:
    """Pure ASGI middleware.

    Pass a ready ``Wafris`` instance as ``wafris=``, or configuration keyword
    arguments (the same as ``wafris()``) to have one created by the
    middleware. Websocket scopes pass straight through.

    A client created by the middleware is built during ``lifespan.startup``,
    so a Redis that cannot load the evaluator script stops the server from
    starting (``lifespan.startup.failed``), and it is closed again on
    ``lifespan.shutdown``. Servers that do not run the lifespan protocol get
    the client created on the first HTTP request instead.
    """

    def __init__(
        self, app: ASGIApp, *, wafris: Wafris | None = None, **config: Any
    ) -> None:
        self.app = app
        self._wafris = wafris
        self._owned = wafris is None
        self._config = config
        self._lock = asyncio.Lock()
        self._startup_failed = False

    async def _ensure(self) -> Wafris:
        if self._wafris is not None:
            return self._wafris
        async with self._lock:
            if self._wafris is None:
                self._wafris = await create_wafris(**self._config)
        return self._wafris

    def _lifespan_send(self, send: Send) -> Send:
        async def wrapped(message: Message) -> None:
            kind = message["type"]
            if kind == "lifespan.startup.complete":
                try:
                    await self._ensure()
                except Exception as e:
                    self._startup_failed = True
                    (self._config.get("logger") or logger).error(
                        "[Wafris] Could not start: %s: %s",
                        type(e).__name__,
                        e,
                        extra={"event": "wafris_startup_failed", "error": str(e)},
                    )
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": f"{type(e).__name__}: {e}",
                        }
                    )
                    raise
            elif kind == "lifespan.startup.failed" and self._startup_failed:
                # Already reported above.
                return
            elif kind == "lifespan.shutdown.complete" and self._owned:
                await self.aclose()
            await send(message)

        return wrapped

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self.app(scope, receive, self._lifespan_send(send))
            return
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        waf = await self._ensure()
        decision = await waf.protect(scope)
        if decision.is_blocked():
            await send_blocked(send)
            return
        await self.app(scope, receive, send)

    async def aclose(self) -> None:
        if self._wafris is not None:
            await self._wafris.aclose()
            if self._owned:
                self._wafris = None


class WafrisWSGIMiddleware:
    """WSGI middleware around a ``WafrisSync`` instance."""

    def __init__(self, app: Callable[..., Iterable[bytes]], wafris: WafrisSync) -> None:
        self.app = app
        self.wafris = wafris

    def __call__(
        self, environ: dict[str, Any], start_response: Callable[..., Any]
    ) -> Iterable[bytes]:
        decision = self.wafris.protect(environ)
        if decision.is_blocked():
            start_response(
                f"{BLOCKED_STATUS} Forbidden",
                [(k.decode("latin-1"), v.decode("latin-1")) for k, v in _BLOCKED_HEADERS],
            )
            return [_BLOCKED_BYTES]
        return self.app(environ, start_response)
