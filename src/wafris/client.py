"""Wafris middleware for Python.

This module exposes both async (`Wafris`) and sync (`WafrisSync`) clients:

- `wafris(...)` / `wafris_sync(...)`: Factory functions that resolve the
  configuration, connect to Redis and load the evaluator script once.
- `.protect(request)`: Fingerprints a request, asks the evaluator for a
  decision and returns a `Decision`. It fails open: timeouts and backend
  errors are logged and the request is allowed through.

The request object you pass can be a raw framework request (ASGI scope dict,
Starlette/FastAPI `Request`, WSGI environ, Flask/Werkzeug `Request`) or a
pre-built `RequestContext`; see `coerce_request_context` for details. To wire
the check into an application without touching route handlers, use the
adapters in `wafris.middleware`.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Iterable

from typing_extensions import assert_never

from ._logging import WafrisLogger
from .backend import AsyncEvaluator, RedisEvaluator, RedisEvaluatorSync, SyncEvaluator
from .config import WafrisConfig
from .context import RequestContext, coerce_request_context
from .decision import Decision, Evaluated, Failed, Outcome, TimedOut
from .fingerprint import FINGERPRINT_FIELDS, build_fingerprint

_PASSED_UNCHECKED = "Request passed without rules check."


def _log_processing(config: WafrisConfig, ctx: RequestContext) -> None:
    if config.quiet_mode:
        return
    config.logger.debug(
        "[Wafris] processing: method=%s path=%s",
        ctx.method,
        ctx.path,
        extra={"event": "wafris_request", "method": ctx.method, "path": ctx.path},
    )


def _decide(
    outcome: Outcome,
    fingerprint: tuple[str, ...],
    logger: WafrisLogger,
    t0: float,
) -> Decision:
    """Map an evaluator outcome to a decision and log it."""
    decision = Decision(outcome=outcome, fingerprint=fingerprint)
    total_ms = round((time.perf_counter() - t0) * 1000.0, 3)

    if isinstance(outcome, Evaluated):
        if decision.is_blocked():
            fields = dict(zip(FINGERPRINT_FIELDS, fingerprint))
            logger.warning(
                "[Wafris] Blocked: ip=%s method=%s host=%s path=%s",
                fields.get("ip"),
                fields.get("method"),
                fields.get("host"),
                fields.get("path"),
                extra={
                    "event": "wafris_blocked",
                    "ip": fields.get("ip"),
                    "method": fields.get("method"),
                    "host": fields.get("host"),
                    "path": fields.get("path"),
                    "total_ms": total_ms,
                },
            )
    elif isinstance(outcome, TimedOut):
        logger.error(
            "[Wafris] Wafris timed out during processing. " + _PASSED_UNCHECKED,
            extra={
                "event": "wafris_timeout",
                "error": outcome.message,
                "total_ms": total_ms,
            },
        )
    elif isinstance(outcome, Failed):
        logger.error(
            "[Wafris] An unexpected %s occurred: %s. " + _PASSED_UNCHECKED,
            outcome.name,
            outcome.message,
            extra={
                "event": "wafris_error",
                "error_name": outcome.name,
                "error": outcome.message,
                "total_ms": total_ms,
            },
        )
    else:
        assert_never(outcome)
    return decision


@dataclass(slots=True)
class Wafris:
    """Async Wafris client.

    Holds the resolved configuration, the evaluator (a Redis connection pool
    by default) and the handle of the loaded evaluator script. All three are
    shared by concurrent requests and never change after construction.

    Do not instantiate this class directly - use the ``wafris()`` factory
    function instead, which loads the evaluator script before returning.

    Example::

        from wafris import wafris

        waf = await wafris(redis_url="redis://localhost:6379", timeout_ms=250)

        # Inside an async route handler:
        decision = await waf.protect(request)
        if decision.is_blocked():
            return PlainTextResponse("Blocked", status_code=403)
    """

    _config: WafrisConfig
    _evaluator: AsyncEvaluator
    _handle: str

    @property
    def config(self) -> WafrisConfig:
        return self._config

    async def protect(self, request: Any) -> Decision:
        """Check an incoming request against the evaluator.

        Call this once per request. The only network round trip is the
        ``EVALSHA`` call, bounded by ``timeout_ms``; there are no retries.

        Args:
            ``request``: The incoming HTTP request. Accepts ASGI scope dicts,
                Starlette/FastAPI ``Request`` objects, WSGI environs,
                Flask/Werkzeug ``Request`` objects, or a ``RequestContext``.

        Returns:
            A ``Decision``. ``decision.is_blocked()`` is ``True`` only when the
            evaluator replied ``"Blocked"`` (any case); timeouts and errors
            produce an allowed decision with ``decision.is_error()`` set.

        Raises:
            TypeError: If ``request`` is not a supported request type.
        """
        t0 = time.perf_counter()
        logger = self._config.logger
        ctx = coerce_request_context(request, proxies=self._config.trusted_proxies)
        _log_processing(self._config, ctx)
        fingerprint = build_fingerprint(ctx, logger)
        outcome = await self._evaluator.evaluate(self._handle, fingerprint)
        return _decide(outcome, fingerprint, logger, t0)

    async def aclose(self) -> None:
        """Close the underlying Redis connection pool."""
        await self._evaluator.aclose()

    async def __aenter__(self) -> "Wafris":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


@dataclass(slots=True)
class WafrisSync:
    """Sync Wafris client.

    Synchronous counterpart to ``Wafris`` for WSGI frameworks such as Flask
    or Django. Safe to share between worker threads.

    Do not instantiate this class directly - use the ``wafris_sync()``
    factory function instead.

    Example::

        from wafris import wafris_sync

        waf = wafris_sync(redis_url="redis://localhost:6379")

        @app.before_request
        def check():
            if waf.protect(request).is_blocked():
                return "Blocked", 403
    """

    _config: WafrisConfig
    _evaluator: SyncEvaluator
    _handle: str

    @property
    def config(self) -> WafrisConfig:
        return self._config

    def protect(self, request: Any) -> Decision:
        """Check an incoming request against the evaluator (sync).

        Synchronous counterpart to ``Wafris.protect()``. See that method's
        documentation for details.
        """
        t0 = time.perf_counter()
        logger = self._config.logger
        ctx = coerce_request_context(request, proxies=self._config.trusted_proxies)
        _log_processing(self._config, ctx)
        fingerprint = build_fingerprint(ctx, logger)
        outcome = self._evaluator.evaluate(self._handle, fingerprint)
        return _decide(outcome, fingerprint, logger, t0)

    def close(self) -> None:
        """Close the underlying Redis connection pool."""
        self._evaluator.close()

    def __enter__(self) -> "WafrisSync":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _log_registered(config: WafrisConfig, handle: str) -> None:
    config.logger.info(
        "[Wafris] evaluator script loaded: sha=%s timeout_ms=%d pool_size=%s",
        handle,
        config.timeout_ms,
        config.pool_size,
        extra={
            "event": "wafris_registered",
            "sha": handle,
            "timeout_ms": config.timeout_ms,
            "pool_size": config.pool_size,
        },
    )


async def wafris(
    *,
    redis_url: str | None = None,
    timeout_ms: int | None = None,
    pool_size: int | None = None,
    quiet_mode: bool = False,
    logger: WafrisLogger | None = None,
    trusted_proxies: Iterable[str] = (),
    core_script: str | None = None,
    evaluator: AsyncEvaluator | None = None,
) -> Wafris:
    """Create an async Wafris client.

    Connects to Redis and loads the evaluator script, so this must be awaited
    before serving requests (e.g. in an application lifespan handler).

    Args:
        ``redis_url``: Redis connection URL. Defaults to ``WAFRIS_REDIS_URL``
            or ``redis://localhost:6379``.
        ``timeout_ms``: Connect and evaluation timeout in milliseconds.
            Defaults to 250.
        ``pool_size``: Maximum number of pooled Redis connections. When
            omitted, redis-py's default pool sizing is used.
        ``quiet_mode``: Suppress the per-request debug log line.
        ``logger``: Logger to use instead of the ``wafris`` package logger.
        ``trusted_proxies``: IP addresses or CIDR ranges of reverse proxies in
            front of the app. Requests from these peers are fingerprinted with
            the client address they forwarded in ``X-Forwarded-For``.
        ``core_script``: Lua source of the evaluator. Defaults to the script
            bundled with this package.
        ``evaluator``: Use this evaluator instead of connecting to Redis.

    Returns:
        A ready ``Wafris`` instance.

    Raises:
        WafrisMisconfiguration: If a configuration value is invalid.
        WafrisConnectionError: If the evaluator script cannot be loaded.
    """
    config = WafrisConfig.resolve(
        redis_url=redis_url,
        timeout_ms=timeout_ms,
        pool_size=pool_size,
        quiet_mode=quiet_mode,
        logger=logger,
        trusted_proxies=trusted_proxies,
        core_script=core_script,
    )
    owned = evaluator is None
    ev: AsyncEvaluator = RedisEvaluator.from_config(config) if evaluator is None else evaluator
    try:
        handle = await ev.register(config.core_script)
    except Exception:
        if owned:
            await ev.aclose()
        raise
    _log_registered(config, handle)
    return Wafris(_config=config, _evaluator=ev, _handle=handle)


def wafris_sync(
    *,
    redis_url: str | None = None,
    timeout_ms: int | None = None,
    pool_size: int | None = None,
    quiet_mode: bool = False,
    logger: WafrisLogger | None = None,
    trusted_proxies: Iterable[str] = (),
    core_script: str | None = None,
    evaluator: SyncEvaluator | None = None,
) -> WafrisSync:
    """Create a sync Wafris client.

    Synchronous counterpart to ``wafris()``. Use this with frameworks that do
    not support ``async/await`` such as Flask or Django. Arguments, return
    value and errors are the same.
    """
    config = WafrisConfig.resolve(
        redis_url=redis_url,
        timeout_ms=timeout_ms,
        pool_size=pool_size,
        quiet_mode=quiet_mode,
        logger=logger,
        trusted_proxies=trusted_proxies,
        core_script=core_script,
    )
    owned = evaluator is None
    ev: SyncEvaluator = RedisEvaluatorSync.from_config(config) if evaluator is None else evaluator
    try:
        handle = ev.register(config.core_script)
    except Exception:
        if owned:
            ev.close()
        raise
    _log_registered(config, handle)
    return WafrisSync(_config=config, _evaluator=ev, _handle=handle)
