"""Redis-backed evaluators.

An evaluator owns the connection pool to Redis and exposes two operations:

- ``register(source)``: ``SCRIPT LOAD`` the evaluator script once and return
  its SHA1 handle. Raises ``WafrisConnectionError`` on failure.
- ``evaluate(handle, args)``: ``EVALSHA`` the handle with the fingerprint as
  ``ARGV``. Never raises; returns an ``Evaluated``, ``TimedOut`` or
  ``Failed`` outcome.

Anything implementing ``AsyncEvaluator`` / ``SyncEvaluator`` can be passed to
``Wafris`` / ``WafrisSync`` in place of Redis, e.g. an in-process rule engine.
"""

from __future__ import annotations

import asyncio
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from typing import Any, Protocol, Sequence

import redis
import redis.asyncio as aioredis
from redis.exceptions import TimeoutError as RedisTimeoutError

from ._errors import WafrisConnectionError
from .config import WafrisConfig
from .decision import Evaluated, Failed, Outcome, TimedOut

_TIMEOUT_ERRORS = (RedisTimeoutError, TimeoutError, asyncio.TimeoutError)


def sdk_version(default: str = "0.0.0") -> str:
    """Installed version of the ``wafris`` distribution, or ``default`` when
    running from source without installed metadata."""
    try:
        return pkg_version("wafris")
    except PackageNotFoundError:
        return default


def _safe_url(url: str) -> str:
    # Hide credentials in log and error messages.
    if "@" in url and "://" in url:
        scheme, rest = url.split("://", 1)
        return f"{scheme}://***@{rest.rsplit('@', 1)[1]}"
    return url


def _client_options(config: WafrisConfig) -> dict[str, Any]:
    """Keyword arguments for ``Redis.from_url``.

    Pool sizing is only passed when a pool size is configured, otherwise the
    redis-py defaults apply.
    """
    options: dict[str, Any] = {
        "socket_connect_timeout": config.timeout_seconds,
        "socket_timeout": config.timeout_seconds,
        "decode_responses": True,
        "client_name": f"wafris-python-{sdk_version()}",
    }
    sizing = config.pool_sizing
    if sizing is not None:
        options["max_connections"] = sizing.max
    return options


def _reply_to_outcome(reply: Any) -> Outcome:
    if isinstance(reply, bytes):
        reply = reply.decode("utf-8", errors="replace")
    return Evaluated(str(reply))


def _error_to_outcome(e: BaseException) -> Outcome:
    if isinstance(e, _TIMEOUT_ERRORS):
        return TimedOut(str(e))
    return Failed(type(e).__name__, str(e))


class AsyncEvaluator(Protocol):
    async def register(self, source: str) -> str: ...

    async def evaluate(self, handle: str, args: Sequence[str]) -> Outcome: ...

    async def aclose(self) -> None: ...


class SyncEvaluator(Protocol):
    def register(self, source: str) -> str: ...

    def evaluate(self, handle: str, args: Sequence[str]) -> Outcome: ...

    def close(self) -> None: ...


class RedisEvaluator:
    """Async evaluator on ``redis.asyncio``."""

    def __init__(self, client: aioredis.Redis, *, timeout_ms: int, url: str = "") -> None:
        self._redis = client
        self._timeout = timeout_ms / 1000.0
        self._url = url

    @classmethod
    def from_config(cls, config: WafrisConfig) -> RedisEvaluator:
        client = aioredis.Redis.from_url(config.redis_url, **_client_options(config))
        return cls(client, timeout_ms=config.timeout_ms, url=config.redis_url)

    async def register(self, source: str) -> str:
        try:
            return await asyncio.wait_for(
                self._redis.script_load(source), timeout=self._timeout
            )
        except Exception as e:
            raise WafrisConnectionError(
                f"Could not load the Wafris evaluator script into Redis at "
                f"{_safe_url(self._url)}: {type(e).__name__}: {e}"
            ) from e

    async def evaluate(self, handle: str, args: Sequence[str]) -> Outcome:
        try:
            reply = await asyncio.wait_for(
                self._redis.evalsha(handle, 0, *args), timeout=self._timeout
            )
        except Exception as e:
            return _error_to_outcome(e)
        return _reply_to_outcome(reply)

    async def aclose(self) -> None:
        await self._redis.aclose()


class RedisEvaluatorSync:
    """Sync evaluator on ``redis.Redis``. Timeouts are enforced by the socket
    connect and read timeouts."""

    def __init__(self, client: redis.Redis, *, url: str = "") -> None:
        self._redis = client
        self._url = url

    @classmethod
    def from_config(cls, config: WafrisConfig) -> RedisEvaluatorSync:
        client = redis.Redis.from_url(config.redis_url, **_client_options(config))
        return cls(client, url=config.redis_url)

    def register(self, source: str) -> str:
        try:
            return self._redis.script_load(source)
        except Exception as e:
            raise WafrisConnectionError(
                f"Could not load the Wafris evaluator script into Redis at "
                f"{_safe_url(self._url)}: {type(e).__name__}: {e}"
            ) from e

    def evaluate(self, handle: str, args: Sequence[str]) -> Outcome:
        try:
            reply = self._redis.evalsha(handle, 0, *args)
        except Exception as e:
            return _error_to_outcome(e)
        return _reply_to_outcome(reply)

    def close(self) -> None:
        self._redis.close()
