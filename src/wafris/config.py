from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterable

from ._errors import WafrisMisconfiguration
from ._logging import WafrisLogger
from ._logging import logger as _package_logger
from .core import load_core_script

DEFAULT_REDIS_URL = (os.getenv("WAFRIS_REDIS_URL") or "redis://localhost:6379").strip()
DEFAULT_TIMEOUT_MS = 250
POOL_MIN_CONNECTIONS = 1


@dataclass(frozen=True, slots=True)
class PoolSizing:
    """Connection pool bounds derived from ``pool_size``.

    ``min`` is a fixed floor; ``max`` is the configured size and is what the
    Redis connection pool is capped at.
    """

    min: int
    max: int


@dataclass(frozen=True, slots=True)
class WafrisConfig:
    """Resolved middleware configuration.

    Built once by the ``wafris()`` / ``wafris_sync()`` factories and never
    changed afterwards. Use ``WafrisConfig.resolve()`` to apply defaults and
    validation when constructing one by hand.
    """

    redis_url: str = DEFAULT_REDIS_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    pool_size: int | None = None
    quiet_mode: bool = False
    logger: WafrisLogger = field(default=_package_logger, compare=False)
    trusted_proxies: tuple[str, ...] = ()
    core_script: str = field(default="", repr=False)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def pool_sizing(self) -> PoolSizing | None:
        """Pool bounds, or ``None`` when no pool size was configured and the
        transport defaults apply."""
        if self.pool_size is None:
            return None
        return PoolSizing(min=POOL_MIN_CONNECTIONS, max=self.pool_size)

    @classmethod
    def resolve(
        cls,
        *,
        redis_url: str | None = None,
        timeout_ms: int | None = None,
        pool_size: int | None = None,
        quiet_mode: bool = False,
        logger: WafrisLogger | None = None,
        trusted_proxies: Iterable[str] = (),
        core_script: str | None = None,
    ) -> WafrisConfig:
        """Apply defaults and validate.

        Raises:
            WafrisMisconfiguration: If the URL is empty, or the timeout or pool
                size is not a positive integer.
        """
        url = DEFAULT_REDIS_URL if redis_url is None else redis_url.strip()
        if not url:
            raise WafrisMisconfiguration("redis_url must not be empty.")

        timeout = DEFAULT_TIMEOUT_MS if timeout_ms is None else timeout_ms
        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
            raise WafrisMisconfiguration(
                f"timeout_ms must be a positive integer, got {timeout_ms!r}."
            )

        if pool_size is not None and (
            isinstance(pool_size, bool)
            or not isinstance(pool_size, int)
            or pool_size < POOL_MIN_CONNECTIONS
        ):
            raise WafrisMisconfiguration(
                f"pool_size must be a positive integer, got {pool_size!r}."
            )

        if isinstance(trusted_proxies, str):
            # A bare string would otherwise be split into characters.
            trusted_proxies = [trusted_proxies]

        return cls(
            redis_url=url,
            timeout_ms=timeout,
            pool_size=pool_size,
            quiet_mode=bool(quiet_mode),
            logger=_package_logger if logger is None else logger,
            trusted_proxies=tuple(str(p) for p in trusted_proxies),
            core_script=load_core_script() if core_script is None else core_script,
        )
