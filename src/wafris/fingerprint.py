from __future__ import annotations

import time

from ._logging import WafrisLogger
from .context import RequestContext
from .ip import ip_to_numeric_string

FINGERPRINT_FIELDS: tuple[str, ...] = (
    "ip",
    "decimal_ip",
    "time",
    "user_agent",
    "path",
    "query",
    "host",
    "method",
)
"""Positional layout of the argument vector passed to the evaluator script.

The script reads ``ARGV`` by index, so this order must only change together
with the script."""


def _now_ms() -> int:
    return int(time.time() * 1000)


def build_fingerprint(
    ctx: RequestContext, logger: WafrisLogger, *, now_ms: int | None = None
) -> tuple[str, ...]:
    """Build the evaluator argument vector for one request.

    Every value goes through ``str()``, so missing values are sent as
    ``"None"`` rather than being dropped. Only the IP conversion can log; no
    I/O happens here.
    """
    values = (
        ctx.ip,
        ip_to_numeric_string(ctx.ip, logger),
        _now_ms() if now_ms is None else now_ms,
        ctx.header("User-Agent"),
        ctx.path,
        ctx.query,
        ctx.host,
        ctx.method,
    )
    return tuple(str(v) for v in values)
