"""Package logger for Wafris.

Library code never configures handlers; it only attaches a ``NullHandler``
so applications decide where records go. Set ``WAFRIS_LOG_LEVEL`` to a level
name (``debug``, ``WARNING``) or number (``10``) to override the level of the
``wafris`` logger.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Protocol

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}


class WafrisLogger(Protocol):
    """Minimal logger interface accepted by the middleware.

    Any ``logging.Logger`` (or ``logging.LoggerAdapter``) satisfies it.
    """

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


def _env_log_level(default: int = logging.WARNING) -> int:
    raw = (os.getenv("WAFRIS_LOG_LEVEL") or "").strip()
    if not raw:
        return default
    if raw.isdigit():
        try:
            return int(raw)
        except ValueError:
            return default
    return _LEVELS.get(raw.upper(), default)


logger = logging.getLogger("wafris")
logger.addHandler(logging.NullHandler())
if os.getenv("WAFRIS_LOG_LEVEL"):
    logger.setLevel(_env_log_level())
