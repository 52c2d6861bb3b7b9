from __future__ import annotations


class WafrisError(Exception):
    """Base class for all errors raised by the Wafris middleware."""


class WafrisMisconfiguration(WafrisError, ValueError):
    """Raised when the middleware is configured with invalid values."""


class WafrisConnectionError(WafrisError):
    """Raised when the Redis backend cannot be reached while the middleware
    is being constructed.

    Per-request backend failures never raise; they fail open instead.
    """
