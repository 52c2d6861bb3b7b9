from __future__ import annotations

from ._enums import DecisionResult
from ._errors import WafrisConnectionError, WafrisError, WafrisMisconfiguration
from .backend import RedisEvaluator, RedisEvaluatorSync
from .client import Wafris, WafrisSync, wafris, wafris_sync
from .config import PoolSizing, WafrisConfig
from .context import RequestContext
from .decision import Decision, Evaluated, Failed, Outcome, TimedOut
from .fingerprint import FINGERPRINT_FIELDS, build_fingerprint
from .ip import ip_to_numeric_string
from .middleware import WafrisMiddleware, WafrisWSGIMiddleware

__all__ = [
    "build_fingerprint",
    "Decision",
    "DecisionResult",
    "Evaluated",
    "Failed",
    "FINGERPRINT_FIELDS",
    "ip_to_numeric_string",
    "Outcome",
    "PoolSizing",
    "RedisEvaluator",
    "RedisEvaluatorSync",
    "RequestContext",
    "TimedOut",
    "wafris_sync",
    "wafris",
    "Wafris",
    "WafrisConfig",
    "WafrisConnectionError",
    "WafrisError",
    "WafrisMiddleware",
    "WafrisMisconfiguration",
    "WafrisSync",
    "WafrisWSGIMiddleware",
]
