from __future__ import annotations

from enum import Enum


class DecisionResult(str, Enum):
    """Result string returned by the Redis evaluator script.

    The evaluator replies with one of ``"Blocked"``, ``"Allowed"`` or
    ``"Passed"``. Comparison is case-insensitive: the reply is lowercased
    before it is matched against these members.

    Only ``BLOCKED`` rejects a request. ``ALLOWED`` and ``PASSED`` both let the
    request through, as does any reply that is not a member of this enum.

    Example::

        from wafris import DecisionResult

        if decision.result == DecisionResult.BLOCKED:
            ...
    """

    BLOCKED = "blocked"
    """The request matched a block rule and is rejected with ``403``."""

    ALLOWED = "allowed"
    """The request matched an allow rule (e.g. an allow-listed IP)."""

    PASSED = "passed"
    """No rule matched; the request continues."""

    @classmethod
    def from_wire(cls, value: object) -> DecisionResult | None:
        """Normalize a raw evaluator reply.

        Returns ``None`` for replies that are not a known result.
        """
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        try:
            return cls(str(value).lower())
        except ValueError:
            return None
