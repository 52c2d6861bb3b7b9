"""Evaluation outcomes and per-request decisions.

Core types:
- `Evaluated`, `TimedOut`, `Failed`: the tagged outcome of one evaluator
  call. Evaluators return these instead of raising, so the fail-open policy
  is an explicit branch on the variant rather than a catch-all.
- `Decision`: what `protect()` returns, with convenience methods
  (`is_blocked()`, `is_allowed()`, `is_error()`, ...) and `dict` conversion.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Union

from ._enums import DecisionResult


@dataclass(frozen=True, slots=True)
class Evaluated:
    """The evaluator replied. ``result`` is the raw reply as a string."""

    result: str

    type: Literal["EVALUATED"] = "EVALUATED"


@dataclass(frozen=True, slots=True)
class TimedOut:
    """The evaluator did not reply within the configured timeout, or the
    connection attempt itself timed out."""

    message: str = ""

    type: Literal["TIMED_OUT"] = "TIMED_OUT"


@dataclass(frozen=True, slots=True)
class Failed:
    """The evaluator call failed for any reason other than a timeout.

    ``name`` is the failure category, usually the exception class name (e.g.
    ``"ConnectionError"``, ``"NoScriptError"``).
    """

    name: str
    message: str = ""

    type: Literal["FAILED"] = "FAILED"


Outcome = Union[Evaluated, TimedOut, Failed]
"""Tagged union of evaluator outcomes. Check ``outcome.type`` or use
``isinstance`` to tell them apart."""


@dataclass(frozen=True, slots=True)
class Decision:
    """Result of checking one request.

    Only a ``"blocked"`` reply rejects. Everything else, including timeouts,
    backend errors and replies the middleware does not recognise, lets the
    request through.

    Example::

        decision = await waf.protect(request)
        if decision.is_blocked():
            return PlainTextResponse("Blocked", status_code=403)
        if decision.is_error():
            # Let it through, but you may want to alert on this.
            ...
    """

    outcome: Outcome
    fingerprint: tuple[str, ...] = ()

    @property
    def result(self) -> DecisionResult | None:
        """Normalized evaluator reply, or ``None`` when there was no reply or
        the reply was not a known result."""
        if isinstance(self.outcome, Evaluated):
            return DecisionResult.from_wire(self.outcome.result)
        return None

    def is_blocked(self) -> bool:
        """``True`` if the request must be rejected with ``403 Blocked``."""
        return self.result is DecisionResult.BLOCKED

    def is_allowed(self) -> bool:
        """``True`` if the request may continue. The inverse of
        ``is_blocked()``: errors and unknown replies fail open."""
        return not self.is_blocked()

    def is_timeout(self) -> bool:
        return isinstance(self.outcome, TimedOut)

    def is_error(self) -> bool:
        """``True`` if no reply was obtained (timeout or other failure)."""
        return isinstance(self.outcome, (TimedOut, Failed))

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "outcome": self.outcome.type,
            "result": self.result.value if self.result is not None else None,
            "blocked": self.is_blocked(),
        }
        if isinstance(self.outcome, Evaluated):
            out["reply"] = self.outcome.result
        elif isinstance(self.outcome, Failed):
            out["error"] = {"name": self.outcome.name, "message": self.outcome.message}
        else:
            out["error"] = {"name": "TimedOut", "message": self.outcome.message}
        return out
