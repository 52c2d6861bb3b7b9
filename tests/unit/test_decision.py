from __future__ import annotations

import pytest

from wafris._enums import DecisionResult
from wafris.decision import Decision, Evaluated, Failed, TimedOut


@pytest.mark.parametrize("reply", ["Blocked", "BLOCKED", "blocked", "bLoCkEd"])
def test_blocked_any_case(reply):
    """Test that Blocked in any case is a block."""
    d = Decision(Evaluated(reply))
    assert d.is_blocked()
    assert not d.is_allowed()
    assert not d.is_error()
    assert d.result is DecisionResult.BLOCKED


@pytest.mark.parametrize("reply", ["Allowed", "PASSED", "passed", "Unknown", ""])
def test_everything_else_is_allowed(reply):
    """Test that every other reply is allowed."""
    d = Decision(Evaluated(reply))
    assert d.is_allowed()
    assert not d.is_blocked()


def test_unknown_reply_has_no_result():
    """Test that an unknown reply has no normalized result."""
    assert Decision(Evaluated("Unknown")).result is None


def test_timeout_fails_open():
    """Test that a timeout is an allowed error decision."""
    d = Decision(TimedOut("Timeout"))
    assert d.is_allowed()
    assert d.is_error()
    assert d.is_timeout()
    assert d.result is None


def test_failure_fails_open():
    """Test that a failure is an allowed error decision."""
    d = Decision(Failed("ConnectionError", "refused"))
    assert d.is_allowed()
    assert d.is_error()
    assert not d.is_timeout()


def test_to_dict():
    """Test the dict rendering of each outcome."""
    assert Decision(Evaluated("Blocked")).to_dict() == {
        "outcome": "EVALUATED",
        "result": "blocked",
        "blocked": True,
        "reply": "Blocked",
    }
    assert Decision(Failed("ResponseError", "NOSCRIPT")).to_dict() == {
        "outcome": "FAILED",
        "result": None,
        "blocked": False,
        "error": {"name": "ResponseError", "message": "NOSCRIPT"},
    }
    assert Decision(TimedOut("slow")).to_dict()["error"] == {
        "name": "TimedOut",
        "message": "slow",
    }
