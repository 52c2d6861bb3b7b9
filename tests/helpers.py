"""Shared test utilities and helper functions.

The fake evaluators mirror the Redis evaluator contract without a server:
the reply is chosen from the request path found in the fingerprint.
"""

from __future__ import annotations

from typing import Any, Sequence
from unittest import mock

from wafris.decision import Evaluated, Failed, Outcome, TimedOut

FAKE_HANDLE = "DEF8675309"


def reply_for_path(path: str) -> Outcome:
    """Canned outcome for a request path.

    - ``/allow``: ``"Allowed"``
    - ``/pass``: ``"Passed"``
    - ``/block``: ``"Blocked"``
    - ``/error``: a generic failure
    - ``/timeout``: a timeout
    - anything else: ``"Unknown"``
    """
    if path == "/allow":
        return Evaluated("Allowed")
    if path == "/pass":
        return Evaluated("Passed")
    if path == "/block":
        return Evaluated("Blocked")
    if path == "/error":
        return Failed("Exception", "Unspecified error")
    if path == "/timeout":
        return TimedOut("Timeout")
    return Evaluated("Unknown")


def _path_of(args: Sequence[str]) -> str:
    return next((a for a in args if a.startswith("/")), "")


class FakeEvaluatorSync:
    """Sync evaluator double that records every call."""

    def __init__(self, *, register_error: Exception | None = None) -> None:
        self.registered: list[str] = []
        self.calls: list[tuple[str, tuple[str, ...]]] = []
        self.closed = False
        self._register_error = register_error

    def register(self, source: str) -> str:
        if self._register_error is not None:
            raise self._register_error
        self.registered.append(source)
        return FAKE_HANDLE

    def evaluate(self, handle: str, args: Sequence[str]) -> Outcome:
        self.calls.append((handle, tuple(args)))
        return reply_for_path(_path_of(args))

    def close(self) -> None:
        self.closed = True


class FakeEvaluator:
    """Async evaluator double that records every call."""

    def __init__(self, *, register_error: Exception | None = None) -> None:
        self._sync = FakeEvaluatorSync(register_error=register_error)
        self.closed = False

    @property
    def registered(self) -> list[str]:
        return self._sync.registered

    @property
    def calls(self) -> list[tuple[str, tuple[str, ...]]]:
        return self._sync.calls

    async def register(self, source: str) -> str:
        return self._sync.register(source)

    async def evaluate(self, handle: str, args: Sequence[str]) -> Outcome:
        return self._sync.evaluate(handle, args)

    async def aclose(self) -> None:
        self.closed = True


def mock_logger() -> mock.Mock:
    """A logger double exposing ``debug/info/warning/error``."""
    return mock.Mock(spec=["debug", "info", "warning", "error"])


def logged_messages(method: mock.Mock) -> list[str]:
    """Render every call of a mocked logger method with its ``%`` args."""
    out = []
    for call in method.call_args_list:
        msg, *args = call.args
        out.append(msg % tuple(args) if args else msg)
    return out


def make_request(
    path: str = "/pass",
    ip: str = "127.0.0.1",
    headers: dict[str, str] | None = None,
    **overrides: Any,
) -> dict[str, Any]:
    """A plain-mapping request, the simplest form ``protect()`` accepts."""
    request: dict[str, Any] = {
        "ip": ip,
        "method": "GET",
        "host": "example.com",
        "path": path,
        "query": "",
        "headers": {"User-Agent": "pytest mock"} if headers is None else headers,
    }
    request.update(overrides)
    return request


def make_asgi_scope(
    path: str = "/pass",
    client: tuple[str, int] | None = ("127.0.0.1", 50000),
    headers: list[tuple[bytes, bytes]] | None = None,
    query_string: bytes = b"",
) -> dict[str, Any]:
    scope: dict[str, Any] = {
        "type": "http",
        "method": "GET",
        "scheme": "http",
        "path": path,
        "query_string": query_string,
        "headers": headers
        if headers is not None
        else [(b"host", b"example.com"), (b"user-agent", b"pytest mock")],
        "server": ("example.com", 80),
    }
    if client is not None:
        scope["client"] = client
    return scope
