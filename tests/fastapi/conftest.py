"""Pytest fixtures for FastAPI integration tests."""

import asyncio

import pytest

pytest.importorskip(
    "fastapi",
    reason="FastAPI not installed; skipping FastAPI tests.",
)

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient
from helpers import FakeEvaluator

from wafris import wafris
from wafris.middleware import WafrisMiddleware


def _add_routes(app: FastAPI) -> None:
    @app.get("/{name}")
    async def route(name: str):
        return PlainTextResponse("Ok", status_code=200)


@pytest.fixture
def fastapi_evaluator() -> FakeEvaluator:
    return FakeEvaluator()


@pytest.fixture
def fastapi_app(fastapi_evaluator, logger) -> FastAPI:
    """A FastAPI application wrapped by a ready Wafris client.

    Returns:
        A configured FastAPI application answering ``Ok`` on every path
    """
    app = FastAPI()
    waf = asyncio.run(wafris(evaluator=fastapi_evaluator, logger=logger))
    app.add_middleware(WafrisMiddleware, wafris=waf)
    _add_routes(app)
    return app


@pytest.fixture
def fastapi_client(fastapi_app: FastAPI) -> TestClient:
    return TestClient(fastapi_app)


@pytest.fixture
def lazy_fastapi_app(fastapi_evaluator, logger) -> FastAPI:
    """A FastAPI application whose middleware creates the client itself from
    keyword configuration."""
    app = FastAPI()
    app.add_middleware(
        WafrisMiddleware, evaluator=fastapi_evaluator, logger=logger, quiet_mode=True
    )
    _add_routes(app)
    return app


@pytest.fixture
def lazy_fastapi_client(lazy_fastapi_app: FastAPI) -> TestClient:
    """Client that skips the lifespan, so the client is made on the first
    request."""
    return TestClient(lazy_fastapi_app)
