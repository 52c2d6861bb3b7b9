"""Pytest fixtures for Flask integration tests."""

import pytest

pytest.importorskip(
    "flask",
    reason="Flask not installed; skipping Flask tests.",
)

from flask import Flask
from helpers import FakeEvaluatorSync

from wafris import wafris_sync
from wafris.middleware import WafrisWSGIMiddleware


@pytest.fixture
def flask_evaluator() -> FakeEvaluatorSync:
    return FakeEvaluatorSync()


@pytest.fixture
def flask_app(flask_evaluator, logger) -> Flask:
    """A Flask application with its WSGI app wrapped by Wafris.

    Returns:
        A configured Flask application answering ``Ok`` on every path
    """
    app = Flask(__name__)

    @app.route("/<name>", methods=["GET", "POST"])
    def route(name):
        return "Ok", 200

    app.wsgi_app = WafrisWSGIMiddleware(
        app.wsgi_app, wafris_sync(evaluator=flask_evaluator, logger=logger)
    )
    return app


@pytest.fixture
def flask_client(flask_app: Flask):
    return flask_app.test_client()
