"""Shared pytest fixtures and configuration for all tests."""

from __future__ import annotations

import asyncio

import pytest
from helpers import FakeEvaluator, FakeEvaluatorSync, mock_logger

from wafris import wafris, wafris_sync


@pytest.fixture
def logger():
    return mock_logger()


@pytest.fixture
def fake_evaluator() -> FakeEvaluator:
    return FakeEvaluator()


@pytest.fixture
def fake_evaluator_sync() -> FakeEvaluatorSync:
    return FakeEvaluatorSync()


@pytest.fixture
def waf(fake_evaluator, logger):
    """An async client on the fake evaluator with a mocked logger."""
    return asyncio.run(wafris(evaluator=fake_evaluator, logger=logger))


@pytest.fixture
def waf_sync(fake_evaluator_sync, logger):
    """A sync client on the fake evaluator with a mocked logger."""
    return wafris_sync(evaluator=fake_evaluator_sync, logger=logger)
