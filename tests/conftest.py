"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import logging

import pytest

from compiler_ai.keys import MemorySecretStore
from compiler_ai.logging import logger
from test_helpers import make_store


@pytest.fixture
def store() -> MemorySecretStore:
    return make_store()


@pytest.fixture
def empty_store() -> MemorySecretStore:
    return make_store(id_token=None)


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """Keep logger configuration changes from leaking between tests."""
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
    httpx_logger = logging.getLogger("httpx")
    httpx_logger.handlers.clear()
    httpx_logger.propagate = True
    httpx_logger.setLevel(logging.NOTSET)
