"""Integration test fixtures.

This module provides the full FastAPI application wired to the fake upstream
backend from tests/conftest.py, with middleware and lifespan enabled.
"""

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from lm_gateway.platform.server.app import create_app
from lm_gateway.platform.server.state import ServerState
from lm_gateway.platform.settings import GatewaySettings, Settings


@pytest.fixture
def settings() -> Settings:
    """Create settings with a small body limit for size tests."""
    return Settings(gateway=GatewaySettings(max_body_bytes=64 * 1024))


@pytest.fixture
def server_state() -> ServerState:
    return ServerState()


@pytest.fixture
def test_app(settings: Settings, fake_backend, server_state: ServerState) -> FastAPI:
    """Create the gateway application backed by the fake backend."""
    return create_app(settings, backend=fake_backend, state=server_state)


@pytest.fixture
def client(test_app: FastAPI) -> Generator[TestClient]:
    """Create a test client; the context manager runs the app lifespan."""
    with TestClient(test_app) as client:
        yield client
