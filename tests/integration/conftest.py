"""Pytest fixtures for integration tests.

The FastAPI application runs in-process through TestClient; entering the
client runs the app lifespan, which creates a fresh ledger for each test.
RabbitMQ is replaced by mocks of the aio-pika pools.
"""

from typing import Callable, Dict, Generator, List
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from ledger_api.config import settings
from ledger_api.main import app

API = f"/api/{settings.API_VERSION}"


@pytest.fixture
def api_client() -> Generator[TestClient, None, None]:
    """HTTP client bound to a freshly started service."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def as_caller() -> Callable[[str], Dict[str, str]]:
    """Return a function building the identity header for a principal."""
    def _headers(principal: str) -> Dict[str, str]:
        return {settings.CALLER_HEADER: principal}

    return _headers


@pytest.fixture
def voters() -> List[str]:
    return [f"account-{i}" for i in range(1, 5)]


@pytest.fixture
def open_voting(api_client: TestClient, as_caller, voters: List[str]) -> TestClient:
    """Service with four voters, proposals "Test 1".."Test 4" and voting open."""
    owner = as_caller(settings.AUTHORITY)
    for subject in voters:
        assert api_client.post(f"{API}/voters", json={"subject": subject}, headers=owner).status_code == 201
    api_client.post(f"{API}/workflow/start-proposals-registering", headers=owner)
    for i, subject in enumerate(voters, start=1):
        response = api_client.post(
            f"{API}/proposals", json={"description": f"Test {i}"}, headers=as_caller(subject)
        )
        assert response.status_code == 201
    api_client.post(f"{API}/workflow/end-proposals-registering", headers=owner)
    api_client.post(f"{API}/workflow/start-voting-session", headers=owner)
    return api_client


@pytest.fixture
def rabbitmq_channel() -> MagicMock:
    """Mocked aio-pika channel whose exchange records published messages."""
    exchange = MagicMock()
    exchange.publish = AsyncMock()

    channel = MagicMock()
    channel.get_exchange = AsyncMock(return_value=exchange)
    channel.declare_queue = AsyncMock()
    channel.exchange = exchange
    return channel


@pytest.fixture
def channel_pool(rabbitmq_channel: MagicMock) -> MagicMock:
    """Mocked aio-pika Pool handing out `rabbitmq_channel`."""
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = rabbitmq_channel
    pool.acquire.return_value.__aexit__.return_value = False
    pool.close = AsyncMock()
    return pool
