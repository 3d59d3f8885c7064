"""Common test fixtures."""

from collections.abc import Callable, Generator
from typing import Any

import pytest

from decision_trace import TraceClient, TraceService, set_trace_client, set_trace_store
from tests.support.helpers import RecordingTransport


@pytest.fixture
def service() -> TraceService:
    return TraceService()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def make_client() -> Generator[Callable[..., TraceClient], None, None]:
    """Build TraceClients whose delivery threads are stopped after the test."""
    clients: list[TraceClient] = []

    def _make(**config: Any) -> TraceClient:
        client = TraceClient(**config)
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.shutdown(timeout=5.0)


@pytest.fixture(autouse=True)
def _reset_singletons() -> Generator[None, None, None]:
    """Reset process-wide defaults after each test."""
    yield
    set_trace_client(None)
    set_trace_store(None)
