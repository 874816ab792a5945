"""
Fixtures for offline unit tests of the orchestration core.

All HTTP traffic goes through httpx.MockTransport; nothing leaves the process.
"""

from __future__ import annotations

from typing import Callable, List

import httpx
import pytest

from testsuites.api_testing.framework import ConfigLoader, HttpxTransport, RecordingSink, RequestExecutor


BASE_URL = "https://store.test"


@pytest.fixture(autouse=True)
def _fresh_config():
    """Each unit test starts without a cached ConfigLoader."""
    ConfigLoader.reset()
    yield
    ConfigLoader.reset()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
async def make_executor(sink: RecordingSink):
    """
    Factory building a RequestExecutor whose transport is an httpx.MockTransport.

    Usage:
        executor = make_executor(lambda request: httpx.Response(200, json={}))
    """
    clients: List[httpx.AsyncClient] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> RequestExecutor:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        kwargs.setdefault("sink", sink)
        return RequestExecutor(BASE_URL, transport=HttpxTransport(client=client), **kwargs)

    yield factory

    for client in clients:
        await client.aclose()
