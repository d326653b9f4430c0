"""Pytest fixtures for the metrics collector tests."""

from collections.abc import AsyncIterator, Iterator
import os

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("METRICSAPI_LOG_LEVEL", "WARNING")

from metricsapi.collector import Collector, reset_collector
from metricsapi.config import Settings
from metricsapi.main import create_app

SAMPLE_TREE = {
    "messages": {
        "incoming": {
            "total": "counter",
            "rejected": "counter",
        },
        "outgoing": {
            "total": "counter",
            "suppressed": "counter",
        },
    },
    "process": {
        "started": "timestamp",
        "healthy": "boolean",
        "version": "string",
    },
    "users": {
        "total": {
            "active": {
                "web": "gauge",
                "api": "gauge",
            },
        },
    },
}


@pytest.fixture(autouse=True)
def reset_default_collector() -> Iterator[None]:
    """Each test starts without a process-wide default collector."""

    reset_collector()
    yield
    reset_collector()


@pytest.fixture()
def settings() -> Settings:
    return Settings(METRICSAPI_LOG_LEVEL="WARNING", METRICSAPI_LISTEN="127.0.0.1:8200")


@pytest.fixture()
def collector() -> Collector:
    """Return a collector populated from ``SAMPLE_TREE``."""

    return Collector(SAMPLE_TREE)


@pytest.fixture()
def app(collector: Collector, settings: Settings) -> FastAPI:
    return create_app(collector, settings)


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Provide an `httpx.AsyncClient` bound to the application."""

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
