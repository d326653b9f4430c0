"""FastAPI application serving collector metrics."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from metricsapi.collector import VERSION, Collector, QueryEngine
from metricsapi.collector.routes import router as collector_router
from metricsapi.config import Settings, get_settings
from metricsapi.lib.logger import configure_logging


def create_app(
    collector: Collector | None = None,
    settings: Settings | None = None,
    *,
    host: str | None = None,
    port: int | None = None,
) -> FastAPI:
    """Build the reporting application.

    Without an explicit ``collector`` the routes answer from the
    process-wide default collector, resolved on each request. ``host`` and
    ``port`` describe where the app is served and are echoed in the
    ``service`` block of every ok response.
    """

    settings = settings or get_settings()
    configure_logging(settings.log_level)
    engine = QueryEngine(collector, callback_timeout=settings.callback_timeout, host=host, port=port)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            engine.close()

    app = FastAPI(title="Metrics API", version=VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.query_engine = engine
    app.include_router(collector_router, tags=["metrics"])
    return app


app = create_app()
