from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.monitor import MonitorService, build_default_monitor


def create_app(
    monitor_factory: Callable[[], MonitorService] = build_default_monitor,
) -> FastAPI:
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.monitor = monitor_factory()
        try:
            yield
        finally:
            await app.state.monitor.shutdown()

    app = FastAPI(
        title="Water Quality Monitor",
        description="Ingests water sensor telemetry, keeps map pins, and streams live updates.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    return app

app = create_app()
