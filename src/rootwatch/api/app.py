from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI

from ..config import Settings, get_settings, validate_settings
from ..dashboard import Dashboard
from ..telemetry.client import TelemetryClient
from ..telemetry.loader import TelemetryLoader, resolve_registry
from .routes import router

logger = logging.getLogger(__name__)


async def _background_load(
    client: TelemetryClient,
    dashboard: Dashboard,
    settings: Settings,
) -> None:
    """Fetch every source once; rows re-render as sources complete."""
    try:
        await TelemetryLoader(client, dashboard, settings).run()
        dashboard.render()
    except Exception:
        logger.exception("Telemetry load failed")


def create_app(
    dashboard: Optional[Dashboard] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or get_settings()
    validate_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = TelemetryClient(
            settings.telemetry_base_url,
            timeout=settings.telemetry_timeout_seconds,
        )
        load_task: Optional[asyncio.Task] = None
        try:
            if app.state.dashboard is None:
                registry = await resolve_registry(settings, client)
                app.state.dashboard = Dashboard(registry, settings)
            if settings.load_on_startup:
                logger.info("Loading telemetry from %s", settings.telemetry_base_url)
                load_task = asyncio.create_task(
                    _background_load(client, app.state.dashboard, settings)
                )
            else:
                logger.info("Telemetry load on startup disabled.")
            yield
        finally:
            if load_task is not None:
                load_task.cancel()
                with suppress(asyncio.CancelledError):
                    await load_task
            await client.aclose()

    app = FastAPI(title="rootwatch API", version="0.1.0", lifespan=lifespan)
    app.state.dashboard = dashboard
    app.include_router(router)
    return app


def build_app() -> FastAPI:
    """Entry point for ``uvicorn --factory rootwatch.api.app:build_app``."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    return create_app(settings=settings)
