import asyncio
import contextlib
import logging
import sys
import time
from typing import Callable

import httpx
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, load_settings
from errors import ConfigurationError, register_error_handlers
from lifecycle import GracefulServer, LifecycleState, ShutdownManager
from routers import health, live
from security import apply_security_headers
from services import LiveService, TTLCache, YouTubeClient

logger = logging.getLogger(__name__)

JSON_LOG_FORMAT = '{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}'
TEXT_LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    """JSON lines in production, human-readable otherwise."""
    production = settings is not None and settings.is_production
    logging.basicConfig(
        level=settings.log_level.upper() if settings else logging.INFO,
        format=JSON_LOG_FORMAT if production else TEXT_LOG_FORMAT,
        stream=sys.stdout,
        force=True,
    )


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    clock: Callable[[], float] = time.monotonic,
    lifecycle: ShutdownManager | None = None,
) -> FastAPI:
    """Build the app and its collaborators once; nothing is reassigned afterwards."""
    settings = settings or load_settings()

    app = FastAPI(
        title="YouTube Live Proxy",
        version="1.0.0",
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
    )

    cache = TTLCache(clock=clock, on_expire=lambda key: logger.info("Cache entry expired: %s", key))
    client = YouTubeClient(settings, transport=transport)

    app.state.settings = settings
    app.state.cache = cache
    app.state.live_service = LiveService(settings, client, cache)
    app.state.lifecycle = lifecycle or ShutdownManager(settings.shutdown_grace_seconds)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def track_in_flight(request: Request, call_next):
        lifecycle: ShutdownManager = request.app.state.lifecycle
        lifecycle.request_started()
        try:
            response: Response = await call_next(request)
        finally:
            lifecycle.request_finished()
        if lifecycle.state is not LifecycleState.RUNNING:
            response.headers["Connection"] = "close"
        return response

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        return apply_security_headers(response, settings.is_production)

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(live.router)

    @app.on_event("startup")
    async def startup():
        # Expiry is also checked on every read; the sweeper only frees memory early
        app.state.sweeper = asyncio.create_task(cache.run_sweeper(settings.cache_ttl / 2))
        logger.info(
            "Serving live data for channel %s (cache ttl=%ss)",
            settings.channel_id,
            settings.cache_ttl,
        )

    @app.on_event("shutdown")
    async def shutdown():
        app.state.sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await app.state.sweeper
        await client.aclose()

    return app


def run() -> None:
    """Console entry point: validate config, serve, exit 0 after a clean drain."""
    configure_logging()
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.error("Refusing to start: %s", e)
        sys.exit(1)

    configure_logging(settings)
    app = create_app(settings)
    lifecycle: ShutdownManager = app.state.lifecycle

    config = uvicorn.Config(app, host=settings.host, port=settings.port, log_config=None)
    server = GracefulServer(config, lifecycle)
    server.run()
    if not server.started:
        logger.error("Server failed to start on %s:%s", settings.host, settings.port)
        sys.exit(1)

    sys.exit(lifecycle.complete())


if __name__ == "__main__":
    run()
