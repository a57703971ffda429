"""StreamGate — IPTV redirect gateway application."""
import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

import httpx
from fastapi import FastAPI, Request

from streamgate.routes import cache_api, channels, health, stream_api
from streamgate.services.cache_service import create_cache
from streamgate.services.channel_service import ChannelDirectory
from streamgate.services.config_service import ConfigService
from streamgate.services.gateway_service import GatewayService
from streamgate.services.http_client import HttpClientService
from streamgate.services.resolver import Resolver
from streamgate.services.session_service import SessionStore
from streamgate.services.session_transport import create_transport

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"

# Data directory - use environment variable or default to /data (Docker) or ./data (local)
DATA_DIR = os.environ.get("DATA_DIR", "/data" if os.path.exists("/data") else "./data")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - starts the session and cache sweeps, closes HTTP clients on shutdown"""
    cfg: ConfigService = app.state.config_service
    sessions: SessionStore = app.state.session_store

    sweep_tasks = [
        asyncio.create_task(sessions.sweep_loop(cfg.sweep_interval)),
        asyncio.create_task(app.state.cache.sweep_loop(cfg.sweep_interval)),
    ]
    logger.info(f"StreamGate {APP_VERSION} started, upstream {cfg.upstream.base_url}")

    yield

    for task in sweep_tasks:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    await app.state.http_client.close()
    logger.info("Application shutdown complete")


def create_app(
    data_dir: Optional[str] = None,
    clock: Callable[[], float] = time.time,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build a fully-wired app reading its config from *data_dir*.

    ``clock`` and ``transport`` replace the wall clock and the network in tests.
    """
    cfg = ConfigService(data_dir or DATA_DIR)
    cfg.load()

    http = HttpClientService(cfg, transport=transport)
    cache = create_cache(cfg.options, clock=clock)
    sessions = SessionStore(cfg.session_ttl, clock=clock)
    resolver = Resolver(cfg, http, clock=clock)

    app = FastAPI(title="StreamGate", version=APP_VERSION, lifespan=lifespan)

    # Attach state for DI
    app.state.config_service = cfg
    app.state.http_client = http
    app.state.cache = cache
    app.state.session_store = sessions
    app.state.session_transport = create_transport(cfg.options)
    app.state.gateway_service = GatewayService(cfg, sessions, cache, resolver)
    app.state.channel_directory = ChannelDirectory(cfg, http, clock=clock)

    # Middleware to ensure UTF-8 charset in JSON responses
    @app.middleware("http")
    async def add_utf8_charset(request: Request, call_next):
        response = await call_next(request)
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type and "charset" not in content_type:
            response.headers["content-type"] = "application/json; charset=utf-8"
        return response

    # The channel route must come before the /api/{content_type} catch-all
    for r in (health, cache_api, channels, stream_api):
        app.include_router(r.router)

    return app


app = create_app()


def main():
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "5000")))


if __name__ == "__main__":
    main()
