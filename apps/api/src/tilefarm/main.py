"""FastAPI application entry point."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import TILEFARM_LOG_LEVEL
from .routes import get_dispatcher, router, set_dispatcher

logging.basicConfig(
    level=getattr(logging, TILEFARM_LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

# Track startup time for uptime calculation
_start_time = time.time()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the dispatcher at startup so bad settings fail fast; release it on shutdown."""
    dispatcher = get_dispatcher()
    log.info(
        f"Dispatcher ready: {type(dispatcher.transport).__name__} over "
        f"{len(dispatcher.pool)} endpoint(s)"
    )
    yield
    set_dispatcher(None)


app = FastAPI(
    title="Tilefarm",
    description="Tile dispatch and compositing coordinator for remote renderers",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Tilefarm render coordinator",
        "version": "0.1.0",
    }


@app.get("/health")
async def health():
    """Health check endpoint with dispatcher status."""
    dispatcher = get_dispatcher()
    render_pass = dispatcher.current_pass

    return {
        "status": "ok",
        "transport": type(dispatcher.transport).__name__,
        "endpoints": len(dispatcher.pool),
        "uptime_seconds": int(time.time() - _start_time),
        "rendering": render_pass is not None and not render_pass.done,
    }
