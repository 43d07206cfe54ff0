import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request

from .api import status, websockets
from .dependencies import (
    get_event_bus,
    get_presentation_event_handlers,
    get_settings,
    get_watcher_service,
    get_websocket_manager,
)
from .domains.presentation.registration import register_presentation_domain
from .logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    settings = get_settings()
    setup_logging(settings)

    logging.info("Stable file watcher starting up...")
    logging.info(f"Watch directory: {settings.watch_directory}")
    logging.info(f"File stability: {settings.file_stable_time_seconds}s")

    await register_presentation_domain(get_event_bus(), get_presentation_event_handlers())

    websocket_manager = get_websocket_manager()
    websocket_manager.start_sender_task()

    watcher_service = get_watcher_service()
    await watcher_service.start()

    yield

    logging.info("Stable file watcher shutting down...")
    await watcher_service.stop()
    await websocket_manager.stop_sender_task()
    logging.info("All background tasks stopped")


app = FastAPI(
    title="Stable File Watcher",
    description="Reports files in a watched directory once they have been completely written",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logging.debug(f"{request.method} {request.url.path} -> {response.status_code}")
    return response


app.include_router(status.router)
app.include_router(websockets.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Stable file watcher is running"}


@app.get("/health")
async def health():
    """Detailed health check."""
    watcher_status = get_watcher_service().get_status()
    return {
        "status": "healthy" if watcher_status["running"] else "degraded",
        "service": "stablewatch",
        "watching": watcher_status["running"],
    }


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "stablewatch.main:app", host=settings.host, port=settings.port, reload=False, log_level="info"
    )


if __name__ == "__main__":
    run()
