"""
FastAPI application factory.

``create_app()`` assembles the application with CORS, error handlers,
routers, and the health endpoint. The module-level ``app`` instance
allows ``uvicorn voicenotes.api.app:app --reload``; ``main()`` backs the
``voicenotes`` console script and binds to ``app_host``/``app_port``.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voicenotes.api import websocket
from voicenotes.api.deps import device_for_app
from voicenotes.api.middleware.error_handler import register_error_handlers
from voicenotes.api.routes import memos, session, sync
from voicenotes.core.config import get_settings
from voicenotes.core.models import HealthResponse
from voicenotes.core.utils import configure_logging, utcnow
from voicenotes.services.device import NoteDevice


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    Startup: build the device and start the companion's peer connector.
    Shutdown: stop dialing the peer, then drain in-flight pipeline runs.
    """
    device = device_for_app(app)
    await device.start()
    yield
    await device.shutdown()


def create_app(device: NoteDevice | None = None) -> FastAPI:
    """Build and return a fully configured FastAPI application.

    Args:
        device: Pre-built device (tests); built from settings on first use otherwise.

    Returns:
        FastAPI: The configured application, ready for ``uvicorn``.
    """
    settings = device.settings if device is not None else get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="VoiceNotes",
        description="Voice memos with transcription, extension, and two-device sync.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.device = device

    # -- CORS --
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -- Error handlers --
    register_error_handlers(app)

    # -- Health check (root-level, not under /api/v1) --
    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def health() -> HealthResponse:
        return HealthResponse(role=device_for_app(app).role, timestamp=utcnow())

    # -- REST routes --
    app.include_router(memos.router, prefix="/api/v1")
    app.include_router(session.router, prefix="/api/v1")
    app.include_router(sync.router, prefix="/api/v1")

    # -- WebSocket --
    app.include_router(websocket.router)

    return app


app = create_app()


def main() -> None:
    """Serve the device API (``voicenotes`` console script)."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "voicenotes.api.app:app",
        host=settings.app_host,
        port=settings.app_port,
        log_level=settings.log_level.lower(),
    )
