"""
FastAPI Web Application - WhatsApp HTTP Gateway
================================================

REST endpoints in front of the WhatsApp Web session:

    GET  /              liveness
    GET  /status        connection status and account snapshot
    POST /send-message  {number, message}
    POST /send-image    {number, caption?, imageBase64, mimeType?}

The app owns one MessagingProvider: started when the server starts, closed
on SIGTERM/SIGINT through the lifespan.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..infrastructure.config import Settings, get_settings
from ..infrastructure.whatsapp import MessagingProvider, SeleniumProvider
from .errors import register_error_handlers
from .middleware import BodySizeLimitMiddleware
from .routes import router

logging.basicConfig(
    level=get_settings().server.log_level,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# ── Lifespan ───────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    for issue in settings.validate():
        logger.warning(issue)

    app.state.provider.start()
    logger.info(f"WhatsApp API running on port {settings.server.port}")
    yield

    logger.info("Shutdown signal received: closing WhatsApp client")
    await asyncio.to_thread(app.state.provider.close)


def create_app(
    provider: Optional[MessagingProvider] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the gateway around one provider (a SeleniumProvider by default)."""
    settings = settings or get_settings()

    app = FastAPI(
        title="WA Bridge",
        description="HTTP gateway for WhatsApp Web automation",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.provider = provider or SeleniumProvider(settings.whatsapp)

    app.add_middleware(BodySizeLimitMiddleware, limit_mb=settings.server.body_limit_mb)

    # Added last so it wraps everything, 413s included
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.server.allowed_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_error_handlers(app)
    app.include_router(router)
    return app


app = create_app()
