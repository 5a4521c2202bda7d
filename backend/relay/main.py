"""Relay API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - One RelayEngine per process, wired in the lifespan and stored on app.state
    - Global error handlers map RelayError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Shutdown closes every live connection before the database is disposed

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Chat socket also mounted at /chat for clients of the previous service
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from relay.api.error_handlers import register_error_handlers
from relay.api.routes import chat_socket, health
from relay.config import get_settings
from relay.infrastructure.account_directory import SqlAccountDirectory
from relay.infrastructure.credentials import JwtCredentialResolver
from relay.infrastructure.database import init_db
from relay.infrastructure.observability import setup_logging
from relay.services.connection_registry import ConnectionRegistry
from relay.services.pending_store import PendingDeliveryStore
from relay.services.relay_engine import RelayEngine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    resolver = JwtCredentialResolver(settings, SqlAccountDirectory(db))
    app.state.relay_engine = RelayEngine(
        ConnectionRegistry(), PendingDeliveryStore(), resolver,
    )
    logger.info("Relay API started")
    yield
    logger.info("Relay API shutting down")
    await app.state.relay_engine.shutdown()
    await db.close()


app = FastAPI(
    title="Relay API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(chat_socket.router)
app.add_api_websocket_route("/chat", chat_socket.chat_socket)

register_error_handlers(app)
