"""
Booking Call Relay - Main Application

This is the entry point for the FastAPI application.
It handles:
- WebSocket signaling between the customer and provider of a booking
- REST endpoints for call info and call history
- Background sweep of expired call sessions
"""
from contextlib import asynccontextmanager
import logging
from datetime import datetime, UTC

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from callrelay import __version__
from callrelay.api import router as api_router
from callrelay.api.websocket import router as ws_router
from callrelay.config.redis import close_redis
from callrelay.config.settings import settings
from callrelay.models import database
from callrelay.services.booking_directory import SqlBookingDirectory
from callrelay.services.call_history import SqlCallHistorySink
from callrelay.services.metrics import start_metrics_server
from callrelay.services.presence_service import PresenceService
from callrelay.services.signaling import SignalingService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_signaling() -> SignalingService:
    """Default wiring: SQL booking lookup, SQL call log, Redis presence."""
    return SignalingService(
        directory=SqlBookingDirectory(),
        history_sink=SqlCallHistorySink(),
        presence=PresenceService(),
        config=settings,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    A pre-built SignalingService on app.state (tests) is used as-is.
    """
    # === STARTUP ===
    logger.info("🚀 Starting Booking Call Relay...")

    # Create database tables
    await database.init_db()
    logger.info("✅ Database tables created")

    signaling = getattr(app.state, "signaling", None)
    if signaling is None:
        signaling = build_signaling()
        app.state.signaling = signaling

    signaling.start()
    logger.info("✅ Session sweep task started")

    if settings.METRICS_ENABLED:
        start_metrics_server(port=settings.METRICS_PORT)

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("🛑 Shutting down...")
    await signaling.stop()
    await close_redis()


app = FastAPI(
    title="Booking Call Relay",
    description="WebRTC call signaling between customers and providers of a booking",
    version=__version__,
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"http://(localhost|127\.0\.0\.1)(:\d+)?",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include REST API routes
app.include_router(api_router, prefix="/api")

# Include WebSocket routes
app.include_router(ws_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Booking Call Relay",
        "version": __version__,
        "status": "running"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    signaling = app.state.signaling
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "live_sessions": len(signaling.store),
        "online_identities": signaling.registry.get_online_count(),
        "total_connections": signaling.registry.get_total_connections(),
    }
