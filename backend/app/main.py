"""
Showtime Seat Reservation API - Main Application Entry Point

Lets many users browse showtimes and reserve seats without double-booking:
- Seat holds with a 5 minute expiry and a background sweep
- All-or-nothing bookings built on conditional set-based UPDATEs
- Cancellation that returns every seat of a booking in one transaction
- Structured logging with request correlation, Prometheus metrics
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.exception_handlers import register_exception_handlers
from app.api.middleware import RequestLoggingMiddleware
from app.api.router import api_router
from app.core.config import get_settings
from app.core.logging import get_logger, setup_logging
from app.core.metrics import metrics_endpoint
from app.db.session import Database
from app.services.cache_service import ShowListCache
from app.services.hold_manager import HoldManager, hold_ttl
from app.services.hold_sweeper import HoldSweeper

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the storage client, cache and sweeper at startup; close them at shutdown."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    database = Database.from_settings(settings)
    app.state.database = database

    app.state.show_cache = await ShowListCache.connect(settings)
    if not app.state.show_cache.enabled:
        logger.warning("redis_unavailable", message="Running without show list cache")

    sweeper = HoldSweeper(
        HoldManager(database, ttl=hold_ttl(settings)),
        interval_seconds=settings.HOLD_SWEEP_INTERVAL_SECONDS,
    )
    if settings.HOLD_SWEEP_ENABLED:
        sweeper.start()

    yield

    await sweeper.stop()
    await app.state.show_cache.close()
    await database.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Seat holds, atomic bookings and cancellations for movie showtimes",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)
app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache: ShowListCache = getattr(app.state, "show_cache", None) or ShowListCache(None)
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": await cache.stats(),
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
