"""
Bus Tour Booking API - Main Application Entry Point

A booking backend for a bus-tour operator demonstrating:
- Concurrency-safe seat booking (per-trip lock + versioned writes)
- Redis-backed distributed trip locks and dashboard caching
- Structured logging with request correlation
- Prometheus metrics
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tourbook.api.errors import register_exception_handlers
from tourbook.api.middleware import RequestLoggingMiddleware
from tourbook.api.router import api_router
from tourbook.core.config import get_settings
from tourbook.core.logging import get_logger, setup_logging
from tourbook.core.metrics import metrics_endpoint
from tourbook.db.session import Database
from tourbook.infrastructure.redis_client import close_redis, connect_redis
from tourbook.services.cache_service import StatsCache
from tourbook.services.strategy_factory import build_trip_lock

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: build the store, Redis and lock handles, then tear them down."""
    setup_logging(settings)
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    database = Database.from_settings(settings)
    if settings.DB_CREATE_TABLES:
        await database.create_all()

    redis_client = await connect_redis(settings)
    if redis_client is None:
        logger.warning("redis_unavailable", message="Running without cache or distributed locks")

    app.state.db = database
    app.state.redis = redis_client
    app.state.trip_lock = build_trip_lock(settings, redis_client)
    app.state.stats_cache = StatsCache(redis_client, settings.STATS_CACHE_TTL)

    yield

    await close_redis(redis_client)
    await database.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Patron and trip management with concurrency-safe seat booking",
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
async def health_check(request: Request):
    """Health check endpoint for Docker and load balancers."""
    database: Database = request.app.state.db
    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        db_status = f"error: {e.__class__.__name__}"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": db_status,
        "cache": await request.app.state.stats_cache.stats(),
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
