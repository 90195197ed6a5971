# slotkeeper/main.py
"""
ASGI application for the slotkeeper booking service.

Run with ``uvicorn slotkeeper.main:app``.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .core.config import is_running_tests, settings
from .database import engine
from .errors import register_error_handlers
from .routes.v1 import bookings as bookings_v1
from .routes.v1 import health as health_v1
from .routes.v1 import metrics as metrics_v1
from .routes.v1 import reviews as reviews_v1

# Configure logging
logging.basicConfig(
    level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info("slotkeeper API starting up...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Database dialect: {engine.dialect.name}")
    logger.info(
        "Provider schedule locks: %s",
        "redis + process" if settings.redis_url else "process only",
    )
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    yield

    logger.info("slotkeeper API shutting down...")
    engine.dispose()


app = FastAPI(
    title="slotkeeper API",
    description="Booking and scheduling for one-on-one provider services",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)

# Register unified error envelope handlers
register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "OPTIONS", "POST", "PATCH", "DELETE"],
    allow_headers=["*"],
    expose_headers=["Retry-After"],
)

api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(reviews_v1.router, prefix="/reviews")

app.include_router(api_v1)
app.include_router(health_v1.router, prefix="/health")
app.include_router(metrics_v1.router, prefix="/metrics")
