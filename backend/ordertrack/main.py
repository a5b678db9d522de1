"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ordertrack.api.v1 import auth, catalog, health, orders
from ordertrack.config import settings
from ordertrack.db import dispose_engine
from ordertrack.logging import setup_logging

# Configure logging before anything else
setup_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown events."""
    logger.info(
        "Starting Order Tracking API",
        debug=settings.debug,
        missing_machine_policy=settings.missing_machine_policy.value,
    )

    yield

    logger.info("Shutting down Order Tracking API")
    await dispose_engine()
    logger.info("Database connections disposed")


app = FastAPI(
    title="Order Tracking API",
    description="Machine order tracking with per-product serial number issuance",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(auth.router, prefix="/api/v1")
app.include_router(catalog.router, prefix="/api/v1")
app.include_router(orders.router, prefix="/api/v1")
