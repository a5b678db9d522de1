"""Health check endpoints."""

import structlog
from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ordertrack.api.v1.dependencies import SessionDep

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health", operation_id="healthCheck")
async def health_check(session: SessionDep) -> dict[str, str]:
    """Health check endpoint, including database reachability."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        return {"status": "degraded", "database": "unreachable"}
    return {"status": "healthy", "database": "ok"}
