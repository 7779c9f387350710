"""
Health check endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
import logging

from app.database import get_db
from app.models.schemas import HealthCheckResponse
from app.services.llm_client import LLMClient, get_llm_client
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    """
    Health check endpoint to verify system status.

    Returns:
        HealthCheckResponse with status of database and LLM provider
    """
    # Check database connection
    db_status = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "error"

    # Check LLM provider
    llm_status = "ok" if await llm.check_health() else "error"

    # Overall status
    overall_status = "healthy" if db_status == "ok" and llm_status == "ok" else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        database=db_status,
        llm=llm_status,
        llm_provider=llm.provider,
        timestamp=utcnow(),
    )
