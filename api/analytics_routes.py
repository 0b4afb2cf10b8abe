"""Analytics ingestion route."""

from fastapi import APIRouter

from api.errors import ApiError
from schemas.analytics import AnalyticsAccepted, AnalyticsBatch
from services.analytics import record_events
from utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.post("", response_model=AnalyticsAccepted, status_code=201)
async def ingest_events(payload: AnalyticsBatch):
    """Store a batch of client analytics events."""
    try:
        stored = await record_events(payload.events)
        logger.debug(f"Recorded {stored} analytics events")
        return AnalyticsAccepted()

    except Exception as e:
        logger.error(f"Error recording analytics events: {e}", exc_info=True)
        raise ApiError(
            "ANALYTICS_INTERNAL_ERROR",
            "Failed to record analytics events",
            500,
            context={"events": len(payload.events)},
            error=e,
        )
