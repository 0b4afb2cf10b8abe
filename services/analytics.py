"""Analytics event storage and retention cleanup."""

import asyncio
import math
from datetime import timedelta
from typing import Any, Dict, List, Optional

from config.settings import settings
from models.database import get_analytics_events_collection
from schemas.analytics import AnalyticsEventInput
from utils.helpers import to_naive_utc, utcnow
from utils.logger import EMAIL_LIKE, SENSITIVE_KEYS, log_structured_error, setup_logger

logger = setup_logger(__name__)

MAX_STRING_LENGTH = 256


def sanitize_properties(properties: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop personal data and non-primitive values from event properties."""
    if not properties:
        return {}

    sanitized: Dict[str, Any] = {}
    for key, value in properties.items():
        if key.lower() in SENSITIVE_KEYS:
            continue

        if isinstance(value, str):
            if EMAIL_LIKE.search(value):
                continue
            sanitized[key] = value[:MAX_STRING_LENGTH]
        elif isinstance(value, bool) or value is None:
            sanitized[key] = value
        elif isinstance(value, (int, float)) and math.isfinite(value):
            sanitized[key] = value

    return sanitized


async def record_events(events: List[AnalyticsEventInput]) -> int:
    """Store a batch of events and return how many were written."""
    documents = [
        {
            "event": event.event,
            "properties": sanitize_properties(event.properties),
            "recorded_at": to_naive_utc(event.timestamp),
        }
        for event in events
    ]
    result = await get_analytics_events_collection().insert_many(documents, ordered=False)
    return len(result.inserted_ids)


async def delete_expired_events(retention_days: Optional[int] = None) -> int:
    """Delete events recorded before the retention window."""
    days = settings.analytics_retention_days if retention_days is None else retention_days
    cutoff = utcnow() - timedelta(days=days)
    result = await get_analytics_events_collection().delete_many({"recorded_at": {"$lt": cutoff}})
    return result.deleted_count


class RetentionCleanupTask:
    """Periodically purge analytics events older than the retention window.

    Owned by the application lifespan: ``start()`` on startup, ``stop()`` on
    shutdown.
    """

    def __init__(self, interval_seconds: Optional[float] = None, retention_days: Optional[int] = None):
        self.interval_seconds = interval_seconds or settings.analytics_cleanup_interval_seconds
        self.retention_days = retention_days
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Analytics retention cleanup scheduled every {self.interval_seconds}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Analytics retention cleanup stopped")

    async def run_once(self) -> int:
        try:
            deleted = await delete_expired_events(self.retention_days)
        except Exception as e:
            log_structured_error("analytics.retention", "retention_cleanup_failed", 500, error=e)
            return 0
        if deleted:
            logger.info(f"Removed {deleted} expired analytics events")
        return deleted

    async def _run(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval_seconds)
