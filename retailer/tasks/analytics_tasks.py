import logging

from retailer.database import SessionLocal
from retailer.services.transaction_service import TransactionService
from retailer.tasks.celery_app import celery_app
from retailer.utils.cache import cache_service

logger = logging.getLogger(__name__)

STATS_CACHE_PREFIX = "stats"
COMPREHENSIVE_STATS_KEY = "comprehensive"


@celery_app.task(bind=True, name="refresh_business_stats", max_retries=3)
def refresh_business_stats(self) -> dict:
    """
    Recompute the dashboard statistics and store them in Redis.

    Enqueued after every accepted order, so the comprehensive stats endpoint
    can answer from cache instead of running four aggregate passes per call.

    Returns:
        The statistics that were cached
    """
    db = SessionLocal()
    try:
        stats = TransactionService(db).get_comprehensive_stats()
        payload = stats.model_dump(mode="json")
        cache_service.set(STATS_CACHE_PREFIX, COMPREHENSIVE_STATS_KEY, payload)
        logger.info(
            f"Business stats refreshed: {payload['all_time']['order_count']} orders all time"
        )
        return payload
    except Exception as e:
        logger.error(f"Error refreshing business stats: {e}")
        raise self.retry(exc=e, countdown=30)
    finally:
        db.close()
