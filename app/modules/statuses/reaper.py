import asyncio
import logging
from app.config import settings
from app.database.supabase_client import get_supabase
from app.modules.statuses.service import StatusService

logger = logging.getLogger(__name__)


async def purge_expired_statuses() -> int:
    """Delete status rows past their expiry. Reads already hide them; this only bounds table growth."""
    try:
        service = StatusService(get_supabase())
        removed = service.purge_expired()
        if removed:
            logger.info(f"Purged {removed} expired status(es)")
        else:
            logger.debug("No expired statuses found")
        return removed
    except Exception as e:
        logger.error(f"Error in status reaper: {str(e)}")
        return 0


async def status_reaper_loop(interval_seconds: float = None):
    """Background task that periodically purges expired statuses"""
    interval = interval_seconds or settings.status_reaper_interval_seconds
    while True:
        await purge_expired_statuses()
        await asyncio.sleep(interval)
