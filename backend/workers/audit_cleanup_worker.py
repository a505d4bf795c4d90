import asyncio
import logging
from datetime import datetime, timedelta

from config.env import AUDIT_RETENTION_DAYS
from database import get_store

CHECK_INTERVAL_SECONDS = 60 * 60  # hourly
logger = logging.getLogger(__name__)


async def purge_expired_audit_logs(store, now: datetime | None = None) -> int:
    cutoff = (now or datetime.utcnow()) - timedelta(days=AUDIT_RETENTION_DAYS)
    removed = await store.purge_audit_logs(cutoff)
    if removed:
        logger.info("AUDIT_PURGED count=%s cutoff=%s", removed, cutoff.isoformat())
    return removed


async def audit_cleanup_worker():
    store = get_store()

    while True:
        try:
            await purge_expired_audit_logs(store)
        except Exception:
            logger.exception("AUDIT_CLEANUP_ERROR")

        await asyncio.sleep(CHECK_INTERVAL_SECONDS)
