import asyncio
import logging
import time

from app.core.config import settings
from app.core.database import SessionLocal
from app.core.minio_client import blob_store
from app.monitoring.setup import report_purge
from app.services.buckets import BucketService

logger = logging.getLogger(__name__)

INTERVAL_SECS = settings.CLEANUP_INTERVAL_SECONDS

PURGED_BUCKETS = 0


async def run_purge_once(session_factory=SessionLocal, blobs=blob_store):
    global PURGED_BUCKETS
    started = time.monotonic()
    async with session_factory() as db:
        result = await BucketService(db, blobs).purge_expired()
    report_purge(result, time.monotonic() - started)
    PURGED_BUCKETS += result.buckets_removed
    return result


async def purge_expired_buckets(interval: float = INTERVAL_SECS):
    logger.info("Purge task started: interval=%s", interval)

    while True:
        try:
            result = await run_purge_once()
            logger.info("purge_loop removed=%s skipped=%s total_removed=%s",
                        result.buckets_removed, result.buckets_skipped, PURGED_BUCKETS)
            await asyncio.sleep(interval)

        except asyncio.CancelledError:
            logger.info("Purge task cancelled by shutdown")
            raise
        except Exception as e:
            logger.exception("Purge loop error: %s", e)
            await asyncio.sleep(min(60, interval))


async def start_cleanup_task():
    return await purge_expired_buckets()
