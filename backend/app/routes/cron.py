import time

from fastapi import APIRouter, Depends

from app.core.security import require_cron_secret
from app.dependencies import get_bucket_service
from app.monitoring.setup import report_purge
from app.schemas.bucket import PurgeResponse
from app.services.buckets import BucketService

router = APIRouter(
    prefix="/cron",
    tags=["Cron"],
    dependencies=[Depends(require_cron_secret)],
)


@router.get("/purge-expired", response_model=PurgeResponse)
async def purge_expired(service: BucketService = Depends(get_bucket_service)):
    started = time.monotonic()
    result = await service.purge_expired()
    report_purge(result, time.monotonic() - started)

    if not (result.buckets_removed or result.buckets_skipped):
        message = "No expired buckets found"
    else:
        message = "Cleanup complete"
    return PurgeResponse(
        message=message,
        buckets_removed=result.buckets_removed,
        files_removed=result.files_removed,
        buckets_skipped=result.buckets_skipped,
    )
