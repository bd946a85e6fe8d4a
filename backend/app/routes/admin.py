from fastapi import APIRouter, Depends, Query

from app.core.security import require_admin
from app.dependencies import get_bucket_service
from app.schemas.bucket import AdminBucket, AdminBucketList, AdminDeleteResponse, ResetPinResponse
from app.services.buckets import BucketService

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("/buckets", response_model=AdminBucketList)
async def list_buckets(
    search: str | None = Query(None, description="Filter by folder name"),
    service: BucketService = Depends(get_bucket_service),
):
    rows = await service.list_active(search)
    return AdminBucketList(
        buckets=[
            AdminBucket(
                id=b.id,
                folder_name=b.folder_name,
                pin=b.pin,
                created_at=b.created_at,
                expires_at=b.expires_at,
                file_count=count,
            )
            for b, count in rows
        ]
    )


@router.post("/buckets/{bucket_id}/reset-pin", response_model=ResetPinResponse)
async def reset_pin(bucket_id: str, service: BucketService = Depends(get_bucket_service)):
    bucket = await service.reset_pin(bucket_id)
    return ResetPinResponse(message="PIN reset successfully", new_pin=bucket.pin)


@router.delete("/buckets/{bucket_id}", response_model=AdminDeleteResponse)
async def delete_bucket(bucket_id: str, service: BucketService = Depends(get_bucket_service)):
    removed = await service.admin_delete(bucket_id)
    return AdminDeleteResponse(message="Bucket deleted successfully", files_removed=removed)
