from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.minio_client import BlobStore, get_blob_store
from app.services.buckets import BucketService
from app.services.downloads import DownloadResolver
from app.services.uploads import UploadService


def get_bucket_service(
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
) -> BucketService:
    return BucketService(db, blobs)


def get_upload_service(
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
    buckets: BucketService = Depends(get_bucket_service),
) -> UploadService:
    return UploadService(db, blobs, buckets)


def get_download_resolver(
    blobs: BlobStore = Depends(get_blob_store),
    buckets: BucketService = Depends(get_bucket_service),
) -> DownloadResolver:
    return DownloadResolver(blobs, buckets)
