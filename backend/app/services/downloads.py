import asyncio
from dataclasses import dataclass

from app.core.config import settings
from app.core.minio_client import BlobStore
from app.models.file import File
from app.services.buckets import BucketService


@dataclass
class DownloadLink:
    file: File
    url: str


class DownloadResolver:
    """Mints fresh pre-signed GET URLs for a live bucket on every call."""

    def __init__(self, blobs: BlobStore, buckets: BucketService, url_expiry: int = settings.DOWNLOAD_URL_EXPIRY_SECONDS):
        self.blobs = blobs
        self.buckets = buckets
        self.url_expiry = url_expiry

    async def list_downloadable(self, bucket_id: str) -> list[DownloadLink]:
        bucket = await self.buckets.get_live(bucket_id, with_files=True)
        urls = await asyncio.gather(
            *(self.blobs.presign_get(f.object_name, f.filename, self.url_expiry) for f in bucket.files)
        )
        return [DownloadLink(file=f, url=url) for f, url in zip(bucket.files, urls)]
