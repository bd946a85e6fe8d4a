import asyncio
import io
import logging
from datetime import timedelta
from typing import Iterable

from minio import Minio
from minio.deleteobjects import DeleteObject
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.errors import BackendFailure
from app.utils.headers import attachment_disposition

logger = logging.getLogger("dropbin")


class BlobStoreError(BackendFailure):
    pass


class BlobStore:
    """Put/get/delete/presign against one backend bucket.

    The minio client is blocking, so every call runs in the threadpool.
    """

    def __init__(self, client: Minio, bucket: str):
        self.client = client
        self.bucket = bucket
        self._initialized = False
        self._lock = asyncio.Lock()

    async def _call(self, op: str, key: str | None, fn, *args, **kwargs):
        try:
            return await run_in_threadpool(fn, *args, **kwargs)
        except Exception as e:
            raise BlobStoreError(f"{op} failed bucket={self.bucket} key={key}: {e}") from e

    async def ensure_bucket(self) -> None:
        if self._initialized:
            return
        async with self._lock:
            if self._initialized:
                return
            exists = await self._call("bucket_exists", None, self.client.bucket_exists, bucket_name=self.bucket)
            if not exists:
                await self._call("make_bucket", None, self.client.make_bucket, bucket_name=self.bucket)
                logger.info(f"Bucket '{self.bucket}' created successfully")
            else:
                logger.info(f"Bucket '{self.bucket}' already exists")
            self._initialized = True

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        await self._call(
            "put_object",
            key,
            self.client.put_object,
            bucket_name=self.bucket,
            object_name=key,
            data=io.BytesIO(data),
            length=len(data),
            content_type=content_type,
        )
        logger.debug("Uploaded %s (%d bytes)", key, len(data))

    async def get(self, key: str) -> bytes:
        def _read():
            response = self.client.get_object(bucket_name=self.bucket, object_name=key)
            try:
                return response.read()
            finally:
                response.close()
                response.release_conn()

        return await self._call("get_object", key, _read)

    async def delete(self, key: str) -> None:
        await self._call("remove_object", key, self.client.remove_object, bucket_name=self.bucket, object_name=key)
        logger.debug("Deleted %s", key)

    async def delete_many(self, keys: Iterable[str]) -> int:
        """Batch-delete ``keys``; raises BlobStoreError if any object failed."""
        keys = list(keys)
        if not keys:
            return 0

        def _remove():
            # remove_objects is lazy, errors only surface while iterating
            errors = self.client.remove_objects(
                bucket_name=self.bucket,
                delete_object_list=[DeleteObject(k) for k in keys],
            )
            return [f"{err.name}: {err.code} {err.message}" for err in errors]

        failed = await self._call("remove_objects", f"<{len(keys)} keys>", _remove)
        if failed:
            raise BlobStoreError(f"remove_objects failed for {len(failed)}/{len(keys)} objects: {failed[:5]}")
        logger.debug("Deleted %d objects", len(keys))
        return len(keys)

    async def presign_get(self, key: str, filename: str, expires_in: int) -> str:
        return await self._call(
            "presigned_get_object",
            key,
            self.client.presigned_get_object,
            bucket_name=self.bucket,
            object_name=key,
            expires=timedelta(seconds=expires_in),
            response_headers={"response-content-disposition": attachment_disposition(filename)},
        )

    async def presign_put(self, key: str, expires_in: int) -> str:
        return await self._call(
            "presigned_put_object",
            key,
            self.client.presigned_put_object,
            bucket_name=self.bucket,
            object_name=key,
            expires=timedelta(seconds=expires_in),
        )

    async def ping(self) -> None:
        await self._call("list_buckets", None, self.client.list_buckets)


minio_client = Minio(
    settings.MINIO_ENDPOINT,
    access_key=settings.MINIO_ACCESS_KEY,
    secret_key=settings.MINIO_SECRET_KEY,
    secure=settings.MINIO_SECURE,
    region=settings.MINIO_REGION,
)

blob_store = BlobStore(minio_client, settings.MINIO_BUCKET)


def get_blob_store() -> BlobStore:
    return blob_store
