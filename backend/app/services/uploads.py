import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import DropError, SizeLimitExceeded, ValidationError
from app.core.minio_client import BlobStore, BlobStoreError
from app.models.file import File
from app.services.buckets import BucketService

logger = logging.getLogger("dropbin")

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class IncomingFile:
    filename: str
    content_type: str | None
    data: bytes


@dataclass
class DeclaredFile:
    filename: str
    content_type: str | None
    size: int


@dataclass
class UploadTicket:
    file: File
    upload_url: str


def make_object_name(bucket_id: str, file_id: str, filename: str) -> str:
    safe = filename.replace("/", "_").replace("\\", "_") or "file.bin"
    return f"{bucket_id}/{file_id}-{safe}"


class UploadService:
    def __init__(
        self,
        db: AsyncSession,
        blobs: BlobStore,
        buckets: BucketService,
        max_upload_size: int = settings.MAX_UPLOAD_SIZE,
        url_expiry: int = settings.UPLOAD_URL_EXPIRY_SECONDS,
    ):
        self.db = db
        self.blobs = blobs
        self.buckets = buckets
        self.max_upload_size = max_upload_size
        self.url_expiry = url_expiry

    async def upload_bytes(self, bucket_id: str, files: list[IncomingFile]) -> list[File]:
        """Store each file in the blob store, then record it."""
        if not files:
            raise ValidationError("No files provided")
        await self.buckets.get_live(bucket_id)

        stored = []
        for incoming in files:
            file_id = str(uuid.uuid4())
            filename = incoming.filename or "file.bin"
            content_type = incoming.content_type or DEFAULT_CONTENT_TYPE
            object_name = make_object_name(bucket_id, file_id, filename)

            await self.blobs.put(object_name, incoming.data, content_type)

            try:
                await self.buckets.guard_live(bucket_id)
            except DropError:
                # bucket went away while the bytes were in flight
                await self._discard(object_name)
                raise

            f = File(
                id=file_id,
                bucket_id=bucket_id,
                object_name=object_name,
                filename=filename,
                size=len(incoming.data),
                content_type=content_type,
            )
            self.db.add(f)
            await self._commit()
            stored.append(f)
            logger.info("Stored file %s in bucket %s (%d bytes)", file_id, bucket_id, f.size)
        return stored

    async def request_upload_urls(self, bucket_id: str, declared: list[DeclaredFile]) -> list[UploadTicket]:
        """Record each declared file and hand back a pre-signed PUT URL for it.

        Rows are written with the declared size and type before any bytes
        arrive; a client that never uploads leaves a row without a blob.
        """
        if not declared:
            raise ValidationError("No files provided")
        for d in declared:
            if d.size > self.max_upload_size:
                raise SizeLimitExceeded(f"{d.filename} exceeds the {self.max_upload_size} byte limit")

        await self.buckets.get_live(bucket_id)

        tickets = []
        for d in declared:
            file_id = str(uuid.uuid4())
            object_name = make_object_name(bucket_id, file_id, d.filename)
            url = await self.blobs.presign_put(object_name, self.url_expiry)
            f = File(
                id=file_id,
                bucket_id=bucket_id,
                object_name=object_name,
                filename=d.filename,
                size=d.size,
                content_type=d.content_type or DEFAULT_CONTENT_TYPE,
            )
            tickets.append(UploadTicket(file=f, upload_url=url))

        await self.buckets.guard_live(bucket_id)
        self.db.add_all([t.file for t in tickets])
        await self._commit()
        logger.info("Issued %d upload URLs for bucket %s", len(tickets), bucket_id)
        return tickets

    async def _discard(self, object_name: str) -> None:
        try:
            await self.blobs.delete(object_name)
        except BlobStoreError as e:
            logger.error("Failed to discard object %s: %s", object_name, e)

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
