from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.clock import utcnow
from app.core.config import settings
from app.core.errors import Expired, NotFound, ValidationError
from app.core.minio_client import BlobStore, BlobStoreError
from app.models.bucket import Bucket, BucketStatus
from app.models.file import File
from app.services.expiry_policy import derive_expiry
from app.services.pin_allocator import PinAllocator

logger = logging.getLogger("dropbin")


@dataclass
class DestroyResult:
    bucket_id: str
    files_removed: int
    blob_failures: int


@dataclass
class PurgeResult:
    buckets_removed: int = 0
    files_removed: int = 0
    buckets_skipped: int = 0


class BucketService:
    """Bucket lifecycle: create, verify, destroy, admin delete and purge.

    The metadata store decides what exists. Blob deletions always run before
    the matching metadata change; a crash in between leaves an orphaned blob,
    never a file row pointing at a deleted blob.
    """

    def __init__(
        self,
        db: AsyncSession,
        blobs: BlobStore,
        allocator: PinAllocator | None = None,
        clock: Callable[[], datetime] = utcnow,
        page_size: int = settings.ADMIN_PAGE_SIZE,
    ):
        self.db = db
        self.blobs = blobs
        self.allocator = allocator or PinAllocator()
        self.clock = clock
        self.page_size = page_size

    async def create(self, folder_name: str) -> Bucket:
        if not folder_name or not folder_name.strip():
            raise ValidationError("Folder name is required")

        now = self.clock()
        decision = derive_expiry(folder_name, now)
        if not decision.folder_name:
            raise ValidationError("Folder name is required")

        pin = await self.allocator.allocate(self.db, now)
        bucket = Bucket(
            folder_name=decision.folder_name,
            pin=pin,
            status=BucketStatus.ACTIVE.value,
            created_at=now,
            expires_at=decision.expires_at,
        )
        self.db.add(bucket)
        await self._commit()
        logger.info("Created bucket %s tier=%s expires_at=%s", bucket.id, decision.tier.name, bucket.expires_at.isoformat())
        return bucket

    async def verify(self, pin: str) -> Bucket:
        if not isinstance(pin, str) or not self.allocator.is_well_formed(pin):
            raise ValidationError("Invalid PIN format")

        # an expired, not yet purged bucket may share the PIN with a live one
        res = await self.db.execute(
            select(Bucket)
            .where(Bucket.pin == pin, Bucket.status == BucketStatus.ACTIVE.value)
            .order_by(Bucket.expires_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        bucket = res.scalars().first()
        if bucket is None:
            raise NotFound("Bucket not found or PIN is incorrect")
        if bucket.is_expired(self.clock()):
            raise Expired()
        return bucket

    async def get_live(self, bucket_id: str, with_files: bool = False) -> Bucket:
        """Return an ACTIVE, unexpired bucket or raise NotFound/Expired."""
        stmt = select(Bucket).where(Bucket.id == bucket_id).execution_options(populate_existing=True)
        if with_files:
            stmt = stmt.options(selectinload(Bucket.files))
        bucket = (await self.db.execute(stmt)).scalars().first()
        if bucket is None or not bucket.is_active:
            raise NotFound()
        if bucket.is_expired(self.clock()):
            raise Expired()
        return bucket

    async def guard_live(self, bucket_id: str) -> None:
        """Re-check, inside the open transaction, that the bucket is still live.

        The no-op UPDATE takes the write lock, so a concurrent destroy either
        commits first and this raises, or waits until this transaction ends.
        """
        held = await self.db.execute(
            update(Bucket)
            .where(
                Bucket.id == bucket_id,
                Bucket.status == BucketStatus.ACTIVE.value,
                Bucket.expires_at >= self.clock(),
            )
            .values(status=Bucket.status)
            .execution_options(synchronize_session=False)
        )
        if held.rowcount == 0:
            await self.db.rollback()
            await self.get_live(bucket_id)
            raise NotFound()

    async def destroy(self, bucket_id: str) -> DestroyResult:
        res = await self.db.execute(
            select(Bucket)
            .options(selectinload(Bucket.files))
            .where(Bucket.id == bucket_id, Bucket.status == BucketStatus.ACTIVE.value)
            .execution_options(populate_existing=True)
        )
        bucket = res.scalars().first()
        if bucket is None:
            raise NotFound()

        keys = [f.object_name for f in bucket.files]
        outcomes = await asyncio.gather(*(self._delete_blob_quietly(k) for k in keys))
        failures = outcomes.count(False)

        try:
            await self.db.execute(
                delete(File).where(File.bucket_id == bucket_id).execution_options(synchronize_session=False)
            )
            closed = await self.db.execute(
                update(Bucket)
                .where(Bucket.id == bucket_id, Bucket.status == BucketStatus.ACTIVE.value)
                .values(status=BucketStatus.CLOSED.value)
                .execution_options(synchronize_session=False)
            )
            if closed.rowcount == 0:
                # closed concurrently by another request
                await self.db.rollback()
                raise NotFound()
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        logger.info("Destroyed bucket %s files=%d blob_failures=%d", bucket_id, len(keys), failures)
        return DestroyResult(bucket_id=bucket_id, files_removed=len(keys), blob_failures=failures)

    async def admin_delete(self, bucket_id: str) -> int:
        res = await self.db.execute(
            select(Bucket)
            .options(selectinload(Bucket.files))
            .where(Bucket.id == bucket_id)
            .execution_options(populate_existing=True)
        )
        bucket = res.scalars().first()
        if bucket is None:
            raise NotFound()

        keys = [f.object_name for f in bucket.files]
        # fail closed: a blob failure leaves the row for a later attempt
        await self.blobs.delete_many(keys)
        await self._delete_bucket_rows(bucket_id)
        logger.info("Admin deleted bucket %s files=%d", bucket_id, len(keys))
        return len(keys)

    async def purge_expired(self, limit: int | None = None) -> PurgeResult:
        now = self.clock()
        stmt = (
            select(Bucket)
            .options(selectinload(Bucket.files))
            .where(Bucket.expires_at < now)
            .order_by(Bucket.expires_at)
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        res = await self.db.execute(stmt)
        expired = [(b.id, [f.object_name for f in b.files]) for b in res.scalars().all()]

        result = PurgeResult()
        for bucket_id, keys in expired:
            try:
                await self.blobs.delete_many(keys)
            except BlobStoreError as e:
                logger.error("Failed to delete objects for bucket %s, retrying next sweep: %s", bucket_id, e)
                result.buckets_skipped += 1
                continue

            try:
                removed = await self._delete_bucket_rows(bucket_id)
            except SQLAlchemyError as e:
                logger.error("Failed to delete rows for bucket %s, retrying next sweep: %s", bucket_id, e)
                result.buckets_skipped += 1
                continue
            if removed:
                result.buckets_removed += 1
                result.files_removed += len(keys)

        logger.info(
            "purge_summary expired=%d removed=%d files=%d skipped=%d",
            len(expired), result.buckets_removed, result.files_removed, result.buckets_skipped,
        )
        return result

    async def list_active(self, search: str | None = None) -> list[tuple[Bucket, int]]:
        counts = (
            select(File.bucket_id, func.count(File.id).label("file_count"))
            .group_by(File.bucket_id)
            .subquery()
        )
        stmt = (
            select(Bucket, func.coalesce(counts.c.file_count, 0))
            .outerjoin(counts, counts.c.bucket_id == Bucket.id)
            .where(Bucket.status == BucketStatus.ACTIVE.value, Bucket.expires_at >= self.clock())
        )
        if search and search.strip():
            needle = search.strip().lower()
            stmt = stmt.where(func.lower(Bucket.folder_name).contains(needle, autoescape=True))
        stmt = stmt.order_by(Bucket.created_at.desc()).limit(self.page_size)

        rows = (await self.db.execute(stmt)).all()
        return [(bucket, int(count)) for bucket, count in rows]

    async def reset_pin(self, bucket_id: str) -> Bucket:
        res = await self.db.execute(
            select(Bucket)
            .where(
                Bucket.id == bucket_id,
                Bucket.status == BucketStatus.ACTIVE.value,
                Bucket.expires_at >= self.clock(),
            )
            .execution_options(populate_existing=True)
        )
        bucket = res.scalars().first()
        if bucket is None:
            raise NotFound()

        # the bucket's own current PIN counts as taken, so the new one differs
        bucket.pin = await self.allocator.allocate(self.db, self.clock())
        await self._commit()
        logger.info("Reset PIN for bucket %s", bucket.id)
        return bucket

    async def _delete_blob_quietly(self, key: str) -> bool:
        try:
            await self.blobs.delete(key)
            return True
        except BlobStoreError as e:
            logger.error("Failed to delete object %s: %s", key, e)
            return False

    async def _delete_bucket_rows(self, bucket_id: str) -> bool:
        """Delete a bucket and its files in one transaction; False if already gone."""
        try:
            await self.db.execute(
                delete(File).where(File.bucket_id == bucket_id).execution_options(synchronize_session=False)
            )
            res = await self.db.execute(
                delete(Bucket).where(Bucket.id == bucket_id).execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
        return res.rowcount > 0

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise
