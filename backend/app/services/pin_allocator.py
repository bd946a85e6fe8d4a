import logging
import secrets
from datetime import datetime
from typing import Callable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import AllocationExhausted
from app.models.bucket import Bucket, BucketStatus

logger = logging.getLogger("dropbin")


class PinAllocator:
    """Draws fixed-width numeric PINs that no live bucket currently holds.

    Each candidate is probed against active, unexpired buckets. Two concurrent
    allocations can still pick the same code between probe and insert; that
    window is accepted rather than serialised.
    """

    def __init__(
        self,
        length: int = settings.PIN_LENGTH,
        max_attempts: int = settings.PIN_MAX_ATTEMPTS,
        randbelow: Callable[[int], int] = secrets.randbelow,
    ):
        if length not in (4, 6):
            raise ValueError(f"unsupported PIN length {length}")
        self.length = length
        self.max_attempts = max_attempts
        self._randbelow = randbelow
        self._low = 10 ** (length - 1)
        self._span = 9 * self._low

    def draw(self) -> str:
        return str(self._low + self._randbelow(self._span))

    def is_well_formed(self, pin: str) -> bool:
        return len(pin) == self.length and pin.isascii() and pin.isdigit()

    async def is_taken(self, db: AsyncSession, pin: str, now: datetime) -> bool:
        stmt = select(Bucket.id).where(
            Bucket.pin == pin,
            Bucket.status == BucketStatus.ACTIVE.value,
            Bucket.expires_at > now,
        )
        res = await db.execute(stmt.limit(1))
        return res.first() is not None

    async def allocate(self, db: AsyncSession, now: datetime) -> str:
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.draw()
            if not await self.is_taken(db, candidate, now):
                if attempt > 1:
                    logger.info("PIN allocated after %d attempts", attempt)
                return candidate
        logger.error("PIN allocation exhausted after %d attempts", self.max_attempts)
        raise AllocationExhausted()
