"""Tests for PIN allocation."""

import asyncio
import collections
import datetime
import itertools
import unittest

from app import models
from app.core import errors
from app.services import pin_allocator
from app.services.buckets import BucketService
from tests import base


def scripted(*values):
    """randbelow stand-in returning offsets so draw() yields the given PINs."""
    offsets = itertools.cycle([v - 1000 for v in values])
    return lambda span: next(offsets)


class PinFormatTestCase(unittest.TestCase):

    def test_four_digit_range(self) -> None:
        allocator = pin_allocator.PinAllocator(length=4, randbelow=lambda span: span - 1)
        self.assertEqual(allocator.draw(), '9999')
        allocator = pin_allocator.PinAllocator(length=4, randbelow=lambda span: 0)
        self.assertEqual(allocator.draw(), '1000')

    def test_six_digit_range(self) -> None:
        allocator = pin_allocator.PinAllocator(length=6, randbelow=lambda span: 0)
        self.assertEqual(allocator.draw(), '100000')
        allocator = pin_allocator.PinAllocator(length=6, randbelow=lambda span: span - 1)
        self.assertEqual(allocator.draw(), '999999')

    def test_random_draws_are_fixed_width(self) -> None:
        allocator = pin_allocator.PinAllocator(length=4)
        for _ in range(500):
            pin = allocator.draw()
            self.assertEqual(len(pin), 4)
            self.assertTrue(1000 <= int(pin) <= 9999)

    def test_unsupported_length(self) -> None:
        with self.assertRaises(ValueError):
            pin_allocator.PinAllocator(length=5)

    def test_is_well_formed(self) -> None:
        allocator = pin_allocator.PinAllocator(length=4)
        self.assertTrue(allocator.is_well_formed('0420'))
        self.assertFalse(allocator.is_well_formed('123'))
        self.assertFalse(allocator.is_well_formed('12345'))
        self.assertFalse(allocator.is_well_formed('12a4'))
        self.assertFalse(allocator.is_well_formed('１２３４'))


class AllocateTestCase(base.DatabaseTestCase):

    async def seed(self, pin, status='ACTIVE', expires_in=datetime.timedelta(hours=1)):
        bucket = models.Bucket(
            folder_name='seed',
            pin=pin,
            status=status,
            created_at=self.now,
            expires_at=self.now + expires_in,
        )
        self.db.add(bucket)
        await self.db.commit()
        return bucket

    async def test_skips_active_pin(self) -> None:
        await self.seed('1234')
        allocator = pin_allocator.PinAllocator(length=4, randbelow=scripted(1234, 5678))
        self.assertEqual(await allocator.allocate(self.db, self.now), '5678')

    async def test_expired_bucket_does_not_block(self) -> None:
        await self.seed('1234', expires_in=datetime.timedelta(hours=-1))
        allocator = pin_allocator.PinAllocator(length=4, randbelow=scripted(1234))
        self.assertEqual(await allocator.allocate(self.db, self.now), '1234')

    async def test_closed_bucket_does_not_block(self) -> None:
        await self.seed('1234', status='CLOSED')
        allocator = pin_allocator.PinAllocator(length=4, randbelow=scripted(1234))
        self.assertEqual(await allocator.allocate(self.db, self.now), '1234')

    async def test_exhausted(self) -> None:
        await self.seed('1234')
        draws = []

        def randbelow(span):
            draws.append(span)
            return 234

        allocator = pin_allocator.PinAllocator(length=4, max_attempts=20, randbelow=randbelow)
        with self.assertRaises(errors.AllocationExhausted):
            await allocator.allocate(self.db, self.now)
        self.assertEqual(len(draws), 20)

    async def test_sequential_creations_never_collide(self) -> None:
        pins = []
        for i in range(200):
            bucket = await self.service.create(f'Folder {i}')
            pins.append(bucket.pin)
        self.assertEqual(len(pins), len(set(pins)))

    async def test_concurrent_creation_collision_rate(self) -> None:
        """Concurrent creations can race between probe and insert; measure it."""
        total = 30

        async def create(i):
            async with self.session_factory() as db:
                service = BucketService(db, self.blobs, allocator=self.allocator, clock=self.clock)
                bucket = await service.create(f'Concurrent {i}')
                return bucket.pin

        pins = await asyncio.gather(*(create(i) for i in range(total)))
        duplicates = sum(n - 1 for n in collections.Counter(pins).values() if n > 1)
        self.assertEqual(len(pins), total)
        self.assertLessEqual(duplicates / total, 0.1)
