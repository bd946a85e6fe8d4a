"""Tests for the blob store wrapper around the minio client."""

import asyncio
import types
import unittest
from unittest import mock

from app.core.minio_client import BlobStore, BlobStoreError
from app.utils.headers import attachment_disposition


class BlobStoreTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self) -> None:
        self.client = mock.MagicMock()
        self.store = BlobStore(self.client, 'drops')

    async def test_ensure_bucket_creates_once(self) -> None:
        self.client.bucket_exists.return_value = False

        await asyncio.gather(*(self.store.ensure_bucket() for _ in range(5)))
        await self.store.ensure_bucket()

        self.client.bucket_exists.assert_called_once_with(bucket_name='drops')
        self.client.make_bucket.assert_called_once_with(bucket_name='drops')

    async def test_ensure_bucket_existing(self) -> None:
        self.client.bucket_exists.return_value = True
        await self.store.ensure_bucket()
        self.client.make_bucket.assert_not_called()

    async def test_ensure_bucket_retries_after_failure(self) -> None:
        self.client.bucket_exists.side_effect = [ConnectionError('refused'), True]
        with self.assertRaises(BlobStoreError):
            await self.store.ensure_bucket()
        await self.store.ensure_bucket()
        self.assertEqual(self.client.bucket_exists.call_count, 2)

    async def test_put(self) -> None:
        await self.store.put('b/f-a.txt', b'hello', 'text/plain')
        kwargs = self.client.put_object.call_args.kwargs
        self.assertEqual(kwargs['bucket_name'], 'drops')
        self.assertEqual(kwargs['object_name'], 'b/f-a.txt')
        self.assertEqual(kwargs['length'], 5)
        self.assertEqual(kwargs['data'].read(), b'hello')

    async def test_get_releases_connection(self) -> None:
        response = self.client.get_object.return_value
        response.read.return_value = b'payload'
        self.assertEqual(await self.store.get('k'), b'payload')
        response.close.assert_called_once_with()
        response.release_conn.assert_called_once_with()

    async def test_errors_are_wrapped(self) -> None:
        self.client.remove_object.side_effect = RuntimeError('503 Slow Down')
        with self.assertRaises(BlobStoreError) as ctx:
            await self.store.delete('b/f-a.txt')
        self.assertIn('b/f-a.txt', str(ctx.exception))
        self.assertEqual(ctx.exception.detail, 'Internal Server Error')

    async def test_delete_many_empty(self) -> None:
        self.assertEqual(await self.store.delete_many([]), 0)
        self.client.remove_objects.assert_not_called()

    async def test_delete_many(self) -> None:
        self.client.remove_objects.return_value = iter([])
        self.assertEqual(await self.store.delete_many(['a', 'b']), 2)
        kwargs = self.client.remove_objects.call_args.kwargs
        self.assertEqual(kwargs['bucket_name'], 'drops')
        self.assertEqual(len(kwargs['delete_object_list']), 2)

    async def test_delete_many_reports_partial_failure(self) -> None:
        failure = types.SimpleNamespace(name='b', code='AccessDenied', message='denied')
        self.client.remove_objects.return_value = iter([failure])
        with self.assertRaises(BlobStoreError) as ctx:
            await self.store.delete_many(['a', 'b'])
        self.assertIn('1/2', str(ctx.exception))

    async def test_presign_get_sets_disposition(self) -> None:
        self.client.presigned_get_object.return_value = 'https://minio/get'
        url = await self.store.presign_get('b/f-résumé.pdf', 'résumé.pdf', 3600)

        self.assertEqual(url, 'https://minio/get')
        kwargs = self.client.presigned_get_object.call_args.kwargs
        self.assertEqual(kwargs['expires'].total_seconds(), 3600)
        self.assertEqual(
            kwargs['response_headers'],
            {'response-content-disposition': attachment_disposition('résumé.pdf')},
        )

    async def test_presign_put(self) -> None:
        self.client.presigned_put_object.return_value = 'https://minio/put'
        self.assertEqual(await self.store.presign_put('k', 900), 'https://minio/put')
        self.assertEqual(self.client.presigned_put_object.call_args.kwargs['expires'].total_seconds(), 900)


class DispositionTestCase(unittest.TestCase):

    def test_ascii(self) -> None:
        self.assertEqual(
            attachment_disposition('report.pdf'),
            'attachment; filename="report.pdf"; filename*=UTF-8\'\'report.pdf',
        )

    def test_non_latin_and_quotes(self) -> None:
        value = attachment_disposition('отчёт "v2".pdf')
        self.assertIn('filename=" v2.pdf"', value)
        self.assertIn("filename*=UTF-8''%D0%BE", value)

    def test_empty_name(self) -> None:
        self.assertIn('download.bin', attachment_disposition(''))
