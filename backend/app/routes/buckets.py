from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, UploadFile, status

from app.core.config import settings
from app.core.errors import RateLimited, SizeLimitExceeded
from app.core.rate_limit import RateLimiter, get_rate_limit_key, get_verify_limiter
from app.dependencies import get_bucket_service, get_download_resolver, get_upload_service
from app.schemas.bucket import (
    CreateBucketRequest,
    CreateBucketResponse,
    DestroyBucketResponse,
    VerifyPinRequest,
    VerifyPinResponse,
)
from app.schemas.file import (
    DownloadableFile,
    FileListResponse,
    UploadedFileOut,
    UploadResponse,
    UploadTicketOut,
    UploadUrlsRequest,
    UploadUrlsResponse,
)
from app.services.buckets import BucketService
from app.services.downloads import DownloadResolver
from app.services.uploads import DeclaredFile, IncomingFile, UploadService

logger = logging.getLogger("dropbin")

router = APIRouter(prefix="/buckets", tags=["Buckets"])

CHUNK_SIZE = 1024 * 1024


@router.post("", response_model=CreateBucketResponse, status_code=status.HTTP_201_CREATED)
async def create_bucket(body: CreateBucketRequest, service: BucketService = Depends(get_bucket_service)):
    bucket = await service.create(body.folder_name)
    return CreateBucketResponse(
        bucket_id=bucket.id,
        folder_name=bucket.folder_name,
        pin=bucket.pin,
        expires_at=bucket.expires_at,
    )


@router.post("/verify", response_model=VerifyPinResponse)
async def verify_pin(
    request: Request,
    body: VerifyPinRequest,
    service: BucketService = Depends(get_bucket_service),
    limiter: RateLimiter = Depends(get_verify_limiter),
):
    if not await limiter.check(get_rate_limit_key(request)):
        raise RateLimited()

    bucket = await service.verify(body.pin)
    return VerifyPinResponse(
        bucket_id=bucket.id,
        folder_name=bucket.folder_name,
        created_at=bucket.created_at,
        expires_at=bucket.expires_at,
    )


@router.get("/{bucket_id}/files", response_model=FileListResponse)
async def list_files(bucket_id: str, resolver: DownloadResolver = Depends(get_download_resolver)):
    links = await resolver.list_downloadable(bucket_id)
    return FileListResponse(
        files=[
            DownloadableFile(
                file_id=link.file.id,
                filename=link.file.filename,
                size=link.file.size,
                mime_type=link.file.content_type,
                url=link.url,
            )
            for link in links
        ]
    )


@router.post("/{bucket_id}/upload", response_model=UploadResponse)
async def upload_files(
    bucket_id: str,
    files: list[UploadFile],
    uploads: UploadService = Depends(get_upload_service),
):
    await uploads.buckets.get_live(bucket_id)

    incoming = []
    total = 0
    for upload in files:
        chunks = []
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            total += len(chunk)
            if total > settings.MAX_PROXY_UPLOAD_SIZE:
                raise SizeLimitExceeded(f"Upload exceeds the {settings.MAX_PROXY_UPLOAD_SIZE} byte limit")
            chunks.append(chunk)
        incoming.append(IncomingFile(filename=upload.filename or "", content_type=upload.content_type, data=b"".join(chunks)))

    stored = await uploads.upload_bytes(bucket_id, incoming)
    return UploadResponse(
        uploaded=[UploadedFileOut(file_id=f.id, filename=f.filename, size=f.size) for f in stored]
    )


@router.post("/{bucket_id}/upload-urls", response_model=UploadUrlsResponse)
async def request_upload_urls(
    bucket_id: str,
    body: UploadUrlsRequest,
    uploads: UploadService = Depends(get_upload_service),
):
    declared = [DeclaredFile(filename=f.filename, content_type=f.mime_type, size=f.size) for f in body.files]
    tickets = await uploads.request_upload_urls(bucket_id, declared)
    return UploadUrlsResponse(
        files=[
            UploadTicketOut(
                file_id=t.file.id,
                filename=t.file.filename,
                key=t.file.object_name,
                upload_url=t.upload_url,
            )
            for t in tickets
        ]
    )


@router.delete("/{bucket_id}", response_model=DestroyBucketResponse)
async def destroy_bucket(bucket_id: str, service: BucketService = Depends(get_bucket_service)):
    result = await service.destroy(bucket_id)
    return DestroyBucketResponse(
        message="Bucket destroyed successfully",
        files_removed=result.files_removed,
        blob_failures=result.blob_failures,
    )
