from pydantic import Field

from app.schemas.base import ApiModel, RequestModel, UtcDatetime


class CreateBucketRequest(RequestModel):
    folder_name: str = Field(max_length=255)


class CreateBucketResponse(ApiModel):
    bucket_id: str
    folder_name: str
    pin: str
    expires_at: UtcDatetime


class VerifyPinRequest(RequestModel):
    pin: str


class VerifyPinResponse(ApiModel):
    bucket_id: str
    folder_name: str
    created_at: UtcDatetime
    expires_at: UtcDatetime


class DestroyBucketResponse(ApiModel):
    message: str
    files_removed: int
    blob_failures: int


class AdminBucket(ApiModel):
    id: str
    folder_name: str
    pin: str
    created_at: UtcDatetime
    expires_at: UtcDatetime
    file_count: int


class AdminBucketList(ApiModel):
    buckets: list[AdminBucket]


class ResetPinResponse(ApiModel):
    message: str
    new_pin: str


class AdminDeleteResponse(ApiModel):
    message: str
    files_removed: int


class PurgeResponse(ApiModel):
    message: str
    buckets_removed: int
    files_removed: int
    buckets_skipped: int
