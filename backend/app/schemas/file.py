from pydantic import Field

from app.schemas.base import ApiModel, RequestModel


class DeclaredFileIn(RequestModel):
    filename: str = Field(min_length=1, max_length=255)
    mime_type: str | None = Field(default=None, max_length=255)
    size: int = Field(ge=0)


class UploadUrlsRequest(RequestModel):
    files: list[DeclaredFileIn] = Field(min_length=1)


class UploadTicketOut(ApiModel):
    file_id: str
    filename: str
    key: str
    upload_url: str


class UploadUrlsResponse(ApiModel):
    files: list[UploadTicketOut]


class UploadedFileOut(ApiModel):
    file_id: str
    filename: str
    size: int


class UploadResponse(ApiModel):
    uploaded: list[UploadedFileOut]


class DownloadableFile(ApiModel):
    file_id: str
    filename: str
    size: int
    mime_type: str
    url: str


class FileListResponse(ApiModel):
    files: list[DownloadableFile]
