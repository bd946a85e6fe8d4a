from .bucket import Bucket, BucketStatus
from .file import File

__all__ = ["Bucket", "BucketStatus", "File"]
