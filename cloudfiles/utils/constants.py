"""Application constants and enums."""

from enum import Enum

MIB = 1024 * 1024

# Backend multipart limits (S3 / R2)
MIN_PART_SIZE = 5 * MIB
MAX_PART_NUMBER = 10000
MAX_KEY_LENGTH = 1024  # bytes, UTF-8 encoded

# Client uploader defaults
DEFAULT_CHUNK_SIZE = 5 * MIB
MAX_PART_ATTEMPTS = 3
PART_TIMEOUT_SECONDS = 25.0  # stays under the 30s proxy ceiling
BACKOFF_STEP_SECONDS = 1.0

MULTIPART_ENDPOINT = "/api/multipart-upload"
SINGLE_UPLOAD_ENDPOINT = "/api/upload"

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class StorageProvider(str, Enum):
    """Storage provider enum."""

    S3 = "s3"
    R2 = "r2"
    WASABI = "wasabi"


class MultipartAction(str, Enum):
    """Actions accepted by the multipart upload endpoint."""

    CREATE = "create"
    UPLOAD_PART = "upload-part"
    COMPLETE = "complete"
    ABORT = "abort"


class UploadStatus(str, Enum):
    """Client-side upload status enum."""

    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"
