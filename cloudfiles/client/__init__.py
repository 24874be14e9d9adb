"""Upload client for the multipart endpoint."""

from .exceptions import (
    ChunkPlanError,
    MultipartNotApplicable,
    UploadCancelled,
    UploadError,
    UploadFailed,
)
from .models import PartResult, UploadResult, UploadSession
from .planner import ChunkPlan, ChunkRange, UploadSource, plan_chunks
from .uploader import FileUploader, MultipartUploader, make_http_client

__all__ = [
    "ChunkPlan",
    "ChunkPlanError",
    "ChunkRange",
    "FileUploader",
    "MultipartNotApplicable",
    "MultipartUploader",
    "PartResult",
    "UploadCancelled",
    "UploadError",
    "UploadFailed",
    "UploadResult",
    "UploadSession",
    "UploadSource",
    "make_http_client",
    "plan_chunks",
]
