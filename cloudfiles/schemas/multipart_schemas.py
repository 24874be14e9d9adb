"""Multipart upload schemas."""

from typing import List
from pydantic import AliasChoices, Field
from .shared import CamelModel, SuccessResponse
from ..utils.constants import MAX_PART_NUMBER


class CreateMultipartUploadResponse(CamelModel):
    """Response from creating a multipart upload session."""

    success: bool = True
    key: str
    session_id: str = Field(..., description="Backend multipart upload ID")


class UploadPartResponse(CamelModel):
    """Response for a stored part."""

    success: bool = True
    part_number: int
    checksum: str = Field(..., description="ETag returned by the backend for this part")


class CompletedPart(CamelModel):
    """Information about a completed part."""

    part_number: int = Field(..., ge=1, le=MAX_PART_NUMBER, description="Part number (1-indexed)")
    checksum: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("checksum", "etag"),
        description="ETag returned by the backend after uploading the part",
    )


class CompleteMultipartUploadRequest(CamelModel):
    """Request to complete multipart upload."""

    session_id: str = Field(..., min_length=1)
    key: str = Field(..., min_length=1)
    parts: List[CompletedPart] = Field(..., min_length=1, description="Every part, in order")


class CompleteMultipartUploadResponse(CamelModel):
    """Final object descriptor."""

    success: bool = True
    key: str
    checksum: str
    size: int


class AbortMultipartUploadResponse(SuccessResponse):
    """Acknowledgement of an aborted session."""
