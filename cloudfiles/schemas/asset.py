"""Single-object asset schemas."""

from datetime import datetime
from typing import List, Optional
from pydantic import Field
from .shared import CamelModel, SuccessResponse


class AssetUploadResponse(CamelModel):
    """Response for a single-shot upload."""

    success: bool = True
    key: str
    checksum: str
    size: int
    content_type: str


class AssetExistsResponse(CamelModel):
    """Existence check for a key."""

    exists: bool
    key: str


class AssetInfo(CamelModel):
    """One listed object."""

    key: str
    size: int
    checksum: str = ""
    last_modified: Optional[datetime] = None


class AssetListResponse(CamelModel):
    """Flat listing under a prefix."""

    objects: List[AssetInfo] = Field(default_factory=list)
    prefix: str = ""


class AssetDeleteResponse(SuccessResponse):
    """Acknowledgement of a deleted object."""

    key: str


class RenameAssetRequest(CamelModel):
    """Request to move an object to a new key."""

    old_key: str = Field(..., min_length=1)
    new_key: str = Field(..., min_length=1)


class RenameAssetResponse(SuccessResponse):
    """Acknowledgement of a renamed object."""

    old_key: str
    new_key: str
