"""Single-object asset routes."""

from typing import Optional
from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile
from ..core.dependencies import get_asset_service
from ..middleware.auth import get_current_user
from ..middleware.rate_limit import limiter
from ..middleware.validation import validate_object_key
from ..schemas.asset import (
    AssetDeleteResponse,
    AssetExistsResponse,
    AssetListResponse,
    AssetUploadResponse,
    RenameAssetRequest,
    RenameAssetResponse,
)
from ..services.asset_service import AssetService
from ..utils.constants import DEFAULT_CONTENT_TYPE

router = APIRouter(prefix="/api", tags=["assets"])


@router.post("/upload", response_model=AssetUploadResponse)
@limiter.limit("20/minute")
async def upload_asset(
    request: Request,
    user: dict = Depends(get_current_user),
    service: AssetService = Depends(get_asset_service),
    file: UploadFile = File(...),
    key: Optional[str] = Form(None),
):
    """
    Upload a file in a single request.
    Files at or above the multipart chunk size should use /api/multipart-upload.
    """
    storage_key = validate_object_key(key) if key and key.strip() else None
    return await service.handle_upload(file=file, key=storage_key)


@router.get("/check-asset", response_model=AssetExistsResponse)
async def check_asset(
    key: Optional[str] = Query(None),
    service: AssetService = Depends(get_asset_service),
):
    """Check whether a key exists."""
    return await service.check_exists(validate_object_key(key))


@router.get("/asset")
async def get_asset(
    key: Optional[str] = Query(None),
    service: AssetService = Depends(get_asset_service),
):
    """Download an object with its stored Content-Type."""
    obj = await service.get_asset(validate_object_key(key))
    return Response(
        content=obj["body"],
        media_type=obj["content_type"] or DEFAULT_CONTENT_TYPE,
        headers={"ETag": obj["checksum"]} if obj["checksum"] else None,
    )


@router.get("/list-assets", response_model=AssetListResponse)
async def list_assets(
    prefix: str = Query(""),
    user: dict = Depends(get_current_user),
    service: AssetService = Depends(get_asset_service),
):
    """List objects under a prefix."""
    return await service.list_assets(prefix=prefix)


@router.delete("/delete-asset", response_model=AssetDeleteResponse)
async def delete_asset(
    key: Optional[str] = Query(None),
    user: dict = Depends(get_current_user),
    service: AssetService = Depends(get_asset_service),
):
    """Delete an object."""
    return await service.delete_asset(validate_object_key(key))


@router.post("/rename-asset", response_model=RenameAssetResponse)
async def rename_asset(
    rename_data: RenameAssetRequest,
    user: dict = Depends(get_current_user),
    service: AssetService = Depends(get_asset_service),
):
    """Move an object to a new key."""
    return await service.rename_asset(
        old_key=validate_object_key(rename_data.old_key, "Missing oldKey or newKey parameter"),
        new_key=validate_object_key(rename_data.new_key, "Missing oldKey or newKey parameter"),
    )
