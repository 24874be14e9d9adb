"""Asset service for single-object bucket operations."""

from typing import Any, Dict, Optional
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import HTTPException, UploadFile, status
from ..config import settings
from ..repositories.storage_errors import map_storage_error
from ..repositories.storage_repo import StorageRepository
from ..schemas.asset import (
    AssetDeleteResponse,
    AssetExistsResponse,
    AssetInfo,
    AssetListResponse,
    AssetUploadResponse,
    RenameAssetResponse,
)
from ..utils.constants import DEFAULT_CONTENT_TYPE
from ..utils.helpers import sanitize_filename
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AssetService:
    """Service for single-shot upload, download, existence checks, listing, rename and delete."""

    def __init__(self, storage_repo: Optional[StorageRepository] = None):
        self.storage_repo = storage_repo or StorageRepository()

    def _storage_failure(self, exc: Exception, fallback: str, **context) -> HTTPException:
        status_code, detail = map_storage_error(exc, fallback)
        logger.error(fallback, status_code=status_code, error=str(exc), **context)
        return HTTPException(status_code=status_code, detail=detail)

    async def handle_upload(
        self, file: UploadFile, key: Optional[str] = None
    ) -> AssetUploadResponse:
        """
        Upload a whole file in one request.
        Used for files below the multipart chunk size.
        """
        content = await file.read()
        if not content:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing or invalid file",
            )
        if len(content) > settings.max_upload_size_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File size exceeds maximum allowed size of {settings.max_upload_size_mb} MB; use multipart upload",
            )

        storage_key = key or sanitize_filename(file.filename or "unnamed")
        content_type = file.content_type or DEFAULT_CONTENT_TYPE

        try:
            result = await self.storage_repo.put_object(
                body=content, key=storage_key, content_type=content_type
            )
        except (ClientError, BotoCoreError) as e:
            raise self._storage_failure(e, "Upload failed", key=storage_key) from e

        logger.info("Asset uploaded", key=storage_key, size=result["size"])
        return AssetUploadResponse(
            key=result["key"],
            checksum=result["checksum"],
            size=result["size"],
            content_type=content_type,
        )

    async def check_exists(self, key: str) -> AssetExistsResponse:
        """Check whether an object exists without downloading it."""
        try:
            exists = await self.storage_repo.object_exists(key)
        except (ClientError, BotoCoreError) as e:
            raise self._storage_failure(e, "Failed to check file", key=key) from e
        return AssetExistsResponse(exists=exists, key=key)

    async def get_asset(self, key: str) -> Dict[str, Any]:
        """Download an object with its stored content type."""
        try:
            obj = await self.storage_repo.get_object(key)
        except (ClientError, BotoCoreError) as e:
            raise self._storage_failure(e, "Failed to get file", key=key) from e
        if obj is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
        return obj

    async def list_assets(self, prefix: str = "") -> AssetListResponse:
        """List objects under a prefix."""
        try:
            objects = await self.storage_repo.list_objects(prefix)
        except (ClientError, BotoCoreError) as e:
            raise self._storage_failure(e, "Failed to list files", prefix=prefix) from e
        return AssetListResponse(
            objects=[AssetInfo(**obj) for obj in objects], prefix=prefix
        )

    async def delete_asset(self, key: str) -> AssetDeleteResponse:
        """Delete an object."""
        try:
            await self.storage_repo.delete_object(key)
        except (ClientError, BotoCoreError) as e:
            raise self._storage_failure(e, "Failed to delete file", key=key) from e
        logger.info("Asset deleted", key=key)
        return AssetDeleteResponse(message="File deleted successfully", key=key)

    async def rename_asset(self, old_key: str, new_key: str) -> RenameAssetResponse:
        """Move an object: copy to the new key, then delete the old one."""
        if old_key == new_key:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Old key and new key cannot be the same",
            )

        try:
            if not await self.storage_repo.object_exists(old_key):
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND, detail="File not found"
                )
            if await self.storage_repo.object_exists(new_key):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="A file with the new name already exists",
                )
            await self.storage_repo.copy_object(old_key, new_key)
            await self.storage_repo.delete_object(old_key)
        except (ClientError, BotoCoreError) as e:
            raise self._storage_failure(
                e, "Failed to rename file", old_key=old_key, new_key=new_key
            ) from e

        logger.info("Asset renamed", old_key=old_key, new_key=new_key)
        return RenameAssetResponse(
            message="File renamed successfully", old_key=old_key, new_key=new_key
        )
