"""Reusable FastAPI dependencies."""

from typing import AsyncGenerator
from fastapi import Depends, HTTPException, status
from ..config import settings
from ..repositories.storage_repo import StorageRepository
from ..services.asset_service import AssetService
from ..services.multipart_service import MultipartService


async def get_storage_repo() -> AsyncGenerator[StorageRepository, None]:
    """
    Dependency to get storage repository.
    Raises 500 when no bucket is bound.
    """
    if not settings.storage_configured:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Cloud storage not configured",
        )
    yield StorageRepository()


async def get_multipart_service(
    storage_repo: StorageRepository = Depends(get_storage_repo),
) -> AsyncGenerator[MultipartService, None]:
    """Dependency to get the multipart session coordinator."""
    yield MultipartService(storage_repo)


async def get_asset_service(
    storage_repo: StorageRepository = Depends(get_storage_repo),
) -> AsyncGenerator[AssetService, None]:
    """Dependency to get asset service."""
    yield AssetService(storage_repo)
