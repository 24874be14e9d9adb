"""Storage configuration for S3-compatible providers (S3, R2, Wasabi)."""

from typing import Optional
import boto3
from botocore.client import BaseClient
from botocore.config import Config
from .settings import settings
from ..utils.constants import StorageProvider


def _endpoint_url(provider: str) -> Optional[str]:
    """Resolve the endpoint for providers that are not AWS itself."""
    if settings.storage_endpoint_url:
        return settings.storage_endpoint_url
    if provider == StorageProvider.R2:
        if not settings.r2_account_id:
            raise ValueError("R2_ACCOUNT_ID is required for the r2 storage provider")
        return f"https://{settings.r2_account_id}.r2.cloudflarestorage.com"
    if provider == StorageProvider.WASABI:
        return settings.wasabi_endpoint
    return None


def get_storage_client() -> BaseClient:
    """
    Get storage client based on configured provider.
    Returns boto3 client configured for the selected storage provider.
    """
    provider = settings.storage_provider.lower()

    if provider not in {p.value for p in StorageProvider}:
        raise ValueError(f"Unsupported storage provider: {provider}")

    return boto3.client(
        "s3",
        aws_access_key_id=settings.storage_access_key_id or None,
        aws_secret_access_key=settings.storage_secret_access_key or None,
        endpoint_url=_endpoint_url(provider),
        region_name=settings.storage_region,
        config=Config(signature_version="s3v4"),
    )


def get_bucket_name() -> str:
    """Get bucket name for the configured storage provider."""
    return settings.storage_bucket_name
