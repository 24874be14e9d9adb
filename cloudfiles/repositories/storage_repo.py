"""Storage repository for S3-compatible object storage operations."""

from typing import Any, Dict, List, Optional
from botocore.client import BaseClient
from botocore.exceptions import ClientError
from ..config.storage import get_storage_client, get_bucket_name
from .storage_errors import is_not_found


class StorageRepository:
    """Repository for bucket operations over a boto3 S3 client."""

    def __init__(
        self,
        client: Optional[BaseClient] = None,
        bucket_name: Optional[str] = None,
    ):
        self.client = client
        self.bucket_name = bucket_name

    async def _get_client(self) -> BaseClient:
        """Get or create storage client."""
        if self.client is None:
            self.client = get_storage_client()
        if self.bucket_name is None:
            self.bucket_name = get_bucket_name()
        return self.client

    # Object operations

    async def put_object(
        self, body: bytes, key: str, content_type: str
    ) -> Dict[str, Any]:
        """
        Upload an object in a single request.
        Args:
            body: Object content as bytes
            key: Storage key (path)
            content_type: MIME type
        Returns:
            Dict with key, checksum and size
        """
        client = await self._get_client()
        response = client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=body,
            ContentType=content_type,
        )
        return {"key": key, "checksum": response.get("ETag", ""), "size": len(body)}

    async def head_object(self, key: str) -> Optional[Dict[str, Any]]:
        """Return object metadata, or None if the key does not exist."""
        client = await self._get_client()
        try:
            response = client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if is_not_found(e):
                return None
            raise
        return {
            "key": key,
            "checksum": response.get("ETag", ""),
            "size": response.get("ContentLength", 0),
            "content_type": response.get("ContentType"),
            "last_modified": response.get("LastModified"),
        }

    async def get_object(self, key: str) -> Optional[Dict[str, Any]]:
        """Download an object, or return None if the key does not exist."""
        client = await self._get_client()
        try:
            response = client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if is_not_found(e):
                return None
            raise
        body = response["Body"].read()
        return {
            "key": key,
            "body": body,
            "checksum": response.get("ETag", ""),
            "size": response.get("ContentLength", len(body)),
            "content_type": response.get("ContentType"),
        }

    async def object_exists(self, key: str) -> bool:
        """Check if object exists in storage."""
        return await self.head_object(key) is not None

    async def list_objects(self, prefix: str = "") -> List[Dict[str, Any]]:
        """List every object under a prefix (flat, no delimiter)."""
        client = await self._get_client()
        paginator = client.get_paginator("list_objects_v2")
        objects = []
        for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
            for item in page.get("Contents", []):
                objects.append(
                    {
                        "key": item["Key"],
                        "size": item.get("Size", 0),
                        "checksum": item.get("ETag", ""),
                        "last_modified": item.get("LastModified"),
                    }
                )
        return objects

    async def copy_object(self, source_key: str, destination_key: str) -> None:
        """Server-side copy, preserving content type and metadata."""
        client = await self._get_client()
        client.copy_object(
            Bucket=self.bucket_name,
            Key=destination_key,
            CopySource={"Bucket": self.bucket_name, "Key": source_key},
            MetadataDirective="COPY",
        )

    async def delete_object(self, key: str) -> None:
        """Delete object from storage."""
        client = await self._get_client()
        client.delete_object(Bucket=self.bucket_name, Key=key)

    # Multipart upload operations

    async def create_multipart_upload(
        self, key: str, content_type: Optional[str] = None
    ) -> Dict[str, str]:
        """Initiate multipart upload and return the key and upload id."""
        client = await self._get_client()
        params = {"Bucket": self.bucket_name, "Key": key}
        if content_type:
            params["ContentType"] = content_type
        response = client.create_multipart_upload(**params)
        return {"key": response.get("Key", key), "upload_id": response["UploadId"]}

    async def upload_part(
        self, key: str, upload_id: str, part_number: int, body: bytes
    ) -> str:
        """Upload one part and return the ETag the backend assigned to it."""
        client = await self._get_client()
        response = client.upload_part(
            Bucket=self.bucket_name,
            Key=key,
            UploadId=upload_id,
            PartNumber=part_number,
            Body=body,
        )
        return response["ETag"]

    async def complete_multipart_upload(
        self, key: str, upload_id: str, parts: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Complete multipart upload by combining all parts.
        Parts are submitted in the order given; ETags are passed verbatim.
        """
        client = await self._get_client()
        response = client.complete_multipart_upload(
            Bucket=self.bucket_name,
            Key=key,
            UploadId=upload_id,
            MultipartUpload={
                "Parts": [
                    {"PartNumber": part["part_number"], "ETag": part["checksum"]}
                    for part in parts
                ]
            },
        )
        return {"key": response.get("Key", key), "checksum": response.get("ETag", "")}

    async def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        """Abort multipart upload and release stored parts."""
        client = await self._get_client()
        client.abort_multipart_upload(
            Bucket=self.bucket_name,
            Key=key,
            UploadId=upload_id,
        )

    async def list_parts(self, key: str, upload_id: str) -> List[Dict[str, Any]]:
        """List the parts stored under an open multipart upload."""
        client = await self._get_client()
        paginator = client.get_paginator("list_parts")
        parts = []
        for page in paginator.paginate(
            Bucket=self.bucket_name, Key=key, UploadId=upload_id
        ):
            for item in page.get("Parts", []):
                parts.append(
                    {
                        "part_number": item["PartNumber"],
                        "size": item.get("Size", 0),
                        "checksum": item.get("ETag", ""),
                    }
                )
        return parts
