"""Pytest configuration and fixtures."""

import os

# Settings are read at import time
os.environ.setdefault("STORAGE_BUCKET_NAME", "test-bucket")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["RATE_LIMIT_ENABLED"] = "false"

import hashlib
import io
import uuid
from datetime import datetime, timezone
from typing import AsyncGenerator, Dict

import pytest
from botocore.exceptions import ClientError
from httpx import AsyncClient, ASGITransport

from cloudfiles.main import app
from cloudfiles.core.dependencies import get_storage_repo
from cloudfiles.core.security import create_access_token
from cloudfiles.repositories.storage_repo import StorageRepository
from cloudfiles.utils.constants import MIN_PART_SIZE


def client_error(code: str, message: str, status_code: int, operation: str) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": message},
            "ResponseMetadata": {"HTTPStatusCode": status_code},
        },
        operation,
    )


def quoted_md5(data: bytes) -> str:
    return f'"{hashlib.md5(data).hexdigest()}"'


class InMemoryS3Client:
    """
    Bucket held in memory, answering the subset of the boto3 S3 client the
    repository uses with the same response shapes and error codes.
    """

    def __init__(self, min_part_size: int = MIN_PART_SIZE):
        self.min_part_size = min_part_size
        self.objects: Dict[str, Dict] = {}
        self.uploads: Dict[str, Dict] = {}
        self.calls = []

    def _object(self, key: str, operation: str) -> Dict:
        if key not in self.objects:
            raise client_error("404", "Not Found", 404, operation)
        return self.objects[key]

    def _upload(self, upload_id: str, key: str, operation: str) -> Dict:
        upload = self.uploads.get(upload_id)
        if upload is None or upload["key"] != key:
            raise client_error(
                "NoSuchUpload",
                "The specified multipart upload does not exist.",
                404,
                operation,
            )
        return upload

    def _store(self, key: str, body: bytes, content_type: str, etag: str) -> None:
        self.objects[key] = {
            "body": body,
            "etag": etag,
            "content_type": content_type,
            "last_modified": datetime.now(timezone.utc),
        }

    def put_object(self, Bucket, Key, Body, ContentType="binary/octet-stream"):
        self.calls.append("put_object")
        etag = quoted_md5(Body)
        self._store(Key, Body, ContentType, etag)
        return {"ETag": etag}

    def head_object(self, Bucket, Key):
        self.calls.append("head_object")
        obj = self._object(Key, "HeadObject")
        return {
            "ETag": obj["etag"],
            "ContentLength": len(obj["body"]),
            "ContentType": obj["content_type"],
            "LastModified": obj["last_modified"],
        }

    def get_object(self, Bucket, Key):
        self.calls.append("get_object")
        obj = self.objects.get(Key)
        if obj is None:
            raise client_error("NoSuchKey", "The specified key does not exist.", 404, "GetObject")
        return {
            "Body": io.BytesIO(obj["body"]),
            "ETag": obj["etag"],
            "ContentLength": len(obj["body"]),
            "ContentType": obj["content_type"],
        }

    def get_paginator(self, operation_name):
        client = self

        class ObjectsPaginator:
            def paginate(self, Bucket, Prefix=""):
                keys = sorted(k for k in client.objects if k.startswith(Prefix))
                yield {
                    "Contents": [
                        {
                            "Key": key,
                            "Size": len(client.objects[key]["body"]),
                            "ETag": client.objects[key]["etag"],
                            "LastModified": client.objects[key]["last_modified"],
                        }
                        for key in keys
                    ]
                }

        class PartsPaginator:
            def paginate(self, Bucket, Key, UploadId):
                client.calls.append("list_parts")
                upload = client._upload(UploadId, Key, "ListParts")
                yield {
                    "Parts": [
                        {"PartNumber": number, "Size": len(part["body"]), "ETag": part["etag"]}
                        for number, part in sorted(upload["parts"].items())
                    ]
                }

        if operation_name == "list_parts":
            return PartsPaginator()
        return ObjectsPaginator()

    def copy_object(self, Bucket, Key, CopySource, MetadataDirective="COPY"):
        self.calls.append("copy_object")
        source = self.objects.get(CopySource["Key"])
        if source is None:
            raise client_error("NoSuchKey", "The specified key does not exist.", 404, "CopyObject")
        self._store(Key, source["body"], source["content_type"], source["etag"])
        return {"CopyObjectResult": {"ETag": source["etag"]}}

    def delete_object(self, Bucket, Key):
        self.calls.append("delete_object")
        self.objects.pop(Key, None)
        return {}

    def create_multipart_upload(self, Bucket, Key, ContentType="binary/octet-stream"):
        self.calls.append("create_multipart_upload")
        upload_id = uuid.uuid4().hex
        self.uploads[upload_id] = {"key": Key, "content_type": ContentType, "parts": {}}
        return {"Bucket": Bucket, "Key": Key, "UploadId": upload_id}

    def upload_part(self, Bucket, Key, UploadId, PartNumber, Body):
        self.calls.append("upload_part")
        upload = self._upload(UploadId, Key, "UploadPart")
        etag = quoted_md5(Body)
        upload["parts"][PartNumber] = {"body": Body, "etag": etag}
        return {"ETag": etag}

    def complete_multipart_upload(self, Bucket, Key, UploadId, MultipartUpload):
        self.calls.append("complete_multipart_upload")
        upload = self._upload(UploadId, Key, "CompleteMultipartUpload")
        submitted = MultipartUpload["Parts"]
        bodies = []
        for index, part in enumerate(submitted):
            stored = upload["parts"].get(part["PartNumber"])
            if stored is None or stored["etag"] != part["ETag"]:
                raise client_error(
                    "InvalidPart",
                    "One or more of the specified parts could not be found.",
                    400,
                    "CompleteMultipartUpload",
                )
            if index < len(submitted) - 1 and len(stored["body"]) < self.min_part_size:
                raise client_error(
                    "EntityTooSmall",
                    "Your proposed upload is smaller than the minimum allowed object size.",
                    400,
                    "CompleteMultipartUpload",
                )
            bodies.append(stored["body"])

        digest = hashlib.md5(
            b"".join(bytes.fromhex(upload["parts"][p["PartNumber"]]["etag"].strip('"')) for p in submitted)
        ).hexdigest()
        etag = f'"{digest}-{len(submitted)}"'
        self._store(Key, b"".join(bodies), upload["content_type"], etag)
        del self.uploads[UploadId]
        return {"Bucket": Bucket, "Key": Key, "ETag": etag}

    def abort_multipart_upload(self, Bucket, Key, UploadId):
        self.calls.append("abort_multipart_upload")
        self._upload(UploadId, Key, "AbortMultipartUpload")
        del self.uploads[UploadId]
        return {}


@pytest.fixture
def s3_client() -> InMemoryS3Client:
    """Fresh in-memory bucket."""
    return InMemoryS3Client()


@pytest.fixture
def storage_repo(s3_client: InMemoryS3Client) -> StorageRepository:
    """Repository bound to the in-memory bucket."""
    return StorageRepository(client=s3_client, bucket_name="test-bucket")


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    """Bearer header carrying a valid session token."""
    token = create_access_token({"sub": "user-1"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
async def client(storage_repo: StorageRepository) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client without credentials."""
    app.dependency_overrides[get_storage_repo] = lambda: storage_repo

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def auth_client(
    storage_repo: StorageRepository, auth_headers: Dict[str, str]
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client carrying a session token."""
    app.dependency_overrides[get_storage_repo] = lambda: storage_repo

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url="http://test", headers=auth_headers
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
