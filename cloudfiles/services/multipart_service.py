"""Multipart session coordinator over the storage backend's native multipart API."""

from collections import Counter
from typing import List, NoReturn, Optional
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import HTTPException, status
from ..config import settings
from ..repositories.storage_errors import is_not_found, map_storage_error
from ..repositories.storage_repo import StorageRepository
from ..schemas.multipart_schemas import (
    AbortMultipartUploadResponse,
    CompletedPart,
    CompleteMultipartUploadResponse,
    CreateMultipartUploadResponse,
    UploadPartResponse,
)
from ..utils.helpers import format_file_size
from ..utils.logger import get_logger

logger = get_logger(__name__)


def validate_part_sequence(parts: List[CompletedPart]) -> None:
    """
    Parts submitted for completion must be exactly 1..n in increasing order.
    Raises HTTPException(400) on gaps, duplicates or reordering.
    """
    numbers = [part.part_number for part in parts]
    expected = list(range(1, len(parts) + 1))
    if numbers == expected:
        return

    duplicates = sorted(n for n, count in Counter(numbers).items() if count > 1)
    if duplicates:
        detail = f"Duplicate part numbers: {duplicates}"
    elif sorted(numbers) == expected:
        detail = "Parts must be listed in increasing part number order"
    else:
        missing = sorted(set(range(1, max(numbers) + 1)) - set(numbers))
        detail = f"Missing part numbers: {missing}"
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class MultipartService:
    """
    Adapter between the four wire actions and the backend multipart primitives.

    Holds no session state of its own: the backend's upload id is the session.
    Errors the backend raises for unknown or finished sessions are surfaced,
    never masked.
    """

    def __init__(self, storage_repo: Optional[StorageRepository] = None):
        self.storage_repo = storage_repo or StorageRepository()

    def _raise_storage_error(self, exc: Exception, fallback: str, **context) -> NoReturn:
        status_code, detail = map_storage_error(exc, fallback)
        logger.error(fallback, status_code=status_code, error=str(exc), **context)
        raise HTTPException(status_code=status_code, detail=detail) from exc

    async def create_upload(
        self, key: str, content_type: Optional[str] = None
    ) -> CreateMultipartUploadResponse:
        """Open a new session. Two creates for the same key yield two sessions."""
        try:
            result = await self.storage_repo.create_multipart_upload(
                key=key, content_type=content_type
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to create multipart upload", key=key, error=str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create multipart upload",
            ) from e

        logger.info(
            "Multipart upload created",
            key=result["key"],
            session_id=result["upload_id"],
            content_type=content_type,
        )
        return CreateMultipartUploadResponse(
            key=result["key"], session_id=result["upload_id"]
        )

    async def upload_part(
        self, session_id: str, key: str, part_number: int, body: bytes
    ) -> UploadPartResponse:
        """
        Store one part.

        The body arrives fully buffered, so memory use per request is
        proportional to the chunk size.
        """
        if not body:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing request body",
            )
        if len(body) > settings.multipart_max_part_size_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"Part exceeds maximum size of {settings.multipart_max_part_size_mb} MB",
            )

        try:
            checksum = await self.storage_repo.upload_part(
                key=key, upload_id=session_id, part_number=part_number, body=body
            )
        except (ClientError, BotoCoreError) as e:
            self._raise_storage_error(
                e, "Failed to upload part",
                key=key, session_id=session_id, part_number=part_number,
            )

        logger.debug(
            "Part stored",
            key=key,
            session_id=session_id,
            part_number=part_number,
            size=format_file_size(len(body)),
        )
        return UploadPartResponse(part_number=part_number, checksum=checksum)

    async def complete_upload(
        self, session_id: str, key: str, parts: List[CompletedPart]
    ) -> CompleteMultipartUploadResponse:
        """Finalize the object. Until this succeeds the key keeps its prior value."""
        validate_part_sequence(parts)

        try:
            stored = await self.storage_repo.list_parts(key=key, upload_id=session_id)
            result = await self.storage_repo.complete_multipart_upload(
                key=key,
                upload_id=session_id,
                parts=[part.model_dump() for part in parts],
            )
        except (ClientError, BotoCoreError) as e:
            self._raise_storage_error(
                e, "Failed to complete multipart upload",
                key=key, session_id=session_id, parts=len(parts),
            )

        # The object exists from here on; a failed head must not fail the request.
        try:
            head = await self.storage_repo.head_object(result["key"])
        except (ClientError, BotoCoreError) as e:
            logger.warning(
                "Could not read completed object, using stored part sizes",
                key=result["key"],
                session_id=session_id,
                error=str(e),
            )
            head = None

        if head:
            size = head["size"]
        else:
            sizes = {part["part_number"]: part["size"] for part in stored}
            size = sum(sizes.get(part.part_number, 0) for part in parts)
        logger.info(
            "Multipart upload completed",
            key=result["key"],
            session_id=session_id,
            parts=len(parts),
            size=size,
        )
        return CompleteMultipartUploadResponse(
            key=result["key"],
            checksum=result["checksum"] or (head or {}).get("checksum", ""),
            size=size,
        )

    async def abort_upload(self, session_id: str, key: str) -> AbortMultipartUploadResponse:
        """Release the session. Aborting an already released session is acknowledged."""
        try:
            await self.storage_repo.abort_multipart_upload(key=key, upload_id=session_id)
        except ClientError as e:
            if not is_not_found(e):
                self._raise_storage_error(
                    e, "Failed to abort multipart upload", key=key, session_id=session_id
                )
            logger.warning(
                "Abort on unknown multipart upload",
                key=key,
                session_id=session_id,
                error=str(e),
            )
            return AbortMultipartUploadResponse(
                message="Multipart upload already released"
            )
        except BotoCoreError as e:
            self._raise_storage_error(
                e, "Failed to abort multipart upload", key=key, session_id=session_id
            )

        logger.info("Multipart upload aborted", key=key, session_id=session_id)
        return AbortMultipartUploadResponse(
            message="Multipart upload aborted successfully"
        )
