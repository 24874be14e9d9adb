"""Exceptions raised by the upload client."""

from typing import Optional


class UploadError(Exception):
    """Base class for client-side upload failures."""


class ChunkPlanError(UploadError):
    """A chunk violates the plan. This is a local bug, never retried."""

    def __init__(
        self, message: str, key: Optional[str] = None, session_id: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.key = key
        self.session_id = session_id


class MultipartNotApplicable(UploadError):
    """The file is smaller than one chunk; use a single-shot upload instead."""

    def __init__(self, file_size: int, chunk_size: int):
        super().__init__(
            f"File of {file_size} bytes is smaller than the {chunk_size} byte chunk size"
        )
        self.file_size = file_size
        self.chunk_size = chunk_size


class UploadFailed(UploadError):
    """
    The upload did not finish.

    Carries the last error seen. When a session was opened its id is kept so
    the caller can abort it and release what the backend already stored.
    """

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        session_id: Optional[str] = None,
        status_code: Optional[int] = None,
        part_number: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.key = key
        self.session_id = session_id
        self.status_code = status_code
        self.part_number = part_number


class UploadCancelled(UploadError):
    """The caller cancelled the upload; its session has been aborted."""

    def __init__(self, key: str, session_id: Optional[str] = None):
        super().__init__(f"Upload of {key} was cancelled")
        self.key = key
        self.session_id = session_id
