"""Async client that drives chunked uploads against the multipart endpoint."""

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx

from .exceptions import (
    ChunkPlanError,
    MultipartNotApplicable,
    UploadCancelled,
    UploadError,
    UploadFailed,
)
from .models import PartResult, UploadResult, UploadSession
from .planner import ChunkPlan, ChunkRange, UploadSource, plan_chunks
from ..utils.constants import (
    BACKOFF_STEP_SECONDS,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONTENT_TYPE,
    MAX_PART_ATTEMPTS,
    MULTIPART_ENDPOINT,
    PART_TIMEOUT_SECONDS,
    SINGLE_UPLOAD_ENDPOINT,
    MultipartAction,
    UploadStatus,
)
from ..utils.helpers import format_file_size
from ..utils.logger import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[float], Any]
SourceLike = Union[UploadSource, bytes, bytearray, memoryview, str, Path]

RETRYABLE_STATUS_CODES = {408, 429}
MAX_URL_LENGTH = 15000  # proxies reject URLs around 16KB


def is_retryable_status(status_code: int) -> bool:
    """Request timeout, rate limiting and any 5xx are worth another attempt."""
    return status_code in RETRYABLE_STATUS_CODES or status_code >= 500


def error_detail(response: httpx.Response) -> str:
    """Best-effort error message from a JSON `detail` field or the raw body."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("detail"):
        return str(payload["detail"])
    return response.text or response.reason_phrase


def read_payload(
    response: httpx.Response,
    required: tuple,
    what: str,
    key: Optional[str],
    session_id: Optional[str] = None,
    part_number: Optional[int] = None,
) -> Dict[str, Any]:
    """Decode a 2xx JSON body; a body that is not the expected object is a failed upload."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict) or any(field not in payload for field in required):
        raise UploadFailed(
            f"Unexpected response to {what}: {response.status_code} {response.text[:200]}",
            key=key,
            session_id=session_id,
            status_code=response.status_code,
            part_number=part_number,
        )
    return payload


def make_http_client(
    base_url: str, token: Optional[str] = None, timeout: float = 60.0
) -> httpx.AsyncClient:
    """Build an httpx client carrying the session token as a bearer header."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)


class MultipartUploader:
    """
    Chunk planner and uploader.

    Splits a source into fixed-size parts and runs create, upload-part and
    complete against the multipart endpoint. Each part gets up to
    `max_attempts` tries; 408, 429, 5xx and transport errors are retried with
    a linearly growing pause, any other 4xx ends the upload at once.

    Parts go out one at a time unless `max_concurrency` is raised. Part
    numbers come from the plan, so concurrent dispatch never races on them,
    and complete is only called once every part has been acknowledged.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        endpoint: str = MULTIPART_ENDPOINT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_attempts: int = MAX_PART_ATTEMPTS,
        part_timeout: float = PART_TIMEOUT_SECONDS,
        backoff_step: float = BACKOFF_STEP_SECONDS,
        max_concurrency: int = 1,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.client = client
        self.endpoint = endpoint
        self.chunk_size = chunk_size
        self.max_attempts = max_attempts
        self.part_timeout = part_timeout
        self.backoff_step = backoff_step
        self.max_concurrency = max_concurrency
        self._sleep = sleep

    # Wire calls

    def _url_too_long(self, method: str, params: Dict[str, Any]) -> bool:
        request = self.client.build_request(method, self.endpoint, params=params)
        return len(str(request.url)) > MAX_URL_LENGTH

    async def create_session(
        self, key: str, content_type: Optional[str] = None
    ) -> UploadSession:
        """Phase 1. A failure here is fatal and not retried."""
        try:
            response = await self.client.post(
                self.endpoint,
                params={"action": MultipartAction.CREATE.value},
                json={"key": key, "contentType": content_type},
            )
        except httpx.HTTPError as e:
            raise UploadFailed(f"Failed to create multipart upload: {e}", key=key) from e
        if not response.is_success:
            raise UploadFailed(
                f"Failed to create multipart upload: {response.status_code} {error_detail(response)}",
                key=key,
                status_code=response.status_code,
            )
        payload = read_payload(response, ("sessionId",), "create", key)
        logger.info("Multipart session created", key=key, session_id=payload["sessionId"])
        return UploadSession(
            key=payload.get("key", key),
            session_id=payload["sessionId"],
            content_type=content_type,
        )

    async def upload_part(
        self, session: UploadSession, part_number: int, data: bytes
    ) -> httpx.Response:
        """
        Send one part once, bounded by the per-part timeout.

        Parameters go in the query string; when that would make the URL too
        long they move into a multipart form next to the chunk.
        """
        params = {
            "action": MultipartAction.UPLOAD_PART.value,
            "sessionId": session.session_id,
            "key": session.key,
            "partNumber": str(part_number),
        }
        timeout = httpx.Timeout(self.part_timeout)
        if not self._url_too_long("PUT", params):
            return await self.client.put(
                self.endpoint,
                params=params,
                content=data,
                headers={"Content-Type": "application/octet-stream"},
                timeout=timeout,
            )
        return await self.client.post(
            self.endpoint,
            params={"action": params.pop("action")},
            data=params,
            files={"file": ("chunk", data, "application/octet-stream")},
            timeout=timeout,
        )

    async def complete_session(
        self, session: UploadSession, parts: List[PartResult]
    ) -> UploadResult:
        """
        Phase 3. The object appears atomically when this succeeds.

        A failure leaves the session open: the caller may retry completion
        with the same parts or abort.
        """
        body = {
            "sessionId": session.session_id,
            "key": session.key,
            "parts": [part.model_dump(by_alias=True) for part in parts],
        }
        try:
            response = await self.client.post(
                self.endpoint,
                params={"action": MultipartAction.COMPLETE.value},
                json=body,
            )
        except httpx.HTTPError as e:
            raise UploadFailed(
                f"Complete upload failed: {e}",
                key=session.key,
                session_id=session.session_id,
            ) from e
        if not response.is_success:
            raise UploadFailed(
                f"Complete upload failed: {response.status_code} {error_detail(response)}",
                key=session.key,
                session_id=session.session_id,
                status_code=response.status_code,
            )
        payload = read_payload(
            response, ("key", "checksum", "size"), "complete", session.key, session.session_id
        )
        session.status = UploadStatus.COMPLETED
        return UploadResult(
            key=payload["key"], checksum=payload["checksum"], size=payload["size"]
        )

    async def abort_session(self, session: UploadSession) -> None:
        """Release the session and every part stored under it."""
        params = {
            "action": MultipartAction.ABORT.value,
            "sessionId": session.session_id,
            "key": session.key,
        }
        try:
            if self._url_too_long("DELETE", params):
                response = await self.client.request(
                    "DELETE",
                    self.endpoint,
                    params={"action": params.pop("action")},
                    json=params,
                )
            else:
                response = await self.client.delete(self.endpoint, params=params)
        except httpx.HTTPError as e:
            raise UploadFailed(
                f"Abort failed: {e}", key=session.key, session_id=session.session_id
            ) from e
        if not response.is_success:
            raise UploadFailed(
                f"Abort failed: {response.status_code} {error_detail(response)}",
                key=session.key,
                session_id=session.session_id,
                status_code=response.status_code,
            )
        session.status = UploadStatus.ABORTED
        logger.info("Multipart session aborted", key=session.key, session_id=session.session_id)

    # Orchestration

    async def upload(
        self,
        source: SourceLike,
        key: str,
        content_type: Optional[str] = None,
        chunk_size: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        abort_on_failure: bool = False,
    ) -> UploadResult:
        """
        Upload `source` to `key` in parts.

        Raises MultipartNotApplicable when the source is smaller than one
        chunk, UploadCancelled when `cancel_event` is set, ChunkPlanError
        when a read does not match the plan, and UploadFailed for anything
        else. By default a failed upload leaves its session open; the
        exception's `session_id` lets the caller abort it.
        """
        upload_source = UploadSource.coerce(source)
        try:
            plan = plan_chunks(upload_source.size, chunk_size or self.chunk_size)
            session = await self.create_session(key, content_type)
            return await self._run(session, upload_source, plan, on_progress, cancel_event, abort_on_failure)
        finally:
            upload_source.close()

    async def _run(
        self,
        session: UploadSession,
        source: UploadSource,
        plan: ChunkPlan,
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[asyncio.Event],
        abort_on_failure: bool,
    ) -> UploadResult:
        logger.info(
            "Uploading parts",
            key=session.key,
            session_id=session.session_id,
            total_parts=plan.total_parts,
            size=format_file_size(plan.file_size),
        )
        session.status = UploadStatus.UPLOADING
        try:
            session.parts = await self._upload_parts(session, source, plan, on_progress, cancel_event)
            self._check_cancelled(session, cancel_event)
            return await self.complete_session(session, session.parts)
        except UploadCancelled:
            await self._abort_quietly(session)
            raise
        except asyncio.CancelledError:
            await self._abort_quietly(session)
            raise
        except UploadError as e:
            session.status = UploadStatus.FAILED
            logger.error(
                "Multipart upload failed",
                key=session.key,
                session_id=session.session_id,
                error=str(e),
            )
            if abort_on_failure:
                await self._abort_quietly(session)
            if isinstance(e, (UploadFailed, ChunkPlanError)):
                e.key = e.key or session.key
                e.session_id = e.session_id or session.session_id
                raise
            raise UploadFailed(str(e), key=session.key, session_id=session.session_id) from e

    async def _upload_parts(
        self,
        session: UploadSession,
        source: UploadSource,
        plan: ChunkPlan,
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[asyncio.Event],
    ) -> List[PartResult]:
        results: Dict[int, PartResult] = {}
        completed = 0
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(chunk: ChunkRange) -> None:
            nonlocal completed
            async with semaphore:
                self._check_cancelled(session, cancel_event)
                data = source.read(chunk.start, chunk.end)
                self._check_chunk(plan, chunk, data)
                results[chunk.part_number] = await self._send_part(
                    session, chunk.part_number, data, cancel_event
                )
            completed += 1
            if on_progress is not None:
                on_progress(completed / plan.total_parts * 100)

        if self.max_concurrency == 1:
            for chunk in plan.ranges:
                await run(chunk)
        else:
            tasks = [asyncio.create_task(run(chunk)) for chunk in plan.ranges]
            try:
                await asyncio.gather(*tasks)
            except BaseException:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise

        return [results[chunk.part_number] for chunk in plan.ranges]

    def _check_chunk(self, plan: ChunkPlan, chunk: ChunkRange, data: bytes) -> None:
        """Non-final parts must be exactly one chunk long before they are sent."""
        if len(data) != chunk.length:
            raise ChunkPlanError(
                f"Part {chunk.part_number} read {len(data)} bytes, expected {chunk.length}"
            )
        if not plan.is_final(chunk) and len(data) != plan.chunk_size:
            raise ChunkPlanError(
                f"Part {chunk.part_number} is {len(data)} bytes, but non-final parts "
                f"must be exactly {plan.chunk_size} bytes"
            )

    async def _send_part(
        self,
        session: UploadSession,
        part_number: int,
        data: bytes,
        cancel_event: Optional[asyncio.Event],
    ) -> PartResult:
        """Upload one part under the retry budget."""
        last_error = "unknown error"
        for attempt in range(1, self.max_attempts + 1):
            self._check_cancelled(session, cancel_event)
            try:
                response = await self.upload_part(session, part_number, data)
            except httpx.TransportError as e:
                last_error = f"{type(e).__name__}: {e}"
            else:
                if response.is_success:
                    return self._part_result(session, part_number, response)

                last_error = f"{response.status_code} {error_detail(response)}"
                if response.status_code == 413:
                    raise UploadFailed(
                        f"Part {part_number} is too large for the server (413): "
                        f"{error_detail(response)}",
                        key=session.key,
                        session_id=session.session_id,
                        status_code=413,
                        part_number=part_number,
                    )
                if not is_retryable_status(response.status_code):
                    raise UploadFailed(
                        f"Upload part {part_number} failed: {last_error}",
                        key=session.key,
                        session_id=session.session_id,
                        status_code=response.status_code,
                        part_number=part_number,
                    )

            if attempt < self.max_attempts:
                delay = self.backoff_step * attempt
                logger.warning(
                    "Retrying part upload",
                    key=session.key,
                    part_number=part_number,
                    attempt=attempt,
                    delay=delay,
                    error=last_error,
                )
                await self._backoff(session, delay, cancel_event)

        raise UploadFailed(
            f"Failed to upload part {part_number} after {self.max_attempts} attempts: {last_error}",
            key=session.key,
            session_id=session.session_id,
            part_number=part_number,
        )

    def _part_result(
        self, session: UploadSession, part_number: int, response: httpx.Response
    ) -> PartResult:
        payload = read_payload(
            response,
            ("partNumber", "checksum"),
            f"part {part_number}",
            session.key,
            session.session_id,
            part_number,
        )
        if payload["partNumber"] != part_number or not payload["checksum"]:
            raise UploadFailed(
                f"Unexpected response for part {part_number}: {payload}",
                key=session.key,
                session_id=session.session_id,
                part_number=part_number,
            )
        return PartResult(part_number=part_number, checksum=payload["checksum"])

    async def _backoff(
        self, session: UploadSession, delay: float, cancel_event: Optional[asyncio.Event]
    ) -> None:
        if cancel_event is None:
            await self._sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        self._check_cancelled(session, cancel_event)

    def _check_cancelled(
        self, session: UploadSession, cancel_event: Optional[asyncio.Event]
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise UploadCancelled(session.key, session.session_id)

    async def _abort_quietly(self, session: UploadSession) -> None:
        try:
            await self.abort_session(session)
        except UploadFailed as e:
            logger.warning(
                "Abort after failure did not succeed",
                key=session.key,
                session_id=session.session_id,
                error=e.message,
            )


class FileUploader:
    """
    Entry point for uploading a file of any size.

    Files of at least one chunk go through MultipartUploader; smaller ones
    are sent in a single request.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        multipart: Optional[MultipartUploader] = None,
        single_endpoint: str = SINGLE_UPLOAD_ENDPOINT,
    ):
        self.client = client
        self.multipart = multipart or MultipartUploader(client)
        self.single_endpoint = single_endpoint

    async def upload(
        self,
        source: SourceLike,
        key: str,
        content_type: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
        abort_on_failure: bool = False,
    ) -> UploadResult:
        upload_source = UploadSource.coerce(source)
        try:
            return await self.multipart.upload(
                upload_source,
                key,
                content_type=content_type,
                on_progress=on_progress,
                cancel_event=cancel_event,
                abort_on_failure=abort_on_failure,
            )
        except MultipartNotApplicable as e:
            logger.info(
                "File smaller than one chunk, using single-shot upload",
                key=key,
                size=e.file_size,
                chunk_size=e.chunk_size,
            )
            return await self.upload_single(upload_source, key, content_type, on_progress)

    async def upload_single(
        self,
        source: SourceLike,
        key: str,
        content_type: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        """Send the whole file in one request."""
        upload_source = UploadSource.coerce(source)
        try:
            data = upload_source.read_all()
        finally:
            upload_source.close()
        try:
            response = await self.client.post(
                self.single_endpoint,
                data={"key": key},
                files={"file": (upload_source.name, data, content_type or DEFAULT_CONTENT_TYPE)},
            )
        except httpx.HTTPError as e:
            raise UploadFailed(f"Upload failed: {e}", key=key) from e
        if not response.is_success:
            raise UploadFailed(
                f"Upload failed: {response.status_code} {error_detail(response)}",
                key=key,
                status_code=response.status_code,
            )
        payload = read_payload(response, ("key", "checksum", "size"), "upload", key)
        if on_progress is not None:
            on_progress(100.0)
        return UploadResult(
            key=payload["key"], checksum=payload["checksum"], size=payload["size"]
        )
