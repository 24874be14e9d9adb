"""Multipart upload routes: create, upload-part, complete and abort."""

from typing import Iterable, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import ValidationError
from ..core.dependencies import get_multipart_service
from ..middleware.auth import get_current_user
from ..middleware.validation import (
    extract_params,
    optional_string,
    parse_part_number,
    require_params,
    validate_object_key,
)
from ..schemas.multipart_schemas import CompleteMultipartUploadRequest
from ..services.multipart_service import MultipartService
from ..utils.constants import MultipartAction

router = APIRouter(prefix="/api/multipart-upload", tags=["multipart"])

PART_PARAMS = ("sessionId", "key", "partNumber")


def resolve_action(action: Optional[str], allowed: Iterable[MultipartAction]) -> MultipartAction:
    """Map the `action` query parameter to an action this method accepts."""
    if not action:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing action parameter",
        )
    for candidate in allowed:
        if candidate.value == action:
            return candidate
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Unknown action: {action}",
    )


def _validation_detail(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"Invalid {location}: {error.get('msg')}" if location else error.get("msg", "Invalid request")


async def _upload_part(request: Request, service: MultipartService):
    params = await extract_params(request, PART_PARAMS, raw_body=True)
    require_params(params, PART_PARAMS, "Missing sessionId, partNumber, or key")
    part_number = parse_part_number(params.get("partNumber"))
    key = validate_object_key(params.get("key"))
    return await service.upload_part(
        session_id=str(params.get("sessionId")),
        key=key,
        part_number=part_number,
        body=params.payload or b"",
    )


@router.post("")
async def multipart_post(
    request: Request,
    action: Optional[str] = Query(None),
    user: dict = Depends(get_current_user),
    service: MultipartService = Depends(get_multipart_service),
):
    """
    Create a session, upload a part (for keys too long for a URL) or complete a session.

    Parameters may travel in the query string or in a JSON/form body.
    """
    resolved = resolve_action(
        action,
        (MultipartAction.CREATE, MultipartAction.UPLOAD_PART, MultipartAction.COMPLETE),
    )

    if resolved is MultipartAction.UPLOAD_PART:
        return await _upload_part(request, service)

    if resolved is MultipartAction.CREATE:
        params = await extract_params(request, ("key", "contentType"))
        key = validate_object_key(params.get("key"))
        content_type = optional_string(params.get("contentType"), "contentType")
        return await service.create_upload(key=key, content_type=content_type)

    params = await extract_params(request, ("sessionId", "key", "parts"))
    require_params(params, ("sessionId", "key", "parts"), "Missing required parameters")
    try:
        body = CompleteMultipartUploadRequest.model_validate(params.values)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=_validation_detail(e)
        )
    return await service.complete_upload(
        session_id=body.session_id,
        key=validate_object_key(body.key),
        parts=body.parts,
    )


@router.put("")
async def multipart_put(
    request: Request,
    action: Optional[str] = Query(None),
    user: dict = Depends(get_current_user),
    service: MultipartService = Depends(get_multipart_service),
):
    """Upload one part; the request body is the raw chunk."""
    resolve_action(action, (MultipartAction.UPLOAD_PART,))
    return await _upload_part(request, service)


@router.delete("")
async def multipart_delete(
    request: Request,
    action: Optional[str] = Query(None),
    user: dict = Depends(get_current_user),
    service: MultipartService = Depends(get_multipart_service),
):
    """Abort a session and release the parts stored so far."""
    resolve_action(action, (MultipartAction.ABORT,))
    params = await extract_params(request, ("sessionId", "key"))
    require_params(params, ("sessionId", "key"), "Missing sessionId or key")
    return await service.abort_upload(
        session_id=str(params.get("sessionId")),
        key=validate_object_key(params.get("key")),
    )


@router.options("")
async def multipart_options() -> Response:
    """Bare OPTIONS; real preflights are answered by CORSMiddleware."""
    return Response(
        status_code=status.HTTP_204_NO_CONTENT,
        headers={"Allow": "OPTIONS, POST, PUT, DELETE"},
    )
