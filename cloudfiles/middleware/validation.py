"""Request parameter extraction and validation for storage endpoints."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
from fastapi import HTTPException, Request, status
from starlette.datastructures import UploadFile
from ..utils.constants import MAX_PART_NUMBER
from ..utils.helpers import key_too_long, normalize_key

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")

# Parameters that may carry JSON arrays or objects; every other one is a scalar
STRUCTURED_PARAMS = {"parts"}


@dataclass
class RequestParams:
    """One canonical parameter set for a request, plus its binary payload if any."""

    values: Dict[str, Any] = field(default_factory=dict)
    payload: Optional[bytes] = None

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def merge_params(
    query: Mapping[str, Any], body: Mapping[str, Any], names: Iterable[str]
) -> Dict[str, Any]:
    """
    Merge query-string and body parameters into one set.

    A parameter may come from either source. When both carry it they must
    agree; a mismatch is rejected rather than letting one source win.
    Scalar parameters given as a JSON array or object are rejected.
    """
    merged: Dict[str, Any] = {}
    for name in names:
        from_query = query.get(name)
        from_body = body.get(name)
        if isinstance(from_body, (list, dict)) and name not in STRUCTURED_PARAMS:
            raise _bad_request(f"Invalid value for '{name}': expected a single value")
        if _present(from_query) and _present(from_body):
            if str(from_query) != str(from_body):
                raise _bad_request(
                    f"Conflicting values for '{name}' in query string and body"
                )
            merged[name] = from_body
        elif _present(from_body):
            merged[name] = from_body
        elif _present(from_query):
            merged[name] = from_query
    return merged


async def _read_body(request: Request, raw_body: bool) -> Tuple[Dict[str, Any], Optional[bytes]]:
    """
    Read body fields and payload.

    With raw_body the request body is the payload unless it is a multipart
    form, in which case the `file` field is the payload and the other fields
    are parameters.
    """
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith(FORM_CONTENT_TYPES):
        fields: Dict[str, Any] = {}
        payload = None
        form = await request.form()
        for name, value in form.multi_items():
            if isinstance(value, UploadFile):
                if name == "file":
                    payload = await value.read()
                continue
            fields[name] = value
        return fields, payload

    if raw_body:
        return {}, await request.body()

    if content_type.startswith("application/json"):
        raw = await request.body()
        if not raw:
            return {}, None
        try:
            data = json.loads(raw)
        except ValueError:
            raise _bad_request("Invalid JSON body")
        if not isinstance(data, dict):
            raise _bad_request("JSON body must be an object")
        return data, None

    return {}, None


async def extract_params(
    request: Request, names: Iterable[str], raw_body: bool = False
) -> RequestParams:
    """Collect `names` from query string and body in a single normalized step."""
    names = list(names)
    body_fields, payload = await _read_body(request, raw_body)
    values = merge_params(request.query_params, body_fields, names)
    return RequestParams(values=values, payload=payload)


def require_params(params: RequestParams, names: Iterable[str], detail: str) -> None:
    """Raise 400 with `detail` if any of `names` is missing."""
    if any(not _present(params.get(name)) for name in names):
        raise _bad_request(detail)


def parse_part_number(value: Any) -> int:
    """Part numbers must be integers in 1..10000."""
    if isinstance(value, bool):
        raise _bad_request("Invalid part number")
    try:
        part_number = int(str(value).strip())
    except ValueError:
        raise _bad_request("Invalid part number")
    if part_number < 1 or part_number > MAX_PART_NUMBER:
        raise _bad_request(
            f"Invalid part number: must be between 1 and {MAX_PART_NUMBER}"
        )
    return part_number


def validate_object_key(key: Any, detail: str = "Missing key parameter") -> str:
    """Normalize an object key, rejecting empty and oversized keys."""
    normalized = normalize_key(key)
    if normalized is None:
        raise _bad_request(detail)
    if key_too_long(normalized):
        raise _bad_request("Key exceeds maximum length of 1024 bytes")
    return normalized


def optional_string(value: Any, name: str) -> Optional[str]:
    """Accept a missing value or a string; anything else is a 400."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise _bad_request(f"Invalid value for '{name}': expected a string")
    return value.strip() or None
