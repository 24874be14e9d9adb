"""Translate botocore failures into HTTP status codes."""

from typing import Tuple
from botocore.exceptions import ClientError

NOT_FOUND_CODES = {"NoSuchUpload", "NoSuchKey", "NotFound", "404"}
TRANSIENT_CODES = {
    "SlowDown", "Throttling", "RequestTimeout",
    "InternalError", "ServiceUnavailable", "InternalServerError",
}


def error_code(exc: ClientError) -> str:
    """Extract the backend error code from a botocore ClientError."""
    return str(exc.response.get("Error", {}).get("Code", ""))


def error_message(exc: ClientError) -> str:
    """Extract the backend error message, falling back to the exception text."""
    return exc.response.get("Error", {}).get("Message") or str(exc)


def is_not_found(exc: ClientError) -> bool:
    return error_code(exc) in NOT_FOUND_CODES


def map_storage_error(exc: Exception, fallback: str) -> Tuple[int, str]:
    """
    Map a storage exception to (status_code, detail).

    Unknown sessions/keys become 404, backend throttling and 5xx become 503
    so clients retry, any other backend rejection is a 400 carrying the
    backend message verbatim. Transport/credential faults are 500.
    """
    if isinstance(exc, ClientError):
        code = error_code(exc)
        http_status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        if code in NOT_FOUND_CODES:
            return 404, error_message(exc)
        if code in TRANSIENT_CODES or (isinstance(http_status, int) and http_status >= 500):
            return 503, error_message(exc)
        return 400, error_message(exc)
    return 500, fallback
