"""Helper functions for common operations."""

import os
from typing import Optional

from .constants import MAX_KEY_LENGTH


def format_file_size(size_bytes: float) -> str:
    """Format file size in human-readable format."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_bytes < 1024.0:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.2f} PB"


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe storage."""
    # Remove path components and dangerous characters
    filename = os.path.basename(filename)
    filename = "".join(c if c.isalnum() or c in "._-" else "_" for c in filename)
    return filename[:255]


def normalize_key(key: Optional[str]) -> Optional[str]:
    """
    Normalize an object key.
    Strips surrounding whitespace and leading slashes; returns None for empty keys.
    """
    if key is None:
        return None
    key = str(key).strip().lstrip("/")
    return key or None


def key_too_long(key: str) -> bool:
    """Object keys are limited to 1024 bytes of UTF-8."""
    return len(key.encode("utf-8")) > MAX_KEY_LENGTH
