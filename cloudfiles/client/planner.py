"""Chunk planning for multipart uploads."""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional, Tuple, Union

from .exceptions import ChunkPlanError, MultipartNotApplicable
from ..utils.constants import DEFAULT_CHUNK_SIZE, MAX_PART_NUMBER, MIN_PART_SIZE


@dataclass(frozen=True)
class ChunkRange:
    """Half-open byte range [start, end) uploaded as one part."""

    part_number: int
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class ChunkPlan:
    """Ordered byte ranges covering a file. Derived, never persisted."""

    file_size: int
    chunk_size: int
    ranges: Tuple[ChunkRange, ...]

    @property
    def total_parts(self) -> int:
        return len(self.ranges)

    def is_final(self, chunk: ChunkRange) -> bool:
        return chunk.part_number == self.total_parts

    def validate(self) -> None:
        """Check contiguity, numbering and that non-final parts are full chunks."""
        position = 0
        for index, chunk in enumerate(self.ranges):
            if chunk.part_number != index + 1:
                raise ChunkPlanError(
                    f"Part {index + 1} is numbered {chunk.part_number}"
                )
            if chunk.start != position:
                raise ChunkPlanError(
                    f"Part {chunk.part_number} starts at {chunk.start}, expected {position}"
                )
            if not self.is_final(chunk) and chunk.length != self.chunk_size:
                raise ChunkPlanError(
                    f"Part {chunk.part_number} is {chunk.length} bytes, but non-final "
                    f"parts must be exactly {self.chunk_size} bytes"
                )
            position = chunk.end
        if position != self.file_size:
            raise ChunkPlanError(
                f"Plan covers {position} bytes of a {self.file_size} byte file"
            )


def plan_chunks(
    file_size: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    min_part_size: int = MIN_PART_SIZE,
) -> ChunkPlan:
    """
    Split `file_size` bytes into parts of `chunk_size`, the last one holding the remainder.

    Raises ValueError for an empty file or a chunk size below the backend
    floor, and MultipartNotApplicable when the file is smaller than a chunk.
    """
    if file_size <= 0:
        raise ValueError("File size must be greater than zero")
    if chunk_size < min_part_size:
        raise ValueError(
            f"Chunk size {chunk_size} is below the minimum part size of {min_part_size} bytes"
        )
    if file_size < chunk_size:
        raise MultipartNotApplicable(file_size, chunk_size)

    total_parts = math.ceil(file_size / chunk_size)
    if total_parts > MAX_PART_NUMBER:
        raise ValueError(
            f"File needs {total_parts} parts; the backend allows at most {MAX_PART_NUMBER}"
        )

    plan = ChunkPlan(
        file_size=file_size,
        chunk_size=chunk_size,
        ranges=tuple(
            ChunkRange(
                part_number=i + 1,
                start=i * chunk_size,
                end=min(file_size, (i + 1) * chunk_size),
            )
            for i in range(total_parts)
        ),
    )
    plan.validate()
    return plan


class UploadSource:
    """Random-access bytes to upload: in-memory data or a file on disk."""

    def __init__(
        self,
        data: Optional[Union[bytes, bytearray, memoryview]] = None,
        path: Optional[Union[str, Path]] = None,
    ):
        if (data is None) == (path is None):
            raise ValueError("Provide exactly one of data or path")
        self.data = bytes(data) if data is not None else None
        self.path = Path(path) if path is not None else None
        self._handle: Optional[BinaryIO] = None

    @property
    def name(self) -> str:
        return self.path.name if self.path else "upload.bin"

    @property
    def size(self) -> int:
        if self.data is not None:
            return len(self.data)
        return self.path.stat().st_size

    def read(self, start: int, end: int) -> bytes:
        """Read bytes [start, end)."""
        if self.data is not None:
            return self.data[start:end]
        if self._handle is None:
            self._handle = open(self.path, "rb")
        self._handle.seek(start)
        return self._handle.read(end - start)

    def read_all(self) -> bytes:
        return self.read(0, self.size)

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    @classmethod
    def coerce(cls, source: Union["UploadSource", bytes, bytearray, memoryview, str, Path]) -> "UploadSource":
        """Accept an UploadSource, raw bytes or a filesystem path."""
        if isinstance(source, UploadSource):
            return source
        if isinstance(source, (bytes, bytearray, memoryview)):
            return cls(data=source)
        return cls(path=source)
