"""Client-side upload records."""

from dataclasses import dataclass, field
from typing import List, Optional

from ..schemas.shared import CamelModel
from ..utils.constants import UploadStatus


class PartResult(CamelModel):
    """One chunk the backend confirmed storing."""

    part_number: int
    checksum: str


class UploadResult(CamelModel):
    """Descriptor of the finished object."""

    key: str
    checksum: str
    size: int


@dataclass
class UploadSession:
    """One in-flight multipart upload as the client sees it."""

    key: str
    session_id: str
    content_type: Optional[str] = None
    status: UploadStatus = UploadStatus.PENDING
    parts: List[PartResult] = field(default_factory=list)
