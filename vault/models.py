"""Upload queue data models: item status, per-file results and batch summaries."""

import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from common.constants import MAX_IN_FLIGHT_PROGRESS
from common.exceptions import InvalidStateError
from common.types import FileHandle


class UploadStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


# Allowed forward moves. PENDING -> ERROR happens when the session is torn
# down before the item was ever submitted.
_TRANSITIONS = {
    UploadStatus.PENDING: {UploadStatus.UPLOADING, UploadStatus.ERROR},
    UploadStatus.UPLOADING: {UploadStatus.SUCCESS, UploadStatus.ERROR},
    UploadStatus.SUCCESS: set(),
    UploadStatus.ERROR: set(),
}


class RejectionReason(str, Enum):
    TOO_LARGE = "too_large"
    TOO_MANY_FILES = "too_many_files"
    TYPE_NOT_ALLOWED = "type_not_allowed"


@dataclass(frozen=True)
class UploadResult:
    """Server outcome for one uploaded file."""

    final_name: str
    size_bytes: int
    content_hash: str
    was_deduplicated: bool = False


@dataclass(frozen=True)
class BatchResult:
    """Summary of a completed batch upload."""

    success_count: int
    deduplicated_count: int


def _new_item_id() -> str:
    return uuid.uuid4().hex[:8]


class UploadItem:
    """
    A file waiting in, or moving through, the upload queue.

    Status only moves forward; every mutation goes through one of the
    ``mark_*`` methods, which raise InvalidStateError on an illegal move.
    """

    def __init__(self, handle: FileHandle, item_id: Optional[str] = None):
        self.item_id = item_id or _new_item_id()
        self.handle = handle
        self.status = UploadStatus.PENDING
        self.progress_percent = 0
        self.result: Optional[UploadResult] = None
        self.error_message: Optional[str] = None
        self.completed_at: Optional[float] = None

    def __repr__(self) -> str:
        return (
            f"UploadItem(item_id={self.item_id}, name={self.handle.name}, "
            f"status={self.status.value}, progress={self.progress_percent})"
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in (UploadStatus.SUCCESS, UploadStatus.ERROR)

    def _transition(self, new_status: UploadStatus) -> None:
        if new_status not in _TRANSITIONS[self.status]:
            raise InvalidStateError(
                f"Cannot move upload {self.item_id} from {self.status.value} to {new_status.value}"
            )
        self.status = new_status

    def mark_uploading(self) -> None:
        self._transition(UploadStatus.UPLOADING)
        self.progress_percent = 0

    def advance_progress(self, percent: int) -> None:
        """
        Raise the progress of an uploading item.

        Values below the current progress are ignored, and progress is held
        below 100 until the server confirms the upload.
        """
        if self.status is not UploadStatus.UPLOADING:
            return
        percent = min(int(percent), MAX_IN_FLIGHT_PROGRESS)
        if percent > self.progress_percent:
            self.progress_percent = percent

    def mark_success(self, result: UploadResult) -> None:
        self._transition(UploadStatus.SUCCESS)
        self.progress_percent = 100
        self.result = result
        self.completed_at = time.monotonic()

    def mark_error(self, message: str) -> None:
        self._transition(UploadStatus.ERROR)
        self.error_message = message or "Upload failed"
        self.completed_at = time.monotonic()
