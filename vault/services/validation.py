"""Pre-queue validation of candidate upload files."""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from common.exceptions import ValidationError
from common.logging_config import get_logger
from common.types import FileHandle
from common.utils import format_file_size
from vault.models import RejectionReason

logger = get_logger(__name__)


@dataclass
class ValidationResult:
    """Accepted and rejected partitions of a candidate batch."""

    accepted: List[FileHandle] = field(default_factory=list)
    rejected: List[Tuple[FileHandle, RejectionReason]] = field(default_factory=list)

    def describe_rejections(self, max_size_bytes: int, max_count: int) -> List[str]:
        """Human-readable line per rejected file."""
        messages = {
            RejectionReason.TOO_LARGE: f"file is larger than {format_file_size(max_size_bytes)}",
            RejectionReason.TOO_MANY_FILES: f"too many files (max {max_count} per upload)",
            RejectionReason.TYPE_NOT_ALLOWED: "file type not allowed",
        }
        return [
            f"File rejected: {handle.name} ({messages[reason]})"
            for handle, reason in self.rejected
        ]

    def raise_for_rejections(self) -> None:
        """
        Raise ValidationError when any file was rejected.

        Raises:
            ValidationError: Carrying the list of (handle, reason) rejections
        """
        if self.rejected:
            names = ", ".join(f"{handle.name} ({reason.value})" for handle, reason in self.rejected)
            raise ValidationError(f"Rejected {len(self.rejected)} file(s): {names}", self.rejected)


def _normalize_extensions(allowed_extensions: Optional[Iterable[str]]) -> Optional[Tuple[str, ...]]:
    if allowed_extensions is None:
        return None
    normalized = tuple(
        ext.lower() if ext.startswith(".") else f".{ext.lower()}"
        for ext in allowed_extensions
    )
    return normalized or None


def validate(
    batch: Sequence[FileHandle],
    max_count: int,
    max_size_bytes: int,
    allowed_extensions: Optional[Iterable[str]] = None,
) -> ValidationResult:
    """
    Partition candidate files into accepted and rejected.

    Type and size are checked per file first. If more than ``max_count``
    files survive those checks, the whole drop is refused and each of them is
    rejected as TOO_MANY_FILES. A file keeps the first reason it was
    rejected for.

    Args:
        batch: Candidate files in the order the user picked them
        max_count: Maximum number of files accepted in one drop
        max_size_bytes: Maximum size of a single file
        allowed_extensions: Allowed file extensions; None or empty allows all

    Returns:
        ValidationResult with accepted files in input order
    """
    extensions = _normalize_extensions(allowed_extensions)
    result = ValidationResult()
    passed: List[FileHandle] = []

    for handle in batch:
        if extensions is not None and handle.extension not in extensions:
            result.rejected.append((handle, RejectionReason.TYPE_NOT_ALLOWED))
        elif handle.size_bytes > max_size_bytes:
            result.rejected.append((handle, RejectionReason.TOO_LARGE))
        else:
            passed.append(handle)

    if len(passed) > max_count:
        logger.info(f"Rejecting drop of {len(passed)} files [max_count={max_count}]")
        result.rejected.extend((handle, RejectionReason.TOO_MANY_FILES) for handle in passed)
    else:
        result.accepted = passed

    if result.rejected:
        logger.debug(f"Validation rejected {len(result.rejected)} of {len(batch)} file(s)")

    return result
