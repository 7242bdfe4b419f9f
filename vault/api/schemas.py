"""Pydantic schemas for storage service responses."""

from typing import List, Optional

from pydantic import BaseModel

from common.constants import DEFAULT_MIME_TYPE
from common.types import FileRecord, ResultPage, StorageStatistics
from vault.models import UploadResult


class LoginResponse(BaseModel):
    """Response model for login."""
    token: str
    username: Optional[str] = None


class UploadOutcome(BaseModel):
    """Per-file entry of the upload response."""
    filename: str
    size: int
    hash: str
    deduplicated: bool = False
    message: Optional[str] = None

    def to_result(self) -> UploadResult:
        return UploadResult(
            final_name=self.filename,
            size_bytes=self.size,
            content_hash=self.hash,
            was_deduplicated=self.deduplicated,
        )


class FileInfo(BaseModel):
    """Response model for file metadata."""
    id: int
    filename: str
    size_bytes: int
    mime_type: str = DEFAULT_MIME_TYPE
    created_at: str
    is_public: Optional[bool] = None
    download_count: Optional[int] = None
    tags: Optional[List[str]] = None

    def to_record(self) -> FileRecord:
        return FileRecord(
            id=self.id,
            filename=self.filename,
            size_bytes=self.size_bytes,
            mime_type=self.mime_type,
            created_at=self.created_at,
            download_count=self.download_count,
            is_public=self.is_public,
            tags=tuple(self.tags or ()),
        )


class Pagination(BaseModel):
    currentPage: int
    totalPages: int
    totalFiles: int


class FileListResponse(BaseModel):
    """Response model for list and search."""
    files: List[FileInfo]
    pagination: Optional[Pagination] = None

    def to_page(self) -> ResultPage:
        items = tuple(info.to_record() for info in self.files)
        if self.pagination is None:
            return ResultPage(items=items, current_page=1, total_pages=1, total_count=len(items))
        return ResultPage(
            items=items,
            current_page=self.pagination.currentPage,
            total_pages=self.pagination.totalPages,
            total_count=self.pagination.totalFiles,
        )


class StatsResponse(BaseModel):
    """Response model for storage statistics."""
    total_storage_used_bytes: int
    original_storage_used_bytes: int
    storage_savings_bytes: int
    storage_savings_percentage: float
    storage_quota_mb: float
    quota_used_percentage: float

    def to_statistics(self) -> StorageStatistics:
        return StorageStatistics(**self.model_dump())
