"""Shared data type definitions (FileHandle, FileRecord, ResultPage, views, statistics)."""

import mimetypes
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from common.constants import DEFAULT_MIME_TYPE, DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class FileHandle:
    """
    A local file the user picked for upload.
    """
    path: Path
    name: str
    size_bytes: int
    mime_type: str

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "FileHandle":
        """
        Build a handle by inspecting a local file.

        Args:
            path: Path to an existing regular file

        Returns:
            FileHandle with size from the filesystem and a guessed MIME type

        Raises:
            FileNotFoundError: If the path does not exist
            IsADirectoryError: If the path is not a regular file
        """
        file_path = Path(path).expanduser()
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        if not file_path.is_file():
            raise IsADirectoryError(f"Not a file: {path}")

        mime_type, _ = mimetypes.guess_type(file_path.name)
        return cls(
            path=file_path,
            name=file_path.name,
            size_bytes=os.path.getsize(file_path),
            mime_type=mime_type or DEFAULT_MIME_TYPE,
        )

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lower()


@dataclass(frozen=True)
class FileRecord:
    """
    Server-side snapshot of a stored file. Never mutated by the client.
    """
    id: int
    filename: str
    size_bytes: int
    mime_type: str
    created_at: str
    download_count: Optional[int] = None
    is_public: Optional[bool] = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResultPage:
    """
    One fetched page of file records together with its pagination metadata.
    """
    items: tuple[FileRecord, ...]
    current_page: int
    total_pages: int
    total_count: int

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class SearchFilters:
    """Search criteria; empty fields are not sent to the server."""

    filename: Optional[str] = None
    mime_type: Optional[str] = None
    min_size_bytes: Optional[int] = None
    max_size_bytes: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    def to_params(self) -> dict:
        """
        Build query parameters, omitting absent and empty values.

        Returns:
            Dictionary of query parameters with string values
        """
        params = {}
        for name, value in vars(self).items():
            if value is None or value == "":
                continue
            params[name] = str(value)
        return params

    @property
    def active_count(self) -> int:
        return len(self.to_params())


@dataclass(frozen=True)
class ListView:
    """Page ``page`` of the unfiltered file list."""

    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class SearchView:
    """Results of a search with the given filters."""

    filters: SearchFilters = field(default_factory=SearchFilters)


ViewContext = Union[ListView, SearchView]


@dataclass(frozen=True)
class StorageStatistics:
    """
    Aggregate storage counters reported by the service.
    """
    total_storage_used_bytes: int
    original_storage_used_bytes: int
    storage_savings_bytes: int
    storage_savings_percentage: float
    storage_quota_mb: float
    quota_used_percentage: float

    @property
    def quota_bytes(self) -> int:
        return int(self.storage_quota_mb * 1024 * 1024)

    @property
    def remaining_bytes(self) -> int:
        return max(0, self.quota_bytes - self.total_storage_used_bytes)
