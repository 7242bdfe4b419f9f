"""Command request data types for CLI."""

from dataclasses import dataclass, field
from typing import Literal, Optional

from common.types import SearchFilters


@dataclass(frozen=True)
class RegisterCommand:
    """Register a new user account."""

    username: str
    password: str
    command: Literal["register"] = "register"


@dataclass(frozen=True)
class LoginCommand:
    """Login with username and password."""

    username: str
    password: str
    command: Literal["login"] = "login"


@dataclass(frozen=True)
class LogoutCommand:
    """End the current session."""

    command: Literal["logout"] = "logout"


@dataclass(frozen=True)
class AddCommand:
    """Validate files and add them to the upload queue."""

    file_list: tuple[str, ...]
    command: Literal["add"] = "add"


@dataclass(frozen=True)
class QueueCommand:
    """Show the upload queue."""

    command: Literal["queue"] = "queue"


@dataclass(frozen=True)
class RemoveCommand:
    """Remove pending or failed items from the upload queue."""

    item_ids: tuple[str, ...]
    command: Literal["remove"] = "remove"


@dataclass(frozen=True)
class ClearQueueCommand:
    """Remove every queue item that is not uploading."""

    command: Literal["clear-queue"] = "clear-queue"


@dataclass(frozen=True)
class UploadCommand:
    """Upload all pending queue items, optionally queueing files first."""

    file_list: tuple[str, ...] = ()
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class ListCommand:
    """Show a page of the file list."""

    page: Optional[int] = None
    command: Literal["files"] = "files"


@dataclass(frozen=True)
class PageCommand:
    """Move to the next or previous page of the file list."""

    direction: Literal["next", "prev"]
    command: Literal["page"] = "page"


@dataclass(frozen=True)
class SearchCommand:
    """Search files by name, type, size and upload date."""

    filters: SearchFilters = field(default_factory=SearchFilters)
    command: Literal["search"] = "search"


@dataclass(frozen=True)
class DeleteCommand:
    """Delete files by id."""

    file_ids: tuple[int, ...]
    command: Literal["delete"] = "delete"


@dataclass(frozen=True)
class RefreshCommand:
    """Re-fetch the current list page or search."""

    command: Literal["refresh"] = "refresh"


@dataclass(frozen=True)
class StatsCommand:
    """Show storage statistics."""

    command: Literal["stats"] = "stats"


@dataclass(frozen=True)
class DashboardCommand:
    """Show statistics and the most recent files."""

    command: Literal["dashboard"] = "dashboard"


@dataclass(frozen=True)
class DownloadCommand:
    """Download file by id."""

    file_id: int
    output_path: Optional[str] = None
    command: Literal["download"] = "download"


CommandRequest = (
    RegisterCommand
    | LoginCommand
    | LogoutCommand
    | AddCommand
    | QueueCommand
    | RemoveCommand
    | ClearQueueCommand
    | UploadCommand
    | ListCommand
    | PageCommand
    | SearchCommand
    | DeleteCommand
    | RefreshCommand
    | StatsCommand
    | DashboardCommand
    | DownloadCommand
)
