"""Command parser for CLI input."""

import re
import shlex
from datetime import datetime
from typing import Optional

from cli.constants import MIME_TYPE_ALIASES, SEARCH_OPTIONS
from cli.models import (
    AddCommand,
    ClearQueueCommand,
    CommandRequest,
    DashboardCommand,
    DeleteCommand,
    DownloadCommand,
    ListCommand,
    LoginCommand,
    LogoutCommand,
    PageCommand,
    QueueCommand,
    RefreshCommand,
    RegisterCommand,
    RemoveCommand,
    SearchCommand,
    StatsCommand,
    UploadCommand,
)
from common.types import SearchFilters


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


_SIZE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*(b|kb|kib|mb|mib|gb|gib)?$", re.IGNORECASE)
_SIZE_UNITS = {
    None: 1,
    "b": 1,
    "kb": 1024,
    "kib": 1024,
    "mb": 1024 ** 2,
    "mib": 1024 ** 2,
    "gb": 1024 ** 3,
    "gib": 1024 ** 3,
}


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0].lower()
    args = tokens[1:]

    if command_name == "register":
        return _parse_credentials(args, "register", RegisterCommand)
    elif command_name == "login":
        return _parse_credentials(args, "login", LoginCommand)
    elif command_name == "logout":
        return _no_args(args, "logout", LogoutCommand())
    elif command_name == "add":
        if not args:
            raise ParseError("add requires at least one file")
        return AddCommand(file_list=tuple(args))
    elif command_name == "queue":
        return _no_args(args, "queue", QueueCommand())
    elif command_name == "remove":
        if not args:
            raise ParseError("remove requires at least one queue item id")
        return RemoveCommand(item_ids=tuple(args))
    elif command_name == "clear-queue":
        return _no_args(args, "clear-queue", ClearQueueCommand())
    elif command_name == "upload":
        return UploadCommand(file_list=tuple(args))
    elif command_name == "files":
        return _parse_files(args)
    elif command_name in ("next", "prev"):
        return _no_args(args, command_name, PageCommand(direction=command_name))
    elif command_name == "search":
        return SearchCommand(filters=parse_search_filters(args))
    elif command_name == "delete":
        return _parse_delete(args)
    elif command_name == "refresh":
        return _no_args(args, "refresh", RefreshCommand())
    elif command_name == "stats":
        return _no_args(args, "stats", StatsCommand())
    elif command_name == "dashboard":
        return _no_args(args, "dashboard", DashboardCommand())
    elif command_name == "download":
        return _parse_download(args)
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _no_args(args: list[str], name: str, command: CommandRequest) -> CommandRequest:
    if args:
        raise ParseError(f"{name} takes no arguments")
    return command


def _parse_credentials(args: list[str], name: str, command_type):
    """Parse '<command> <username> <password>'."""
    if len(args) != 2:
        raise ParseError(f"{name} requires exactly 2 arguments: <username> <password>")

    username, password = args
    return command_type(username=username, password=password)


def _parse_positive_int(value: str, what: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise ParseError(f"Invalid {what}: {value}")
    if number < 1:
        raise ParseError(f"Invalid {what}: {value}")
    return number


def _parse_files(args: list[str]) -> ListCommand:
    """Parse 'files [page]' command."""
    if len(args) > 1:
        raise ParseError("files takes at most one argument: [page]")
    if not args:
        return ListCommand()
    return ListCommand(page=_parse_positive_int(args[0], "page number"))


def _parse_delete(args: list[str]) -> DeleteCommand:
    """Parse 'delete <file-id> [file-id ...]' command."""
    if not args:
        raise ParseError("delete requires at least one file id")
    return DeleteCommand(file_ids=tuple(_parse_positive_int(arg, "file id") for arg in args))


def _parse_download(args: list[str]) -> DownloadCommand:
    """Parse 'download <file-id> [output_path]' command."""
    if not 1 <= len(args) <= 2:
        raise ParseError("download requires 1 or 2 arguments: <file-id> [output_path]")

    file_id = _parse_positive_int(args[0], "file id")
    output_path = args[1] if len(args) > 1 else None
    return DownloadCommand(file_id=file_id, output_path=output_path)


def parse_size(value: str) -> int:
    """
    Parse a size such as '500', '10KB' or '1.5MiB' into bytes.

    Raises:
        ParseError: If the value is not a size
    """
    match = _SIZE_PATTERN.match(value.strip())
    if not match:
        raise ParseError(f"Invalid size: {value}")
    number, unit = match.groups()
    return int(float(number) * _SIZE_UNITS[unit.lower() if unit else None])


def _parse_date(value: str) -> str:
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise ParseError(f"Invalid date (expected YYYY-MM-DD): {value}")
    return value


def parse_search_filters(args: list[str]) -> SearchFilters:
    """
    Parse 'search [name] [--type T] [--min-size S] [--max-size S] [--from D] [--to D]'.

    Bare words form the filename filter. With no arguments every file matches.
    """
    name_parts = []
    options: dict[str, Optional[str]] = {}
    index = 0

    while index < len(args):
        arg = args[index]
        if arg.startswith("--"):
            if index + 1 >= len(args):
                raise ParseError(f"{arg} requires a value")
            options[arg] = args[index + 1]
            index += 2
            continue
        name_parts.append(arg)
        index += 1

    unknown = set(options) - set(SEARCH_OPTIONS)
    if unknown:
        raise ParseError(f"Unknown search option: {sorted(unknown)[0]}")

    mime_type = options.get("--type")
    if mime_type is not None:
        mime_type = MIME_TYPE_ALIASES.get(mime_type.lower(), mime_type)

    min_size = parse_size(options["--min-size"]) if "--min-size" in options else None
    max_size = parse_size(options["--max-size"]) if "--max-size" in options else None
    if min_size is not None and max_size is not None and min_size > max_size:
        raise ParseError("--min-size cannot be larger than --max-size")

    start_date = _parse_date(options["--from"]) if "--from" in options else None
    end_date = _parse_date(options["--to"]) if "--to" in options else None
    if start_date and end_date and start_date > end_date:
        raise ParseError("--from cannot be after --to")

    return SearchFilters(
        filename=" ".join(name_parts) or None,
        mime_type=mime_type,
        min_size_bytes=min_size,
        max_size_bytes=max_size,
        start_date=start_date,
        end_date=end_date,
    )
