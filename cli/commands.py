"""Command handler functions for CLI operations."""

import asyncio
import sys
from pathlib import Path
from typing import Optional

from cli.config import Config
from cli.constants import DOWNLOADS_DIR, PROGRESS_REFRESH_SECONDS
from cli.context import AppContext
from cli.models import (
    AddCommand,
    ClearQueueCommand,
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
from cli.render import (
    render_batch_result,
    render_page,
    render_progress_line,
    render_queue,
    render_stats,
)
from common.constants import DASHBOARD_RECENT_FILES
from common.exceptions import InvalidStateError, VaultError
from common.logging_config import get_logger
from common.types import FileHandle, ListView
from common.utils import format_file_size
from vault.services.deletion import delete_files
from vault.services.validation import validate

logger = get_logger(__name__)


_context: Optional[AppContext] = None


def get_context() -> AppContext:
    """
    Get or create global AppContext instance.

    Returns:
        AppContext instance
    """
    global _context
    if _context is None:
        logger.debug("Creating new AppContext instance")
        _context = AppContext(Config())
    return _context


def _warnings(errors: list, what: str) -> list[str]:
    return [f"Warning: could not refresh {what}: {e}" for e in errors]


async def handle_register(cmd: RegisterCommand, ctx: Optional[AppContext] = None) -> str:
    """
    Handle 'register' command.

    Args:
        cmd: RegisterCommand with username and password
        ctx: Optional AppContext for dependency injection (testing)

    Returns:
        Success or error message
    """
    ctx = ctx or get_context()
    try:
        await ctx.client.register(cmd.username, cmd.password)
    except VaultError as e:
        return f"Registration failed: {e}"
    return f"Registration successful! You can now run: login {cmd.username} <password>"


async def handle_login(cmd: LoginCommand, ctx: Optional[AppContext] = None) -> str:
    """
    Handle 'login' command.

    Args:
        cmd: LoginCommand with username and password
        ctx: Optional AppContext for dependency injection (testing)

    Returns:
        Success or error message
    """
    ctx = ctx or get_context()
    try:
        username = await ctx.client.login(cmd.username, cmd.password)
    except VaultError as e:
        return f"Login failed: {e}"
    ctx.login_required = False
    return f"Login successful! Logged in as {username}."


async def handle_logout(cmd: LogoutCommand, ctx: Optional[AppContext] = None) -> str:
    ctx = ctx or get_context()
    ctx.session.end()
    return "Logged out."


async def handle_add(cmd: AddCommand, ctx: Optional[AppContext] = None) -> str:
    """
    Handle 'add' command: validate files and queue the accepted ones.

    Args:
        cmd: AddCommand with file_list
        ctx: Optional AppContext for dependency injection (testing)

    Returns:
        One line per rejected file followed by the queued files
    """
    ctx = ctx or get_context()
    logger.info(f"Executing add command: {len(cmd.file_list)} file(s)")

    lines = []
    handles = []
    for file_path in cmd.file_list:
        try:
            handles.append(FileHandle.from_path(file_path))
        except OSError as e:
            lines.append(f"Error: {e}")

    limits = ctx.config.get_upload_limits()
    result = validate(handles, **limits)
    lines.extend(result.describe_rejections(limits['max_size_bytes'], limits['max_count']))

    queued = ctx.queue.enqueue(result.accepted)
    if queued:
        lines.append(f"Queued {len(queued)} file(s):")
        lines.extend(
            f"  [{item.item_id}] {item.handle.name} ({format_file_size(item.handle.size_bytes)})"
            for item in queued
        )
    elif not lines:
        lines.append("No files queued.")
    return "\n".join(lines)


async def handle_queue(cmd: QueueCommand, ctx: Optional[AppContext] = None) -> str:
    ctx = ctx or get_context()
    return render_queue(ctx.queue)


async def handle_remove(cmd: RemoveCommand, ctx: Optional[AppContext] = None) -> str:
    """
    Handle 'remove' command.

    Args:
        cmd: RemoveCommand with queue item ids
        ctx: Optional AppContext for dependency injection (testing)

    Returns:
        One line per item id
    """
    ctx = ctx or get_context()
    lines = []
    for item_id in cmd.item_ids:
        try:
            item = ctx.queue.remove(item_id)
        except InvalidStateError as e:
            lines.append(f"Error: {e}")
            continue
        lines.append(f"Removed: {item.handle.name}")
    return "\n".join(lines)


async def handle_clear_queue(cmd: ClearQueueCommand, ctx: Optional[AppContext] = None) -> str:
    ctx = ctx or get_context()
    removed = ctx.queue.clear()
    return f"Removed {removed} item(s) from the upload queue."


async def _show_upload_progress(ctx: AppContext) -> None:
    while True:
        line = render_progress_line(ctx.queue)
        if line:
            sys.stdout.write(line)
            sys.stdout.flush()
        await asyncio.sleep(PROGRESS_REFRESH_SECONDS)


async def handle_upload(cmd: UploadCommand, ctx: Optional[AppContext] = None) -> str:
    """
    Handle 'upload' command: submit every pending queue item as one batch.

    Args:
        cmd: UploadCommand, optionally with files to queue first
        ctx: Optional AppContext for dependency injection (testing)

    Returns:
        Upload summary or error message
    """
    ctx = ctx or get_context()
    lines = []
    if cmd.file_list:
        lines.append(await handle_add(AddCommand(file_list=cmd.file_list), ctx))

    if not ctx.session.is_active:
        lines.append("Error: Not logged in. Please run: login <username> <password>")
        return "\n".join(lines)

    progress_task = asyncio.create_task(_show_upload_progress(ctx))
    try:
        result = await ctx.executor.submit()
    except (VaultError, OSError) as e:
        lines.append(f"Upload failed: {e}")
        return "\n".join(lines)
    finally:
        progress_task.cancel()
        try:
            await progress_task
        except asyncio.CancelledError:
            pass
        sys.stdout.write("\r" + " " * 60 + "\r")
        sys.stdout.flush()

    if result is None:
        lines.append("An upload is already in progress.")
        return "\n".join(lines)

    lines.append(render_batch_result(result))
    lines.extend(_warnings(ctx.executor.last_publish_errors, "results"))
    return "\n".join(lines)


async def handle_list(cmd: ListCommand, ctx: Optional[AppContext] = None) -> str:
    """
    Handle 'files' command.

    Args:
        cmd: ListCommand with optional page number
        ctx: Optional AppContext for dependency injection (testing)

    Returns:
        Formatted page of files
    """
    ctx = ctx or get_context()
    logger.info(f"Executing files command: page={cmd.page}")
    try:
        if cmd.page is None:
            page = await ctx.view.set_view(ListView(page=1, page_size=ctx.config.get_page_size()))
        else:
            page = await ctx.view.go_to_page(cmd.page)
    except VaultError as e:
        return f"Failed to load files: {e}"
    return render_page(page, ctx.view.view)


async def handle_page(cmd: PageCommand, ctx: Optional[AppContext] = None) -> str:
    ctx = ctx or get_context()
    try:
        if cmd.direction == "next":
            page = await ctx.view.next_page()
        else:
            page = await ctx.view.previous_page()
    except VaultError as e:
        return f"Error: {e}"
    return render_page(page, ctx.view.view)


async def handle_search(cmd: SearchCommand, ctx: Optional[AppContext] = None) -> str:
    """
    Handle 'search' command.

    Args:
        cmd: SearchCommand with filters
        ctx: Optional AppContext for dependency injection (testing)

    Returns:
        Formatted search results
    """
    ctx = ctx or get_context()
    logger.info(f"Executing search command: filters={cmd.filters.to_params()}")
    try:
        page = await ctx.view.search(cmd.filters)
    except VaultError as e:
        return f"Search failed: {e}"
    return render_page(page, ctx.view.view)


async def handle_delete(cmd: DeleteCommand, ctx: Optional[AppContext] = None) -> str:
    """
    Handle 'delete' command.

    Args:
        cmd: DeleteCommand with file ids
        ctx: Optional AppContext for dependency injection (testing)

    Returns:
        Deletion summary followed by the refreshed results
    """
    ctx = ctx or get_context()
    try:
        result = await delete_files(ctx.client, ctx.bus, cmd.file_ids)
    except VaultError as e:
        return f"Delete failed: {e}"

    lines = [f"Deleted {len(result.deleted)} file(s)."]
    lines.extend(_warnings(result.refresh_errors, "results"))
    if ctx.view.page is not None:
        lines.append(render_page(ctx.view.page, ctx.view.view))
    return "\n".join(lines)


async def handle_refresh(cmd: RefreshCommand, ctx: Optional[AppContext] = None) -> str:
    ctx = ctx or get_context()
    try:
        page = await ctx.view.refresh()
    except VaultError as e:
        return f"Refresh failed: {e}"
    return render_page(page, ctx.view.view)


async def handle_stats(cmd: StatsCommand, ctx: Optional[AppContext] = None) -> str:
    ctx = ctx or get_context()
    try:
        stats = await ctx.stats.fetch()
    except VaultError as e:
        return f"Failed to fetch statistics: {e}"
    return render_stats(stats)


async def handle_dashboard(cmd: DashboardCommand, ctx: Optional[AppContext] = None) -> str:
    """
    Handle 'dashboard' command: statistics and most recent files, fetched concurrently.

    Args:
        cmd: DashboardCommand
        ctx: Optional AppContext for dependency injection (testing)

    Returns:
        Formatted overview
    """
    ctx = ctx or get_context()
    try:
        stats, recent = await asyncio.gather(
            ctx.stats.fetch(),
            ctx.client.list_files(1, DASHBOARD_RECENT_FILES),
        )
    except VaultError as e:
        return f"Failed to load dashboard: {e}"

    lines = [render_stats(stats), "", "Recent files:"]
    if not recent.items:
        lines.append("  No files uploaded yet. Run: upload <file>")
    for record in recent.items:
        lines.append(f"  #{record.id} {record.filename} ({format_file_size(record.size_bytes)})")
    return "\n".join(lines)


def _resolve_download_path(ctx: AppContext, file_id: int, output_path: Optional[str]) -> Path:
    filename = f"file-{file_id}"
    if ctx.view.page is not None:
        for record in ctx.view.page.items:
            if record.id == file_id:
                filename = record.filename
                break

    if not output_path:
        return Path(DOWNLOADS_DIR) / filename
    destination = Path(output_path).expanduser()
    if destination.is_dir():
        destination = destination / filename
    return destination


async def handle_download(cmd: DownloadCommand, ctx: Optional[AppContext] = None) -> str:
    """
    Handle 'download' command.

    Args:
        cmd: DownloadCommand with file id and optional output_path
        ctx: Optional AppContext for dependency injection (testing)

    Returns:
        Success or error message with download details
    """
    ctx = ctx or get_context()
    destination = _resolve_download_path(ctx, cmd.file_id, cmd.output_path)
    logger.info(f"Executing download command: file_id={cmd.file_id} destination={destination}")

    def show_progress(done: int, total: int) -> None:
        if total > 0:
            sys.stdout.write(
                f"\rDownloading {destination.name}: {format_file_size(done)} / {format_file_size(total)}"
            )
        else:
            sys.stdout.write(f"\rDownloading {destination.name}: {format_file_size(done)}")
        sys.stdout.flush()

    try:
        written = await ctx.client.download_file(cmd.file_id, destination, show_progress)
    except VaultError as e:
        return f"Download failed: {e}"
    except OSError as e:
        return f"Error writing file: {e}"
    finally:
        sys.stdout.write("\n")
        sys.stdout.flush()

    return f"Downloaded: {destination.name} ({format_file_size(written)})\nSaved to: {destination.absolute()}"
