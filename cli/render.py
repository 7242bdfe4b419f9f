"""Text rendering of queue, result pages and statistics for the REPL."""

from typing import Iterable, Optional

from cli.constants import GREEN, RED, RESET
from common.types import ListView, ResultPage, SearchView, StorageStatistics, ViewContext
from common.utils import format_file_size, format_percentage
from vault.models import BatchResult, UploadItem, UploadStatus


def render_queue(items: Iterable[UploadItem]) -> str:
    items = list(items)
    if not items:
        return "Upload queue is empty."

    lines = [f"Upload queue ({len(items)}):"]
    for item in items:
        status = item.status.value
        detail = ""
        if item.status is UploadStatus.UPLOADING:
            detail = f" {item.progress_percent}%"
        elif item.status is UploadStatus.SUCCESS and item.result is not None:
            detail = f" {GREEN}uploaded{' (deduplicated)' if item.result.was_deduplicated else ''}{RESET}"
        elif item.status is UploadStatus.ERROR:
            detail = f" {RED}{item.error_message}{RESET}"
        lines.append(
            f"  [{item.item_id}] {item.handle.name} ({format_file_size(item.handle.size_bytes)}) "
            f"- {status}{detail}"
        )
    return "\n".join(lines)


def render_progress_line(items: Iterable[UploadItem]) -> str:
    uploading = [item for item in items if item.status is UploadStatus.UPLOADING]
    if not uploading:
        return ""
    average = sum(item.progress_percent for item in uploading) // len(uploading)
    return f"\rUploading {len(uploading)} file(s): {GREEN}{average}%{RESET}"


def render_batch_result(result: BatchResult) -> str:
    if result.success_count == 0:
        return "No pending files to upload."
    plural = "s" if result.success_count != 1 else ""
    message = f"Upload completed! {result.success_count} file{plural} uploaded successfully"
    if result.deduplicated_count > 0:
        message += f" ({result.deduplicated_count} deduplicated)"
    return message


def describe_view(view: ViewContext) -> str:
    if isinstance(view, SearchView):
        active = view.filters.active_count
        if active == 0:
            return "Showing all files"
        return f"Search results for {active} filter{'s' if active > 1 else ''}"
    return f"File list, page {view.page}"


def render_page(page: Optional[ResultPage], view: ViewContext) -> str:
    if page is None:
        return "Results changed while loading; run 'refresh' to reload."

    if not page.items:
        if isinstance(view, SearchView):
            return "No files found matching your criteria."
        return "Your file vault is empty."

    lines = [f"{describe_view(view)} ({page.total_count} file(s)):"]
    for record in page.items:
        downloads = ""
        if record.download_count:
            downloads = f", {record.download_count} downloads"
        lines.append(
            f"  #{record.id} {record.filename}\n"
            f"    Size: {format_file_size(record.size_bytes)}, Type: {record.mime_type}{downloads}\n"
            f"    Created: {record.created_at}"
        )

    if isinstance(view, ListView) and page.total_pages > 1:
        first = (page.current_page - 1) * view.page_size + 1
        last = min(page.current_page * view.page_size, page.total_count)
        lines.append(
            f"Showing {first} to {last} of {page.total_count} files "
            f"(page {page.current_page}/{page.total_pages}, use 'next'/'prev')"
        )
    return "\n".join(lines)


def render_stats(stats: Optional[StorageStatistics]) -> str:
    if stats is None:
        return "Unable to load storage statistics."

    quota_used = round(stats.quota_used_percentage)
    state = "Almost Full" if quota_used > 90 else "Available"
    return "\n".join([
        "Storage overview:",
        f"  Storage used:   {format_file_size(stats.total_storage_used_bytes)} "
        f"of {stats.storage_quota_mb:g}MB quota ({quota_used}% used, {state})",
        f"  Space saved:    {format_file_size(stats.storage_savings_bytes)} "
        f"({format_percentage(stats.storage_savings_percentage)} deduplication savings)",
        f"  Original size:  {format_file_size(stats.original_storage_used_bytes)} "
        f"(reduced to {format_file_size(stats.total_storage_used_bytes)})",
        f"  Remaining:      {format_file_size(stats.remaining_bytes)}",
    ])
