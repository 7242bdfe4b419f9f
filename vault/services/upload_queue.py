"""Ordered upload queue with per-item status."""

import asyncio
import time
from typing import Iterable, Iterator, List, Optional

from common.exceptions import InvalidStateError
from common.logging_config import get_logger
from common.types import FileHandle
from vault.models import UploadItem, UploadStatus

logger = get_logger(__name__)


class UploadQueue:
    """
    Insertion-ordered collection of upload items.

    The queue owns item lifetime: items enter through ``enqueue`` and leave
    through ``remove``, ``clear`` or the success sweep. Position in the queue
    is what the batch executor uses to correlate server outcomes.
    """

    def __init__(self):
        self._items: List[UploadItem] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[UploadItem]:
        return iter(list(self._items))

    @property
    def items(self) -> List[UploadItem]:
        return list(self._items)

    def get(self, item_id: str) -> Optional[UploadItem]:
        for item in self._items:
            if item.item_id == item_id:
                return item
        return None

    def pending(self) -> List[UploadItem]:
        return [item for item in self._items if item.status is UploadStatus.PENDING]

    def has_status(self, status: UploadStatus) -> bool:
        return any(item.status is status for item in self._items)

    def enqueue(self, handles: Iterable[FileHandle]) -> List[UploadItem]:
        """
        Append new Pending items in arrival order.

        Args:
            handles: Validated files to queue

        Returns:
            The created items
        """
        new_items = [UploadItem(handle) for handle in handles]
        self._items.extend(new_items)
        if new_items:
            logger.info(f"Queued {len(new_items)} file(s) [queue_size={len(self._items)}]")
        return new_items

    def remove(self, item_id: str) -> UploadItem:
        """
        Remove a Pending or Error item.

        Args:
            item_id: Identifier of the item to remove

        Returns:
            The removed item

        Raises:
            InvalidStateError: If the item is unknown, uploading, or already succeeded
        """
        item = self.get(item_id)
        if item is None:
            raise InvalidStateError(f"No queued upload with id {item_id}")
        if item.status not in (UploadStatus.PENDING, UploadStatus.ERROR):
            raise InvalidStateError(
                f"Cannot remove {item.handle.name}: upload is {item.status.value}"
            )
        self._items.remove(item)
        logger.debug(f"Removed {item!r} from queue")
        return item

    def clear(self) -> int:
        """
        Drop every item that is not currently uploading.

        Returns:
            Number of items removed
        """
        before = len(self._items)
        self._items = [item for item in self._items if item.status is UploadStatus.UPLOADING]
        removed = before - len(self._items)
        logger.debug(f"Cleared {removed} item(s) from queue [remaining={len(self._items)}]")
        return removed

    def sweep_completed(self, after_delay: float, now: Optional[float] = None) -> int:
        """
        Evict Success items that completed at least ``after_delay`` seconds ago.

        Args:
            after_delay: Minimum age in seconds of a completed item
            now: Monotonic timestamp to compare against (defaults to time.monotonic())

        Returns:
            Number of evicted items
        """
        now = time.monotonic() if now is None else now
        kept = []
        evicted = 0
        for item in self._items:
            if (
                item.status is UploadStatus.SUCCESS
                and item.completed_at is not None
                and now - item.completed_at >= after_delay
            ):
                evicted += 1
            else:
                kept.append(item)
        self._items = kept
        if evicted:
            logger.debug(f"Evicted {evicted} completed upload(s)")
        return evicted

    def schedule_sweep(self, after_delay: float, items: Iterable[UploadItem]) -> asyncio.TimerHandle:
        """
        Evict the given items ``after_delay`` seconds from now if they are
        still in the queue and still successful.

        Must be called from a running event loop.
        """
        item_ids = {item.item_id for item in items}
        loop = asyncio.get_running_loop()
        return loop.call_later(after_delay, self._evict_succeeded, item_ids)

    def _evict_succeeded(self, item_ids: set) -> None:
        before = len(self._items)
        self._items = [
            item for item in self._items
            if not (item.item_id in item_ids and item.status is UploadStatus.SUCCESS)
        ]
        evicted = before - len(self._items)
        if evicted:
            logger.debug(f"Evicted {evicted} completed upload(s)")

    def fail_outstanding(self, message: str) -> int:
        """
        Move every Pending and Uploading item to Error.

        Args:
            message: Error message attached to each failed item

        Returns:
            Number of items failed
        """
        failed = 0
        for item in self._items:
            if not item.is_terminal:
                item.mark_error(message)
                failed += 1
        if failed:
            logger.warning(f"Failed {failed} outstanding upload(s): {message}")
        return failed
