"""Keeps the displayed file list or search results consistent with the server."""

from typing import Optional

from common.exceptions import InvalidStateError
from common.logging_config import get_logger
from common.types import ListView, ResultPage, SearchFilters, SearchView, ViewContext
from vault.api.client import VaultClient
from vault.events import EventBus, FilesDeleted, UploadCompleted

logger = get_logger(__name__)


class ResultViewController:
    """
    Owns the active view (a list page or a search) and its last fetched page.

    Every change to the displayed results comes from a fresh fetch; items are
    never removed or patched locally. A response is applied only if the view
    it was requested for is still the active one when it arrives, so the last
    completing fetch for the active view wins and stale ones are dropped.
    """

    def __init__(self, client: VaultClient, initial_view: Optional[ViewContext] = None):
        self.client = client
        self._view: ViewContext = initial_view or ListView()
        self._page: Optional[ResultPage] = None
        self._page_view: Optional[ViewContext] = None

    @property
    def view(self) -> ViewContext:
        return self._view

    @property
    def page(self) -> Optional[ResultPage]:
        return self._page

    def subscribe(self, bus: EventBus) -> None:
        """Re-fetch after uploads and deletes published on ``bus``."""
        bus.subscribe(UploadCompleted, self._on_upload_completed)
        bus.subscribe(FilesDeleted, self._on_files_deleted)

    async def _on_upload_completed(self, event: UploadCompleted) -> None:
        await self.refresh()

    async def _on_files_deleted(self, event: FilesDeleted) -> None:
        await self.after_delete(event.count)

    async def _fetch(self, view: ViewContext) -> ResultPage:
        if isinstance(view, ListView):
            return await self.client.list_files(view.page, view.page_size)
        return await self.client.search(view.filters)

    async def _load(self, view: ViewContext) -> Optional[ResultPage]:
        page = await self._fetch(view)
        if view != self._view:
            logger.debug(f"Dropping stale result for {view} [active={self._view}]")
            return None
        self._page = page
        self._page_view = view
        logger.debug(
            f"Applied result page [page={page.current_page}/{page.total_pages}, "
            f"items={len(page.items)}, total={page.total_count}]"
        )
        return page

    async def set_view(self, view: ViewContext) -> Optional[ResultPage]:
        """
        Switch to a new view and fetch it.

        Returns:
            The fetched page, or None if another view became active meanwhile
        """
        self._view = view
        return await self._load(view)

    async def refresh(self) -> Optional[ResultPage]:
        """Re-issue the fetch for the current view unchanged."""
        return await self._load(self._view)

    async def after_delete(self, deleted_count: int) -> Optional[ResultPage]:
        """
        Re-resolve the view after ``deleted_count`` files were deleted.

        A list page beyond the first that the deletion would leave empty is
        replaced by page 1; any other list page is re-fetched as is. A search
        is re-issued with the same filters. If the active page was never loaded
        (its fetch failed), it is re-fetched as is.
        """
        view = self._view
        if isinstance(view, ListView) and self._page is not None and self._page_view == view:
            shown = len(self._page.items)
            if view.page > 1 and shown <= deleted_count:
                logger.info(f"Page {view.page} emptied by delete, returning to page 1")
                return await self.set_view(ListView(page=1, page_size=view.page_size))
        return await self.refresh()

    async def search(self, filters: SearchFilters) -> Optional[ResultPage]:
        return await self.set_view(SearchView(filters=filters))

    async def go_to_page(self, page: int, page_size: Optional[int] = None) -> Optional[ResultPage]:
        """
        Show page ``page`` of the unfiltered list.

        Raises:
            InvalidStateError: If the page is outside the known page range
        """
        if page < 1:
            raise InvalidStateError(f"Page must be at least 1, got {page}")
        if (
            isinstance(self._view, ListView)
            and self._page is not None
            and page > max(1, self._page.total_pages)
        ):
            raise InvalidStateError(f"Page {page} is out of range (1-{self._page.total_pages})")

        if page_size is None:
            page_size = self._view.page_size if isinstance(self._view, ListView) else ListView().page_size
        return await self.set_view(ListView(page=page, page_size=page_size))

    async def next_page(self) -> Optional[ResultPage]:
        return await self.go_to_page(self._current_list_page() + 1)

    async def previous_page(self) -> Optional[ResultPage]:
        return await self.go_to_page(self._current_list_page() - 1)

    def _current_list_page(self) -> int:
        if not isinstance(self._view, ListView):
            raise InvalidStateError("Paging is only available for the file list")
        return self._view.page
