"""Submits the pending part of the upload queue as one batch."""

from typing import List, Optional

from common.constants import SUCCESS_EVICTION_SECONDS
from common.exceptions import InvalidStateError, ServerError, VaultError
from common.logging_config import get_logger
from vault.api.client import VaultClient
from vault.api.session import Session
from vault.events import EventBus, UploadCompleted
from vault.models import BatchResult, UploadItem, UploadStatus
from vault.services.upload_queue import UploadQueue

logger = get_logger(__name__)


class BatchUploadExecutor:
    """
    Uploads every Pending item of a queue in a single request.

    Only one batch is in flight at a time. Server outcomes are matched to
    queue items strictly by position, since duplicate file names are legal.
    A failed request fails the whole batch.
    """

    def __init__(
        self,
        queue: UploadQueue,
        client: VaultClient,
        bus: EventBus,
        session: Optional[Session] = None,
        eviction_delay: float = SUCCESS_EVICTION_SECONDS,
    ):
        """
        Initialize the executor.

        Args:
            queue: Queue to drain
            client: API client used for the upload request
            bus: Event bus receiving UploadCompleted
            session: When given, session invalidation fails every outstanding item
            eviction_delay: Seconds successful items stay visible before eviction
        """
        self.queue = queue
        self.client = client
        self.bus = bus
        self.eviction_delay = eviction_delay
        self._in_flight = False
        self.last_publish_errors: List[Exception] = []

        if session is not None:
            session.add_invalidation_listener(self._on_session_invalidated)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def _on_session_invalidated(self, reason: str) -> None:
        self.queue.fail_outstanding(reason)

    async def submit(self) -> Optional[BatchResult]:
        """
        Upload all Pending items.

        Returns:
            BatchResult for the batch, a zero result when nothing is pending,
            or None when another submission is already in flight

        Raises:
            VaultError: The batch failed; every item of it is now in Error
            OSError: A queued file could not be read; the batch is failed likewise
            InvalidStateError: Every item was failed (e.g. by session expiry)
                before the server's answer arrived
        """
        if self._in_flight:
            logger.warning("Upload already in progress, ignoring submit")
            return None

        snapshot = self.queue.pending()
        if not snapshot:
            return BatchResult(success_count=0, deduplicated_count=0)

        self._in_flight = True
        try:
            for item in snapshot:
                item.mark_uploading()
            return await self._run_batch(snapshot)
        finally:
            self._in_flight = False
            # Cancellation or an unexpected error must not strand items in Uploading.
            self._fail_batch(snapshot, "Upload cancelled")

    async def _run_batch(self, snapshot: List[UploadItem]) -> BatchResult:
        logger.info(f"Submitting upload batch [files={len(snapshot)}]")

        def on_progress(index: int, percent: int) -> None:
            snapshot[index].advance_progress(percent)

        try:
            results = await self.client.upload([item.handle for item in snapshot], on_progress)
            if len(results) != len(snapshot):
                logger.error(
                    f"Upload response has {len(results)} outcome(s) for {len(snapshot)} file(s)"
                )
                raise ServerError(
                    f"Server returned {len(results)} result(s) for {len(snapshot)} uploaded file(s)"
                )
        except (VaultError, OSError) as e:
            self._fail_batch(snapshot, str(e) or "Upload failed")
            raise

        confirmed = []
        for item, result in zip(snapshot, results):
            # Session teardown during the request fails items before the answer lands.
            if item.status is UploadStatus.UPLOADING:
                item.mark_success(result)
                confirmed.append(result)

        if not confirmed:
            reason = snapshot[0].error_message or "Upload interrupted"
            logger.warning(f"Upload answer arrived after every item failed: {reason}")
            raise InvalidStateError(f"Upload interrupted: {reason}")

        summary = BatchResult(
            success_count=len(confirmed),
            deduplicated_count=sum(1 for result in confirmed if result.was_deduplicated),
        )
        logger.info(
            f"Upload batch completed [success={summary.success_count}, "
            f"deduplicated={summary.deduplicated_count}]"
        )

        self.queue.schedule_sweep(self.eviction_delay, snapshot)
        self.last_publish_errors = await self.bus.publish(UploadCompleted(summary))
        return summary

    def _fail_batch(self, snapshot: List[UploadItem], message: str) -> None:
        failed = 0
        for item in snapshot:
            # Session teardown may already have failed these items.
            if item.status is UploadStatus.UPLOADING:
                item.mark_error(message)
                failed += 1
        if failed:
            logger.warning(f"Upload batch failed [files={failed}]: {message}")
