"""Storage statistics fetcher."""

from typing import Optional

from common.exceptions import VaultError
from common.logging_config import get_logger
from common.types import StorageStatistics
from vault.api.client import VaultClient
from vault.events import EventBus, FilesDeleted, UploadCompleted

logger = get_logger(__name__)


class StorageStatisticsReader:
    """Fetches storage counters on demand and remembers the latest snapshot."""

    def __init__(self, client: VaultClient):
        self.client = client
        self.latest: Optional[StorageStatistics] = None

    def subscribe(self, bus: EventBus) -> None:
        bus.subscribe(UploadCompleted, self._on_mutation)
        bus.subscribe(FilesDeleted, self._on_mutation)

    async def fetch(self) -> StorageStatistics:
        """
        Fetch the current statistics. Failures propagate and are not retried.

        Returns:
            StorageStatistics snapshot
        """
        stats = await self.client.get_stats()
        self.latest = stats
        return stats

    async def _on_mutation(self, event) -> None:
        # Nobody awaits this refresh, so a failure only leaves ``latest`` stale.
        try:
            await self.fetch()
        except VaultError as e:
            logger.warning(f"Could not refresh storage statistics after {type(event).__name__}: {e}")
