"""Wiring of the client components used by the CLI."""

from typing import Optional

import httpx

from cli.config import Config
from common.logging_config import get_logger
from common.types import ListView
from vault.api.client import VaultClient
from vault.api.session import Session
from vault.events import EventBus
from vault.services.batch_executor import BatchUploadExecutor
from vault.services.result_view import ResultViewController
from vault.services.stats_reader import StorageStatisticsReader
from vault.services.upload_queue import UploadQueue

logger = get_logger(__name__)


class AppContext:
    """
    Owns one instance of every client component for the lifetime of the REPL.

    The session is the shared resource: the executor fails outstanding
    uploads when it is invalidated and the REPL switches to its logged-out
    prompt.
    """

    def __init__(self, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Build the components from configuration.

        Args:
            config: CLI configuration (also persists the session token)
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.config = config
        self.session = Session(config)
        self.login_required = False
        self.session.add_invalidation_listener(self._on_session_invalidated)

        retry = config.get_retry_config()
        self.client = VaultClient(
            self.session,
            base_url=config.get_server_url(),
            timeout=config.get_timeout(),
            upload_timeout=config.get_upload_timeout(),
            max_retries=retry['max_retries'],
            retry_backoff_seconds=retry['retry_backoff_seconds'],
            transport=transport,
        )

        self.bus = EventBus()
        self.queue = UploadQueue()
        self.executor = BatchUploadExecutor(
            self.queue,
            self.client,
            self.bus,
            session=self.session,
            eviction_delay=config.get_eviction_delay(),
        )
        self.view = ResultViewController(self.client, ListView(page=1, page_size=config.get_page_size()))
        self.view.subscribe(self.bus)
        self.stats = StorageStatisticsReader(self.client)
        self.stats.subscribe(self.bus)

    def _on_session_invalidated(self, reason: str) -> None:
        logger.info(f"Session boundary reached: {reason}")
        self.login_required = True

    async def close(self) -> None:
        await self.client.close()
