"""File deletion with mutation notification."""

from dataclasses import dataclass, field
from typing import Iterable, List

from common.exceptions import VaultError
from common.logging_config import get_logger
from vault.api.client import VaultClient
from vault.events import EventBus, FilesDeleted

logger = get_logger(__name__)


@dataclass
class DeletionResult:
    deleted: List[int] = field(default_factory=list)
    refresh_errors: List[Exception] = field(default_factory=list)


async def delete_files(client: VaultClient, bus: EventBus, file_ids: Iterable[int]) -> DeletionResult:
    """
    Delete files one by one and publish FilesDeleted for those that succeeded.

    Deletion stops at the first failure. The ids deleted before it are still
    published so subscribers re-fetch, then the failure is re-raised.

    Args:
        client: API client
        bus: Event bus receiving FilesDeleted
        file_ids: Ids of the files to delete

    Returns:
        DeletionResult with the deleted ids and any subscriber failures

    Raises:
        VaultError: The first deletion failure
    """
    result = DeletionResult()
    failure = None

    for file_id in file_ids:
        try:
            await client.delete_file(file_id)
        except VaultError as e:
            logger.warning(f"Delete failed [file_id={file_id}]: {e}")
            failure = e
            break
        result.deleted.append(file_id)

    if result.deleted:
        result.refresh_errors = await bus.publish(FilesDeleted(tuple(result.deleted)))

    if failure is not None:
        raise failure
    return result
