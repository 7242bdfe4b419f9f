"""Client-side services built on the API layer."""

from vault.services.batch_executor import BatchUploadExecutor
from vault.services.deletion import DeletionResult, delete_files
from vault.services.result_view import ResultViewController
from vault.services.stats_reader import StorageStatisticsReader
from vault.services.upload_queue import UploadQueue
from vault.services.validation import ValidationResult, validate

__all__ = [
    "BatchUploadExecutor",
    "DeletionResult",
    "delete_files",
    "ResultViewController",
    "StorageStatisticsReader",
    "UploadQueue",
    "ValidationResult",
    "validate",
]
