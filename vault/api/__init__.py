"""HTTP access to the storage service."""

from vault.api.client import VaultClient
from vault.api.session import Session

__all__ = [
    "VaultClient",
    "Session",
]
