"""Configuration management for the FileVault CLI."""

import json
import os
import shutil
from pathlib import Path
from typing import Optional

from common.constants import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SERVER_URL,
    MAX_FILE_SIZE_BYTES,
    MAX_FILES_PER_DROP,
    SUCCESS_EVICTION_SECONDS,
)
from common.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / '.filevault' / 'config.json'


class Config:
    """Manages CLI configuration stored in JSON file."""

    DEFAULT_CONFIG = {
        "server_url": os.environ.get("FILEVAULT_SERVER_URL", DEFAULT_SERVER_URL),
        "timeout": 30,
        "upload_timeout": 300,
        "max_retries": 2,
        "retry_backoff_seconds": 0.5,
        "page_size": DEFAULT_PAGE_SIZE,
        "max_files": MAX_FILES_PER_DROP,
        "max_file_size_bytes": MAX_FILE_SIZE_BYTES,
        "allowed_extensions": None,
        "success_eviction_seconds": SUCCESS_EVICTION_SECONDS,
    }

    def __init__(self, config_path: Path = DEFAULT_CONFIG_PATH):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.filevault/config.json)
        """
        self.config_path = config_path
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        A corrupt file is copied to ``config.json.bak`` and replaced by defaults.

        Returns:
            Configuration dictionary
        """
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if not self.config_path.exists():
            config = self.DEFAULT_CONFIG.copy()
            self._write(config)
            return config

        try:
            with open(self.config_path, 'r') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("config root must be an object")
        except (ValueError, OSError) as e:
            backup_path = self.config_path.with_suffix('.json.bak')
            logger.warning(f"Unreadable config {self.config_path}, backing up to {backup_path}: {e}")
            try:
                shutil.copy(self.config_path, backup_path)
            except OSError as copy_error:
                logger.warning(f"Could not back up config: {copy_error}")
            return self.DEFAULT_CONFIG.copy()

        config = self.DEFAULT_CONFIG.copy()
        config.update(data)
        return config

    def _write(self, data: dict) -> None:
        try:
            with open(self.config_path, 'w') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.warning(f"Could not write config {self.config_path}: {e}")

    def save(self) -> None:
        """Save current configuration to file."""
        self._write(self.data)

    def get_auth_token(self) -> Optional[str]:
        """
        Get stored session token.

        Returns:
            Token string or None if not logged in
        """
        return self.data.get('auth_token')

    def set_auth_token(self, token: str) -> None:
        """
        Set session token and save to file.

        Args:
            token: Bearer token issued by the server at login
        """
        self.data['auth_token'] = token
        self.save()

    def clear_auth_token(self) -> None:
        """Remove the session token and save to file."""
        if self.data.pop('auth_token', None) is not None:
            self.save()

    def get_server_url(self) -> str:
        """
        Get storage service base URL.

        Returns:
            Base URL string (e.g., "http://localhost:8080")
        """
        return str(self.data.get('server_url', DEFAULT_SERVER_URL)).rstrip('/')

    def get_timeout(self) -> float:
        return float(self.data.get('timeout', 30))

    def get_upload_timeout(self) -> float:
        return float(self.data.get('upload_timeout', 300))

    def get_retry_config(self) -> dict:
        """
        Get retry configuration for idempotent reads.

        Returns:
            Dictionary with 'max_retries' and 'retry_backoff_seconds'
        """
        return {
            'max_retries': int(self.data.get('max_retries', 2)),
            'retry_backoff_seconds': float(self.data.get('retry_backoff_seconds', 0.5)),
        }

    def get_page_size(self) -> int:
        return int(self.data.get('page_size', DEFAULT_PAGE_SIZE))

    def get_upload_limits(self) -> dict:
        """
        Get upload validation limits.

        Returns:
            Dictionary with 'max_count', 'max_size_bytes' and 'allowed_extensions'
            (None when every file type is allowed)
        """
        extensions = self.data.get('allowed_extensions')
        return {
            'max_count': int(self.data.get('max_files', MAX_FILES_PER_DROP)),
            'max_size_bytes': int(self.data.get('max_file_size_bytes', MAX_FILE_SIZE_BYTES)),
            'allowed_extensions': tuple(extensions) if extensions else None,
        }

    def get_eviction_delay(self) -> float:
        return float(self.data.get('success_eviction_seconds', SUCCESS_EVICTION_SECONDS))
