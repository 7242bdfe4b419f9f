"""Exception hierarchy shared by the FileVault client layers."""

from typing import Optional


class VaultError(Exception):
    """
    Base exception class for all FileVault client errors.
    """
    pass


class ValidationError(VaultError):
    """
    Raised when candidate files are rejected before they enter the upload queue.
    """

    def __init__(self, message: str, rejections: Optional[list] = None):
        super().__init__(message)
        self.rejections = rejections or []


class NetworkError(VaultError):
    """
    Raised when the storage service cannot be reached or the request times out.
    """
    pass


class AuthError(VaultError):
    """
    Raised on HTTP 401 or when a request needs a session and none is active.
    """
    pass


class ServerError(VaultError):
    """
    Raised when the storage service answers with a non-2xx status or a payload
    that does not match the expected shape.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidStateError(VaultError):
    """
    Raised on an illegal operation for an upload item's current status,
    e.g. removing an item that is already uploading.
    """
    pass
