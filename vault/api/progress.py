"""Byte-counting file reader used to report real upload progress."""

from pathlib import Path
from typing import Callable, Optional

from common.constants import UPLOAD_READ_SIZE_BYTES

ProgressCallback = Callable[[int, int], None]


class ProgressReader:
    """
    Binary file wrapper that reports how far the transport has read it.

    The multipart encoder pulls file parts through ``read``; every chunk it
    takes is reported as ``callback(bytes_read, total_bytes)``. ``fileno``,
    ``seek`` and ``tell`` are delegated so the encoder can size the part.
    """

    mode = 'rb'

    def __init__(self, file_path: Path, total_bytes: int, callback: Optional[ProgressCallback] = None):
        """
        Open the file for reading.

        Args:
            file_path: Path of the file to read
            total_bytes: Expected size of the file in bytes
            callback: Called with (bytes_read, total_bytes) after each read
        """
        self.file_path = file_path
        self.total_bytes = total_bytes
        self.callback = callback
        self._file = open(file_path, 'rb')

    def read(self, size: int = -1) -> bytes:
        chunk = self._file.read(size if size > 0 else UPLOAD_READ_SIZE_BYTES)
        if chunk and self.callback is not None:
            self.callback(self._file.tell(), self.total_bytes)
        return chunk

    def fileno(self) -> int:
        return self._file.fileno()

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._file.seek(offset, whence)

    def tell(self) -> int:
        return self._file.tell()

    def close(self) -> None:
        """Close the underlying file."""
        if not self._file.closed:
            self._file.close()

    def __enter__(self) -> 'ProgressReader':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def percent_of(done: int, total: int) -> int:
    """Integer percentage of ``done`` over ``total`` (0 when total is 0)."""
    if total <= 0:
        return 0
    return min(100, (done * 100) // total)
