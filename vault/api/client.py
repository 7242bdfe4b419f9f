"""Async HTTP client for the FileVault storage service."""

import asyncio
import uuid
from contextlib import ExitStack
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import httpx
from pydantic import ValidationError as SchemaError

from common.constants import DEFAULT_SERVER_URL, DOWNLOAD_CHUNK_SIZE_BYTES
from common.exceptions import AuthError, NetworkError, ServerError
from common.logging_config import get_logger
from common.types import FileHandle, ResultPage, SearchFilters, StorageStatistics
from vault.api.progress import ProgressReader, percent_of
from vault.api.schemas import FileListResponse, LoginResponse, StatsResponse, UploadOutcome
from vault.api.session import Session
from vault.models import UploadResult

logger = get_logger(__name__)

FileProgressCallback = Callable[[int, int], None]


class VaultClient:
    """HTTP client for the storage service API with session handling and error mapping."""

    def __init__(
        self,
        session: Session,
        base_url: str = DEFAULT_SERVER_URL,
        timeout: float = 30.0,
        upload_timeout: float = 30.0,
        max_retries: int = 2,
        retry_backoff_seconds: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            session: Authentication session shared by every request
            base_url: Storage service base URL
            timeout: Default request timeout in seconds
            upload_timeout: Base timeout for batch uploads, extended by payload size
            max_retries: Retry attempts for idempotent reads
            retry_backoff_seconds: First retry delay, doubled on each attempt
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.session = session
        self.base_url = base_url
        self.upload_timeout = upload_timeout
        self.max_retries = max_retries
        self.retry_backoff_seconds = retry_backoff_seconds
        self.http = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        logger.info(f"Initialized VaultClient [base_url={base_url}]")

    def _calculate_upload_timeout(self, total_bytes: int) -> float:
        """
        Calculate timeout for an upload based on payload size.

        Returns:
            Timeout in seconds (base upload timeout + 0.1s per MB)
        """
        size_mb = total_bytes / (1024 * 1024)
        return self.upload_timeout + size_mb * 0.1

    def _error_message(self, response: httpx.Response, default: str) -> str:
        """
        Extract a user-facing message from an error response.

        JSON bodies are searched for ``error``, ``detail`` or ``message``;
        otherwise the raw text is used, falling back to ``default``.
        """
        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict):
            for key in ('error', 'detail', 'message'):
                if data.get(key):
                    return str(data[key])

        text = response.text.strip() if response.text else ''
        return text or default

    def _raise_for_status(self, response: httpx.Response, default_error: str, authenticated: bool) -> None:
        if response.status_code == 401:
            message = self._error_message(response, "Authentication required")
            if authenticated:
                self.session.invalidate("Session expired. Please log in again.")
                raise AuthError("Authentication required. Please log in again.")
            raise AuthError(message)

        if not response.is_success:
            raise ServerError(self._error_message(response, default_error), response.status_code)

    async def _request(
        self,
        method: str,
        endpoint: str,
        default_error: str,
        authenticated: bool = True,
        max_retries: int = 0,
        **kwargs
    ) -> httpx.Response:
        """
        Make an HTTP request, retrying 5xx answers and transport failures.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            default_error: Message used when an error response has no body
            authenticated: Attach the bearer token and treat 401 as session expiry
            max_retries: Retry attempts (0 for non-idempotent calls)
            **kwargs: Additional arguments passed to httpx

        Returns:
            Successful HTTP response

        Raises:
            AuthError: On 401, or when no session is active for an authenticated call
            NetworkError: If the service cannot be reached
            ServerError: On any other non-2xx response
        """
        request_id = str(uuid.uuid4())
        headers = dict(kwargs.pop('headers', None) or {})
        headers['X-Request-ID'] = request_id
        if authenticated:
            headers.update(self.session.auth_header())

        logger.debug(f"Making request: {method} {endpoint} [request_id={request_id}]")

        for attempt in range(max_retries + 1):
            delay = self.retry_backoff_seconds * (2 ** attempt)
            try:
                response = await self.http.request(method, endpoint, headers=headers, **kwargs)
            except httpx.TimeoutException as e:
                if attempt < max_retries:
                    logger.warning(
                        f"Timeout (attempt {attempt + 1}/{max_retries + 1}): {method} {endpoint}, "
                        f"retrying in {delay}s [request_id={request_id}]"
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(f"Request timed out: {method} {endpoint} [request_id={request_id}]")
                raise NetworkError("Request timed out. Server may be overloaded.") from e
            except httpx.TransportError as e:
                if attempt < max_retries:
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): {method} {endpoint} "
                        f"error={type(e).__name__}, retrying in {delay}s [request_id={request_id}]"
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.error(f"Network error: {method} {endpoint} error={e} [request_id={request_id}]")
                raise NetworkError("Cannot connect to the storage server. Is it running?") from e

            logger.debug(
                f"Response received: {method} {endpoint} status={response.status_code} [request_id={request_id}]"
            )

            if response.status_code >= 500 and attempt < max_retries:
                logger.warning(
                    f"Server error (attempt {attempt + 1}/{max_retries + 1}): {method} {endpoint} "
                    f"status={response.status_code}, retrying in {delay}s [request_id={request_id}]"
                )
                await asyncio.sleep(delay)
                continue

            if not response.is_success:
                logger.warning(
                    f"Request failed: {method} {endpoint} status={response.status_code} [request_id={request_id}]"
                )
            self._raise_for_status(response, default_error, authenticated)
            return response

        raise NetworkError("Max retries exceeded")

    def _parse_page(self, response: httpx.Response, what: str) -> ResultPage:
        try:
            return FileListResponse.model_validate(response.json()).to_page()
        except (ValueError, SchemaError) as e:
            logger.error(f"Malformed {what} response: {e}")
            raise ServerError(f"Malformed {what} response from server", response.status_code) from e

    async def register(self, username: str, password: str) -> None:
        """
        Register a new user account.

        Args:
            username: Username for new account
            password: Password for new account
        """
        logger.info(f"Attempting to register user: {username}")
        await self._request(
            'POST', '/register', "Registration failed",
            authenticated=False,
            json={'username': username, 'password': password},
        )
        logger.info(f"Registration successful for user: {username}")

    async def login(self, username: str, password: str) -> str:
        """
        Log in and start the session.

        Args:
            username: Username
            password: Password

        Returns:
            The username reported by the server
        """
        logger.info(f"Attempting to login user: {username}")
        response = await self._request(
            'POST', '/login', "Login failed",
            authenticated=False,
            json={'username': username, 'password': password},
        )
        try:
            data = LoginResponse.model_validate(response.json())
        except (ValueError, SchemaError) as e:
            raise ServerError("Malformed login response from server", response.status_code) from e

        name = data.username or username
        self.session.start(data.token, name)
        logger.info(f"Login successful for user: {name}")
        return name

    async def upload(
        self,
        handles: Sequence[FileHandle],
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> List[UploadResult]:
        """
        Upload files as a single multipart request.

        Args:
            handles: Files to upload; part order follows this sequence
            on_progress: Called with (file_index, percent) as the transport reads each file

        Returns:
            Per-file results in submission order, as returned by the server

        Raises:
            AuthError, NetworkError, ServerError: The batch failed as a whole
        """
        total_bytes = sum(handle.size_bytes for handle in handles)
        logger.info(f"Uploading batch of {len(handles)} file(s) [bytes={total_bytes}]")

        with ExitStack() as stack:
            parts = []
            for index, handle in enumerate(handles):
                callback = None
                if on_progress is not None:
                    callback = self._file_progress(index, on_progress)
                reader = stack.enter_context(ProgressReader(handle.path, handle.size_bytes, callback))
                parts.append(('file', (handle.name, reader, handle.mime_type)))

            response = await self._request(
                'POST', '/upload', "Upload failed",
                files=parts,
                timeout=self._calculate_upload_timeout(total_bytes),
            )

        try:
            body = response.json()
            entries = body if isinstance(body, list) else [body]
            outcomes = [UploadOutcome.model_validate(entry) for entry in entries]
        except (ValueError, SchemaError) as e:
            logger.error(f"Malformed upload response: {e}")
            raise ServerError("Malformed upload response from server", response.status_code) from e

        return [outcome.to_result() for outcome in outcomes]

    @staticmethod
    def _file_progress(index: int, on_progress: Callable[[int, int], None]) -> FileProgressCallback:
        def report(done: int, total: int) -> None:
            on_progress(index, percent_of(done, total))
        return report

    async def list_files(self, page: int, page_size: int) -> ResultPage:
        """
        Fetch one page of the unfiltered file list.

        Args:
            page: 1-based page number
            page_size: Number of files per page

        Returns:
            ResultPage built from the response
        """
        response = await self._request(
            'GET', '/files', "Failed to fetch files",
            max_retries=self.max_retries,
            params={'page': page, 'pageSize': page_size},
        )
        return self._parse_page(response, "file list")

    async def search(self, filters: SearchFilters) -> ResultPage:
        """
        Search files; empty filter fields are omitted from the query.

        Args:
            filters: Search criteria

        Returns:
            ResultPage built from the response
        """
        response = await self._request(
            'GET', '/search', "Search failed",
            max_retries=self.max_retries,
            params=filters.to_params(),
        )
        return self._parse_page(response, "search")

    async def delete_file(self, file_id: int) -> None:
        """Delete a file by id."""
        await self._request('DELETE', f'/files/{file_id}/delete', "Delete failed")
        logger.info(f"Deleted file [file_id={file_id}]")

    async def get_stats(self) -> StorageStatistics:
        """
        Fetch aggregate storage statistics.

        Returns:
            StorageStatistics snapshot
        """
        response = await self._request('GET', '/stats', "Failed to fetch statistics")
        try:
            return StatsResponse.model_validate(response.json()).to_statistics()
        except (ValueError, SchemaError) as e:
            raise ServerError("Malformed statistics response from server", response.status_code) from e

    async def download_file(
        self,
        file_id: int,
        destination: Path,
        on_progress: Optional[FileProgressCallback] = None,
    ) -> int:
        """
        Stream a file to disk.

        Args:
            file_id: Id of the file to download
            destination: Output file path; parent directories are created
            on_progress: Called with (bytes_written, total_bytes); total is 0 when unknown

        Returns:
            Number of bytes written
        """
        headers = {'X-Request-ID': str(uuid.uuid4())}
        headers.update(self.session.auth_header())

        try:
            async with self.http.stream('GET', f'/files/{file_id}/download', headers=headers) as response:
                if not response.is_success:
                    await response.aread()
                    self._raise_for_status(response, "Download failed", authenticated=True)

                total_size = int(response.headers.get('Content-Length', 0))
                written = 0
                destination.parent.mkdir(parents=True, exist_ok=True)
                with open(destination, 'wb') as f:
                    async for chunk in response.aiter_bytes(chunk_size=DOWNLOAD_CHUNK_SIZE_BYTES):
                        f.write(chunk)
                        written += len(chunk)
                        if on_progress is not None:
                            on_progress(written, total_size)
        except httpx.TimeoutException as e:
            raise NetworkError("Request timed out. Server may be overloaded.") from e
        except httpx.TransportError as e:
            raise NetworkError("Cannot connect to the storage server. Is it running?") from e

        logger.info(f"Downloaded file [file_id={file_id}, bytes={written}, path={destination}]")
        return written

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.http.aclose()
