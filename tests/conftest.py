"""Shared pytest fixtures for all tests."""

import hashlib
import json
import re
from pathlib import Path

import httpx
import pytest

from cli.config import Config
from cli.context import AppContext
from common.types import FileHandle
from vault.api.client import VaultClient
from vault.api.session import Session

TEST_TOKEN = 'tok-123'

_PART_PATTERN = re.compile(
    rb'filename="([^"]*)"\r\nContent-Type: [^\r]*\r\n\r\n(.*?)\r\n--',
    re.DOTALL,
)


class FakeVaultServer:
    """
    In-memory storage service answering through httpx.MockTransport.

    Files are kept newest first, the way the service lists them. Uploads of
    content already stored are reported as deduplicated.
    """

    def __init__(self, quota_mb: float = 10.0):
        self.files = []
        self.requests = []
        self.users = {}
        self.quota_mb = quota_mb
        self.token_valid = True
        self.next_id = 1

    def add_file(self, filename: str, content: bytes = b'data', mime_type: str = 'text/plain') -> dict:
        record = {
            'id': self.next_id,
            'filename': filename,
            'size_bytes': len(content),
            'mime_type': mime_type,
            'created_at': f'2024-01-{(self.next_id % 28) + 1:02d}T10:00:00Z',
            'download_count': 0,
            'content': content,
            'hash': hashlib.sha256(content).hexdigest(),
        }
        self.next_id += 1
        self.files.insert(0, record)
        return record

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> list:
        return [(request.method, request.url.path) for request in self.requests]

    def _authorized(self, request: httpx.Request) -> bool:
        return self.token_valid and request.headers.get('Authorization') == f'Bearer {TEST_TOKEN}'

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == 'POST' and path == '/register':
            body = json.loads(request.content)
            if body['username'] in self.users:
                return httpx.Response(409, json={'error': 'Username already exists'})
            self.users[body['username']] = body['password']
            return httpx.Response(201, json={'message': 'User registered'})

        if request.method == 'POST' and path == '/login':
            body = json.loads(request.content)
            if self.users.get(body['username']) != body['password']:
                return httpx.Response(401, json={'error': 'Invalid credentials'})
            return httpx.Response(200, json={'token': TEST_TOKEN, 'username': body['username']})

        if not self._authorized(request):
            return httpx.Response(401, json={'error': 'Invalid token'})

        if request.method == 'POST' and path == '/upload':
            return self._upload(request)
        if request.method == 'GET' and path == '/files':
            page = int(request.url.params.get('page', 1))
            page_size = int(request.url.params.get('pageSize', 20))
            return self._page(self.files, page, page_size)
        if request.method == 'GET' and path == '/search':
            return self._page(self._search(request.url.params), 1, 1000)
        if request.method == 'GET' and path == '/stats':
            return httpx.Response(200, json=self._stats())

        match = re.fullmatch(r'/files/(\d+)/(delete|download)', path)
        if match:
            record = self._find(int(match.group(1)))
            if record is None:
                return httpx.Response(404, json={'error': 'File not found'})
            if match.group(2) == 'delete' and request.method == 'DELETE':
                self.files.remove(record)
                return httpx.Response(200, json={'message': 'File deleted'})
            if match.group(2) == 'download' and request.method == 'GET':
                record['download_count'] += 1
                return httpx.Response(200, content=record['content'])

        return httpx.Response(404, json={'error': f'No route for {request.method} {path}'})

    def _find(self, file_id: int):
        for record in self.files:
            if record['id'] == file_id:
                return record
        return None

    def _upload(self, request: httpx.Request) -> httpx.Response:
        outcomes = []
        for raw_name, content in _PART_PATTERN.findall(request.content):
            name = raw_name.decode()
            digest = hashlib.sha256(content).hexdigest()
            deduplicated = any(record['hash'] == digest for record in self.files)
            self.add_file(name, content)
            outcomes.append({
                'filename': name,
                'size': len(content),
                'hash': digest,
                'deduplicated': deduplicated,
            })
        return httpx.Response(200, json=outcomes)

    def _search(self, params) -> list:
        results = self.files
        if params.get('filename'):
            results = [r for r in results if params['filename'].lower() in r['filename'].lower()]
        if params.get('mime_type'):
            results = [r for r in results if r['mime_type'].startswith(params['mime_type'])]
        if params.get('min_size_bytes'):
            results = [r for r in results if r['size_bytes'] >= int(params['min_size_bytes'])]
        if params.get('max_size_bytes'):
            results = [r for r in results if r['size_bytes'] <= int(params['max_size_bytes'])]
        return results

    def _page(self, records: list, page: int, page_size: int) -> httpx.Response:
        total = len(records)
        total_pages = max(1, -(-total // page_size))
        start = (page - 1) * page_size
        files = [
            {key: value for key, value in record.items() if key not in ('content', 'hash')}
            for record in records[start:start + page_size]
        ]
        return httpx.Response(200, json={
            'files': files,
            'pagination': {'currentPage': page, 'totalPages': total_pages, 'totalFiles': total},
        })

    def _stats(self) -> dict:
        original = sum(record['size_bytes'] for record in self.files)
        unique = {record['hash']: record['size_bytes'] for record in self.files}
        stored = sum(unique.values())
        savings = original - stored
        quota_bytes = self.quota_mb * 1024 * 1024
        return {
            'total_storage_used_bytes': stored,
            'original_storage_used_bytes': original,
            'storage_savings_bytes': savings,
            'storage_savings_percentage': (savings * 100 / original) if original else 0.0,
            'storage_quota_mb': self.quota_mb,
            'quota_used_percentage': stored * 100 / quota_bytes,
        }


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .filevault directory
    """
    config_dir = tmp_path / '.filevault'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance.

    Args:
        temp_config_dir: Temporary config directory fixture

    Returns:
        Config instance with temp config file
    """
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing file uploads.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to sample text file
    """
    file_path = tmp_path / 'test.txt'
    file_path.write_text('Sample content for testing')
    return file_path


@pytest.fixture
def multiple_sample_files(tmp_path):
    """
    Create multiple sample files for testing bulk operations.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        List of Paths to sample files
    """
    files = []
    for i in range(3):
        file_path = tmp_path / f'test{i}.txt'
        file_path.write_text(f'Sample content {i}')
        files.append(file_path)
    return files


@pytest.fixture
def make_handle(tmp_path):
    """Factory writing a file of ``size`` bytes and returning its FileHandle."""

    def _make(name: str, size: int = 16, directory: Path = None) -> FileHandle:
        target_dir = directory or tmp_path
        target_dir.mkdir(parents=True, exist_ok=True)
        file_path = target_dir / name
        file_path.write_bytes(b'x' * size)
        return FileHandle.from_path(file_path)

    return _make


@pytest.fixture
def fake_server():
    return FakeVaultServer()


@pytest.fixture
def session():
    """Session that is already logged in with the fake server's token."""
    active = Session()
    active.start(TEST_TOKEN, 'alice')
    return active


@pytest.fixture
def vault_client(session, fake_server):
    """VaultClient talking to the fake server, with retries that do not sleep."""
    return VaultClient(session, base_url='http://vault.test', retry_backoff_seconds=0,
                       transport=fake_server.transport())


@pytest.fixture
def app_context(temp_config, fake_server):
    """AppContext wired to the fake server, not logged in."""
    temp_config.data['success_eviction_seconds'] = 0.01
    return AppContext(temp_config, transport=fake_server.transport())
