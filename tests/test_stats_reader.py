"""Tests for the storage statistics reader."""

import httpx
import pytest

from common.exceptions import ServerError
from common.types import StorageStatistics
from vault.api.client import VaultClient
from vault.events import EventBus, FilesDeleted
from vault.services.stats_reader import StorageStatisticsReader

STATS = {
    'total_storage_used_bytes': 600,
    'original_storage_used_bytes': 1000,
    'storage_savings_bytes': 400,
    'storage_savings_percentage': 40.0,
    'storage_quota_mb': 10,
    'quota_used_percentage': 0.0057,
}


def reader_for(session, handler) -> StorageStatisticsReader:
    client = VaultClient(session, base_url='http://vault.test', transport=httpx.MockTransport(handler))
    return StorageStatisticsReader(client)


@pytest.mark.asyncio
async def test_fetch_returns_server_counters(session):
    reader = reader_for(session, lambda request: httpx.Response(200, json=STATS))

    stats = await reader.fetch()

    assert stats.storage_savings_bytes == 400
    assert stats.storage_savings_percentage == 40.0
    assert stats.quota_bytes == 10 * 1024 * 1024
    assert stats.remaining_bytes == 10 * 1024 * 1024 - 600
    assert reader.latest is stats


@pytest.mark.asyncio
async def test_fetch_failure_propagates(session):
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(500, json={'error': 'stats unavailable'})

    reader = reader_for(session, handler)

    with pytest.raises(ServerError, match='stats unavailable'):
        await reader.fetch()
    assert len(attempts) == 1
    assert reader.latest is None


@pytest.mark.asyncio
async def test_mutation_event_refreshes_statistics(vault_client, fake_server):
    bus = EventBus()
    reader = StorageStatisticsReader(vault_client)
    reader.subscribe(bus)
    fake_server.add_file('a.txt', b'same')
    fake_server.add_file('b.txt', b'same')

    errors = await bus.publish(FilesDeleted((99,)))

    assert errors == []
    assert reader.latest.original_storage_used_bytes == 8
    assert reader.latest.total_storage_used_bytes == 4
    assert reader.latest.storage_savings_percentage == 50.0


@pytest.mark.asyncio
async def test_failed_refresh_after_mutation_keeps_previous_snapshot(session):
    responses = [httpx.Response(200, json=STATS), httpx.Response(503)]
    reader = reader_for(session, lambda request: responses.pop(0))
    bus = EventBus()
    reader.subscribe(bus)

    first = await reader.fetch()
    errors = await bus.publish(FilesDeleted((1,)))

    assert errors == []
    assert reader.latest is first


def test_remaining_bytes_never_negative():
    stats = StorageStatistics(
        total_storage_used_bytes=20 * 1024 * 1024,
        original_storage_used_bytes=20 * 1024 * 1024,
        storage_savings_bytes=0,
        storage_savings_percentage=0.0,
        storage_quota_mb=10,
        quota_used_percentage=200.0,
    )

    assert stats.remaining_bytes == 0
