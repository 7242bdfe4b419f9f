"""Tests for file deletion and its notification."""

import pytest

from common.exceptions import ServerError
from vault.events import EventBus, FilesDeleted
from vault.services.deletion import delete_files


@pytest.mark.asyncio
async def test_delete_publishes_deleted_ids(vault_client, fake_server):
    records = [fake_server.add_file(f'f{i}.txt') for i in range(3)]
    bus = EventBus()
    events = []
    bus.subscribe(FilesDeleted, events.append)

    result = await delete_files(vault_client, bus, [records[0]['id'], records[1]['id']])

    assert result.deleted == [records[0]['id'], records[1]['id']]
    assert result.refresh_errors == []
    assert events == [FilesDeleted((records[0]['id'], records[1]['id']))]
    assert [r['id'] for r in fake_server.files] == [records[2]['id']]


@pytest.mark.asyncio
async def test_delete_stops_at_first_failure_but_reports_earlier_ones(vault_client, fake_server):
    record = fake_server.add_file('a.txt')
    other = fake_server.add_file('b.txt')
    bus = EventBus()
    events = []
    bus.subscribe(FilesDeleted, events.append)

    with pytest.raises(ServerError, match='File not found'):
        await delete_files(vault_client, bus, [record['id'], 999, other['id']])

    assert events == [FilesDeleted((record['id'],))]
    assert [r['id'] for r in fake_server.files] == [other['id']]


@pytest.mark.asyncio
async def test_nothing_deleted_publishes_nothing(vault_client):
    bus = EventBus()
    events = []
    bus.subscribe(FilesDeleted, events.append)

    with pytest.raises(ServerError):
        await delete_files(vault_client, bus, [42])

    assert events == []
