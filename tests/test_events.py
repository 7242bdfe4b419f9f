"""Tests for the in-process event bus."""

import pytest

from vault.events import EventBus, FilesDeleted, UploadCompleted
from vault.models import BatchResult


@pytest.mark.asyncio
async def test_publish_reaches_sync_and_async_subscribers_in_order():
    bus = EventBus()
    calls = []

    def sync_handler(event):
        calls.append(('sync', event.count))

    async def async_handler(event):
        calls.append(('async', event.count))

    bus.subscribe(FilesDeleted, sync_handler)
    bus.subscribe(FilesDeleted, async_handler)

    errors = await bus.publish(FilesDeleted((1, 2)))

    assert errors == []
    assert calls == [('sync', 2), ('async', 2)]


@pytest.mark.asyncio
async def test_publish_only_matches_exact_event_type():
    bus = EventBus()
    received = []
    bus.subscribe(UploadCompleted, received.append)

    await bus.publish(FilesDeleted((1,)))

    assert received == []


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_stop_delivery():
    bus = EventBus()
    received = []

    async def broken(event):
        raise RuntimeError('refresh failed')

    bus.subscribe(UploadCompleted, broken)
    bus.subscribe(UploadCompleted, received.append)

    event = UploadCompleted(BatchResult(success_count=1, deduplicated_count=0))
    errors = await bus.publish(event)

    assert received == [event]
    assert len(errors) == 1
    assert str(errors[0]) == 'refresh failed'


@pytest.mark.asyncio
async def test_unsubscribe():
    bus = EventBus()
    received = []
    unsubscribe = bus.subscribe(FilesDeleted, received.append)

    unsubscribe()
    unsubscribe()
    await bus.publish(FilesDeleted((3,)))

    assert received == []
