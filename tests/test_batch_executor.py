"""Tests for the batch upload executor."""

import asyncio

import httpx
import pytest

from common.exceptions import AuthError, InvalidStateError, NetworkError, ServerError
from vault.api.client import VaultClient
from vault.events import EventBus, UploadCompleted
from vault.models import BatchResult, UploadStatus
from vault.services.batch_executor import BatchUploadExecutor
from vault.services.upload_queue import UploadQueue


def outcome(name: str, size: int = 16, deduplicated: bool = False) -> dict:
    return {'filename': name, 'size': size, 'hash': f'hash-{name}', 'deduplicated': deduplicated}


def build(session, handler, eviction_delay: float = 60.0):
    client = VaultClient(session, base_url='http://vault.test', transport=httpx.MockTransport(handler))
    queue = UploadQueue()
    bus = EventBus()
    executor = BatchUploadExecutor(queue, client, bus, session=session, eviction_delay=eviction_delay)
    return executor, queue, bus


@pytest.mark.asyncio
async def test_outcomes_are_matched_by_position(session, make_handle, tmp_path):
    """Duplicate names are legal; the Nth outcome belongs to the Nth file."""
    def handler(request):
        return httpx.Response(200, json=[
            outcome('report.pdf'),
            outcome('report.pdf', deduplicated=True),
            outcome('photo.png'),
        ])

    executor, queue, bus = build(session, handler)
    items = queue.enqueue([
        make_handle('report.pdf'),
        make_handle('report.pdf', directory=tmp_path / 'copies'),
        make_handle('photo.png'),
    ])
    published = []
    bus.subscribe(UploadCompleted, published.append)

    result = await executor.submit()

    assert result == BatchResult(success_count=3, deduplicated_count=1)
    assert [item.status for item in items] == [UploadStatus.SUCCESS] * 3
    assert [item.result.was_deduplicated for item in items] == [False, True, False]
    assert all(item.progress_percent == 100 for item in items)
    assert published == [UploadCompleted(result)]
    assert not executor.in_flight


@pytest.mark.asyncio
async def test_nothing_pending_returns_zero_result_without_request(session, make_handle):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=[])

    executor, queue, bus = build(session, handler)
    (failed,) = queue.enqueue([make_handle('a.txt')])
    failed.mark_error('boom')

    result = await executor.submit()

    assert result == BatchResult(success_count=0, deduplicated_count=0)
    assert requests == []


@pytest.mark.asyncio
async def test_transport_failure_fails_every_item_in_batch(session, make_handle):
    def handler(request):
        raise httpx.ConnectError('refused', request=request)

    executor, queue, bus = build(session, handler)
    items = queue.enqueue([make_handle('a.txt'), make_handle('b.txt')])
    published = []
    bus.subscribe(UploadCompleted, published.append)

    with pytest.raises(NetworkError):
        await executor.submit()

    assert [item.status for item in items] == [UploadStatus.ERROR, UploadStatus.ERROR]
    assert all('Cannot connect' in item.error_message for item in items)
    assert published == []
    assert not executor.in_flight


@pytest.mark.asyncio
async def test_server_rejection_fails_batch_with_server_message(session, make_handle):
    def handler(request):
        return httpx.Response(413, json={'error': 'Storage quota exceeded'})

    executor, queue, bus = build(session, handler)
    (item,) = queue.enqueue([make_handle('a.txt')])

    with pytest.raises(ServerError):
        await executor.submit()

    assert item.status is UploadStatus.ERROR
    assert item.error_message == 'Storage quota exceeded'


@pytest.mark.asyncio
async def test_outcome_count_mismatch_fails_batch(session, make_handle):
    def handler(request):
        return httpx.Response(200, json=[outcome('a.txt')])

    executor, queue, bus = build(session, handler)
    items = queue.enqueue([make_handle('a.txt'), make_handle('b.txt')])

    with pytest.raises(ServerError, match='1 result'):
        await executor.submit()

    assert [item.status for item in items] == [UploadStatus.ERROR, UploadStatus.ERROR]


@pytest.mark.asyncio
async def test_single_flight(session, make_handle):
    release = asyncio.Event()

    async def handler(request):
        await release.wait()
        return httpx.Response(200, json=[outcome('a.txt')])

    executor, queue, bus = build(session, handler)
    (first,) = queue.enqueue([make_handle('a.txt')])

    task = asyncio.create_task(executor.submit())
    await asyncio.sleep(0)
    assert executor.in_flight

    (late,) = queue.enqueue([make_handle('b.txt')])
    assert await executor.submit() is None
    assert late.status is UploadStatus.PENDING

    release.set()
    result = await task

    assert result.success_count == 1
    assert first.status is UploadStatus.SUCCESS
    assert late.status is UploadStatus.PENDING


@pytest.mark.asyncio
async def test_progress_is_held_below_100_until_confirmed(session, make_handle):
    observed = []
    items = []

    def handler(request):
        observed.extend((item.status, item.progress_percent) for item in items)
        return httpx.Response(200, json=[outcome('big.bin', 200_000), outcome('empty.bin', 0)])

    executor, queue, bus = build(session, handler)
    items.extend(queue.enqueue([make_handle('big.bin', 200_000), make_handle('empty.bin', 0)]))

    await executor.submit()

    assert observed == [(UploadStatus.UPLOADING, 99), (UploadStatus.UPLOADING, 0)]
    assert [item.progress_percent for item in items] == [100, 100]


@pytest.mark.asyncio
async def test_session_invalidation_fails_outstanding_items(session, make_handle):
    def handler(request):
        return httpx.Response(401, json={'error': 'Token expired'})

    executor, queue, bus = build(session, handler)
    items = queue.enqueue([make_handle('a.txt'), make_handle('b.txt')])

    with pytest.raises(AuthError):
        await executor.submit()

    assert not session.is_active
    assert [item.status for item in items] == [UploadStatus.ERROR, UploadStatus.ERROR]
    assert all(item.error_message == 'Session expired. Please log in again.' for item in items)


@pytest.mark.asyncio
async def test_successful_items_are_evicted_after_delay(session, make_handle):
    def handler(request):
        return httpx.Response(200, json=[outcome('a.txt')])

    executor, queue, bus = build(session, handler, eviction_delay=0.01)
    queue.enqueue([make_handle('a.txt')])

    await executor.submit()
    assert len(queue) == 1

    await asyncio.sleep(0.05)
    assert len(queue) == 0


@pytest.mark.asyncio
async def test_subscriber_failure_does_not_fail_upload(session, make_handle):
    def handler(request):
        return httpx.Response(200, json=[outcome('a.txt')])

    executor, queue, bus = build(session, handler)
    (item,) = queue.enqueue([make_handle('a.txt')])

    async def broken(event):
        raise NetworkError('list refresh failed')

    bus.subscribe(UploadCompleted, broken)

    result = await executor.submit()

    assert result.success_count == 1
    assert item.status is UploadStatus.SUCCESS
    assert [str(e) for e in executor.last_publish_errors] == ['list refresh failed']


@pytest.mark.asyncio
async def test_cancelled_submit_leaves_items_removable(session, make_handle):
    started = asyncio.Event()

    async def handler(request):
        started.set()
        await asyncio.Event().wait()

    executor, queue, bus = build(session, handler)
    (item,) = queue.enqueue([make_handle('a.txt')])

    task = asyncio.create_task(executor.submit())
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert item.status is UploadStatus.ERROR
    assert item.error_message == 'Upload cancelled'
    assert not executor.in_flight
    assert queue.clear() == 1
    assert len(queue) == 0


@pytest.mark.asyncio
async def test_session_expiring_mid_request_is_not_reported_as_success(session, make_handle):
    def handler(request):
        session.invalidate()
        return httpx.Response(200, json=[outcome('a.txt'), outcome('b.txt', deduplicated=True)])

    executor, queue, bus = build(session, handler)
    items = queue.enqueue([make_handle('a.txt'), make_handle('b.txt')])
    published = []
    bus.subscribe(UploadCompleted, published.append)

    with pytest.raises(InvalidStateError, match='Session expired'):
        await executor.submit()

    assert [item.status for item in items] == [UploadStatus.ERROR, UploadStatus.ERROR]
    assert published == []
    assert not executor.in_flight
