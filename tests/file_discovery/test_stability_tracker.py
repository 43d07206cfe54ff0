"""
Tests for FileStabilityTracker, the per-file debounce.
"""

import asyncio
import logging

import pytest

from stablewatch.domains.file_discovery import (
    ChangeOperation,
    EventSink,
    FileStabilityTracker,
    ShutdownSignal,
)
from tests.conftest import wait_for_subscription

THRESHOLD = 0.2


@pytest.fixture
def shutdown() -> ShutdownSignal:
    return ShutdownSignal()


@pytest.fixture
def sink() -> EventSink:
    return EventSink()


def make_tracker(path, source, shutdown, sink, threshold=THRESHOLD) -> FileStabilityTracker:
    return FileStabilityTracker(
        path=str(path), threshold_seconds=threshold, source=source, shutdown=shutdown, sink=sink
    )


@pytest.mark.asyncio
async def test_single_write_then_quiet_emits_once(watch_dir, source, shutdown, sink):
    loop = asyncio.get_running_loop()
    video = watch_dir / "clip.mp4"
    video.write_bytes(b"data")
    started = loop.time()

    await asyncio.wait_for(make_tracker(video, source, shutdown, sink).run(), timeout=2.0)

    assert loop.time() - started >= THRESHOLD - 0.02
    event = await asyncio.wait_for(sink.get(), timeout=1.0)
    assert event.path == str(video)
    sink.close()
    assert await sink.get() is None


@pytest.mark.asyncio
async def test_continuous_writes_postpone_the_event(watch_dir, source, shutdown, sink):
    loop = asyncio.get_running_loop()
    video = watch_dir / "recording.mxf"
    video.write_bytes(b"")
    tracker = make_tracker(video, source, shutdown, sink)
    task = asyncio.create_task(tracker.run())
    await wait_for_subscription(source, video)

    for _ in range(8):
        await asyncio.sleep(THRESHOLD / 4)
        source.emit(video, ChangeOperation.WRITE)
    last_write = loop.time()
    assert not task.done()

    event = await asyncio.wait_for(sink.get(), timeout=2.0)

    assert loop.time() - last_write >= THRESHOLD - 0.02
    assert event.path == str(video)
    assert tracker.resets == 8
    await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_any_operation_resets_the_timer(watch_dir, source, shutdown, sink):
    video = watch_dir / "clip.mp4"
    video.write_bytes(b"data")
    tracker = make_tracker(video, source, shutdown, sink)
    task = asyncio.create_task(tracker.run())
    await wait_for_subscription(source, video)

    for operation in ChangeOperation:
        source.emit(video, operation)
        await asyncio.sleep(0.01)

    await asyncio.wait_for(task, timeout=2.0)
    assert tracker.resets == len(ChangeOperation)


@pytest.mark.asyncio
async def test_deleted_file_never_emits(watch_dir, source, shutdown, sink, caplog):
    video = watch_dir / "partial.mp4"
    video.write_bytes(b"data")
    task = asyncio.create_task(make_tracker(video, source, shutdown, sink).run())
    await wait_for_subscription(source, video)

    video.unlink()
    source.emit(video, ChangeOperation.REMOVE)

    with caplog.at_level(logging.WARNING):
        await asyncio.wait_for(task, timeout=2.0)

    assert "unable to stat" in caplog.text
    sink.close()
    assert await sink.get() is None


@pytest.mark.asyncio
async def test_file_removed_without_notification_is_not_reported(watch_dir, source, shutdown, sink):
    video = watch_dir / "vanishing.mp4"
    video.write_bytes(b"data")
    task = asyncio.create_task(make_tracker(video, source, shutdown, sink).run())
    await wait_for_subscription(source, video)

    video.unlink()
    await asyncio.wait_for(task, timeout=2.0)

    sink.close()
    assert await sink.get() is None


@pytest.mark.asyncio
async def test_missing_file_is_skipped_without_subscribing(watch_dir, source, shutdown, sink, caplog):
    missing = watch_dir / "gone.mp4"

    with caplog.at_level(logging.WARNING):
        await asyncio.wait_for(make_tracker(missing, source, shutdown, sink).run(), timeout=1.0)

    assert "skipping" in caplog.text
    assert source.subscription_count() == 0


@pytest.mark.asyncio
async def test_shutdown_stops_tracker_without_event(watch_dir, source, shutdown, sink):
    video = watch_dir / "clip.mp4"
    video.write_bytes(b"data")
    task = asyncio.create_task(make_tracker(video, source, shutdown, sink, threshold=10).run())
    await wait_for_subscription(source, video)

    shutdown.fire()
    await asyncio.wait_for(task, timeout=1.0)

    sink.close()
    assert await sink.get() is None


@pytest.mark.asyncio
async def test_subscription_is_released_on_every_exit(watch_dir, source, shutdown, sink):
    stable = watch_dir / "stable.mp4"
    stable.write_bytes(b"data")
    deleted = watch_dir / "deleted.mp4"
    deleted.write_bytes(b"data")

    stable_task = asyncio.create_task(make_tracker(stable, source, shutdown, sink).run())
    deleted_task = asyncio.create_task(make_tracker(deleted, source, shutdown, sink).run())
    await wait_for_subscription(source, stable)
    await wait_for_subscription(source, deleted)
    deleted.unlink()

    await asyncio.wait_for(asyncio.gather(stable_task, deleted_task), timeout=2.0)

    assert source.subscription_count() == 0


@pytest.mark.asyncio
async def test_cancelled_tracker_releases_subscription(watch_dir, source, shutdown, sink):
    video = watch_dir / "clip.mp4"
    video.write_bytes(b"data")
    task = asyncio.create_task(make_tracker(video, source, shutdown, sink, threshold=10).run())
    await wait_for_subscription(source, video)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert source.subscription_count() == 0
