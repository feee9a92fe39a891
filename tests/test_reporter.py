import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from sermon_sync.models import Sermon
from sermon_sync.reporter import ListeningReporter
from sermon_sync.sync_client import SyncClient, SyncResult


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sync_client():
    client = Mock(spec=SyncClient)
    client.report_listening = AsyncMock(return_value=SyncResult(ok=True, data={"status": "ok"}))
    return client


@pytest.fixture
def reporter(sync_client, clock):
    return ListeningReporter(sync_client, "me@example.com", threshold=30, clock=clock)


def sermon(sermon_id=1, title="Grace") -> Sermon:
    return Sermon(id=sermon_id, title=title, audio_url="https://x.com/a.mp3")


@pytest.mark.asyncio
async def test_reports_one_window_and_advances_high_water_mark(reporter, sync_client, clock):
    reporter.set_sermon(sermon(), album_title="Romans")
    reporter.play()
    clock.advance(45)

    sent = await reporter.tick()

    assert sent.duration_seconds == 30
    assert reporter.reported_seconds == 30
    sync_client.report_listening.assert_called_once()
    identity, request = sync_client.report_listening.call_args.args
    assert identity == "me@example.com"
    assert request.sermon_id == 1
    assert request.sermon_title == "Grace"
    assert request.album_title == "Romans"

    # Nothing new played: no second report
    reporter.pause()
    assert await reporter.tick() is None
    assert sync_client.report_listening.call_count == 1


@pytest.mark.asyncio
async def test_below_threshold_sends_nothing(reporter, sync_client, clock):
    reporter.set_sermon(sermon())
    reporter.play()
    clock.advance(29.9)

    assert await reporter.tick() is None
    sync_client.report_listening.assert_not_called()


@pytest.mark.asyncio
async def test_paused_time_does_not_accumulate(reporter, clock):
    reporter.set_sermon(sermon())
    reporter.play()
    clock.advance(10)
    reporter.pause()
    clock.advance(600)
    reporter.play()
    clock.advance(5)
    reporter.sample()

    assert reporter.accumulated_seconds == 15


@pytest.mark.asyncio
async def test_remainder_carries_into_next_window(reporter, sync_client, clock):
    reporter.set_sermon(sermon())
    reporter.play()
    clock.advance(45)
    await reporter.tick()
    clock.advance(20)
    sent = await reporter.tick()

    assert sent.duration_seconds == 30
    assert reporter.reported_seconds == 60
    assert sum(c.args[1].duration_seconds for c in sync_client.report_listening.call_args_list) == 60


@pytest.mark.asyncio
async def test_switching_sermon_resets_and_drops_remainder(reporter, sync_client, clock):
    reporter.set_sermon(sermon(1))
    reporter.play()
    clock.advance(50)
    await reporter.tick()
    assert reporter.reported_seconds == 30

    reporter.set_sermon(sermon(2, "Hope"))
    assert reporter.accumulated_seconds == 0
    assert reporter.reported_seconds == 0

    clock.advance(31)
    sent = await reporter.tick()
    assert sent.sermon_id == 2
    assert sent.duration_seconds == 30


@pytest.mark.asyncio
async def test_same_sermon_does_not_reset(reporter, clock):
    reporter.set_sermon(sermon(1))
    reporter.play()
    clock.advance(20)
    reporter.sample()
    reporter.set_sermon(sermon(1))

    assert reporter.accumulated_seconds == 20


@pytest.mark.asyncio
async def test_failed_report_is_not_retried(reporter, sync_client, clock):
    sync_client.report_listening.return_value = SyncResult(ok=False, error="connection refused")
    reporter.set_sermon(sermon())
    reporter.play()
    clock.advance(35)

    sent = await reporter.tick()

    assert sent.duration_seconds == 30
    assert reporter.reported_seconds == 30
    assert await reporter.tick() is None
    assert sync_client.report_listening.call_count == 1


@pytest.mark.asyncio
async def test_no_sermon_no_report(reporter, sync_client, clock):
    reporter.play()
    clock.advance(100)
    assert await reporter.tick() is None
    sync_client.report_listening.assert_not_called()


@pytest.mark.asyncio
async def test_run_loop_start_and_stop(sync_client, clock):
    reporter = ListeningReporter(sync_client, "me@example.com", tick_interval=0.01, clock=clock)
    reporter.set_sermon(sermon())
    reporter.play()
    clock.advance(31)

    task = reporter.start()
    for _ in range(100):
        if sync_client.report_listening.called:
            break
        await asyncio.sleep(0.01)
    await reporter.stop()

    assert task.cancelled()
    assert not reporter.playing
    sync_client.report_listening.assert_called_once()


@pytest.mark.asyncio
async def test_paused_ticks_hold_reports_until_resumed(reporter, sync_client, clock):
    reporter.set_sermon(sermon())
    reporter.play()
    clock.advance(45)
    reporter.pause()

    assert await reporter.tick() is None
    sync_client.report_listening.assert_not_called()
    assert reporter.reported_seconds == 0

    reporter.play()
    sent = await reporter.tick()

    assert sent.duration_seconds == 30
    assert reporter.reported_seconds == 30
