"""Periodic listening-time reports for the active sermon"""

import asyncio
import logging
import time
from typing import Callable

from .config import REPORT_THRESHOLD_SECONDS, REPORT_TICK_SECONDS
from .models import ListenRequest, Sermon
from .sync_client import SyncClient

logger = logging.getLogger(__name__)


class ListeningReporter:
    """
    Turns continuous playback into whole-second reports.

    Only time spent in the playing state accumulates. While playing, each
    tick flushes the unreported seconds in whole windows of `threshold`. The
    high-water mark moves forward before the request is sent: a failed
    report is logged and those seconds are not retried. Switching sermons
    starts a fresh window and drops any unreported remainder.
    """

    def __init__(
        self,
        sync_client: SyncClient,
        identity: str,
        threshold: int = REPORT_THRESHOLD_SECONDS,
        tick_interval: float = REPORT_TICK_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.sync_client = sync_client
        self.identity = identity
        self.threshold = threshold
        self.tick_interval = tick_interval
        self._clock = clock

        self.sermon: Sermon | None = None
        self.album_title: str | None = None
        self.playing = False
        self._segment_start: float | None = None
        self.accumulated_seconds = 0.0
        self.reported_seconds = 0
        self._task: asyncio.Task | None = None

    # --- Playback events ---

    def set_sermon(self, sermon: Sermon | None, album_title: str | None = None):
        """Make `sermon` the active one. A different sermon resets both counters."""
        if self.sermon is None or sermon is None or sermon.id != self.sermon.id:
            self.accumulated_seconds = 0.0
            self.reported_seconds = 0
            if self.playing:
                self._segment_start = self._clock()
        self.sermon = sermon
        self.album_title = album_title

    def play(self):
        if not self.playing:
            self.playing = True
            self._segment_start = self._clock()

    def pause(self):
        self.sample()
        self.playing = False
        self._segment_start = None

    def sample(self):
        """Fold wall-clock time since the last sample into the accumulator."""
        if self.playing and self._segment_start is not None:
            now = self._clock()
            self.accumulated_seconds += max(0.0, now - self._segment_start)
            self._segment_start = now

    @property
    def pending_seconds(self) -> float:
        return self.accumulated_seconds - self.reported_seconds

    # --- Reporting ---

    def _take_report(self) -> ListenRequest | None:
        if self.sermon is None or not self.playing:
            return None
        windows = int(self.pending_seconds // self.threshold)
        if windows < 1:
            return None

        seconds = windows * self.threshold
        self.reported_seconds += seconds
        return ListenRequest(
            sermon_id=self.sermon.id,
            sermon_title=self.sermon.title,
            album_title=self.album_title,
            duration_seconds=seconds,
        )

    async def tick(self) -> ListenRequest | None:
        """Sample, then send at most one report. Returns what was sent."""
        self.sample()
        request = self._take_report()
        if request is None:
            return None

        result = await self.sync_client.report_listening(self.identity, request)
        if not result.ok:
            logger.error(f"Error reporting listening: {result.error}")
        return request

    async def run(self):
        """Tick forever; cancelled on session teardown."""
        logger.info("Starting listening reporter")
        try:
            while True:
                await asyncio.sleep(self.tick_interval)
                await self.tick()
        except asyncio.CancelledError:
            logger.info("Listening reporter cancelled")
            raise

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self):
        self.pause()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
