"""Client-side application state: streak, bookmarks and their sync to the server."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from .db import LocalStateStore
from .models import ItemId, SyncPayload, WrappedStats
from .streak import advance_streak, utc_today
from .sync_client import SyncClient

logger = logging.getLogger(__name__)


def toggle_bookmark(bookmarks: list[ItemId], item_id: ItemId) -> list[ItemId]:
    """Remove `item_id` if present, otherwise append it. Never duplicates."""
    if item_id in bookmarks:
        return [b for b in bookmarks if b != item_id]
    return [*bookmarks, item_id]


@dataclass
class AppState:
    streak: int = 0
    bookmarks: list[ItemId] = field(default_factory=list)
    last_visit_date: date | None = None
    wrapped: WrappedStats | None = None


class AppController:
    """
    Owns AppState. Loads it once at start, saves locally on every change and
    pushes to the sync server whenever the streak is positive or bookmarks
    are non-empty. Pushes are not rate-limited; each change sends one.
    """

    def __init__(self, local_store: LocalStateStore, sync_client: SyncClient, identity: str):
        self.local_store = local_store
        self.sync_client = sync_client
        self.identity = identity
        self.state = AppState()

    async def start(self, now: datetime | None = None) -> AppState:
        """Load persisted state, apply today's visit to the streak, then sync."""
        count, last_visit = self.local_store.load_streak()
        record = advance_streak(count, last_visit, now)
        self.local_store.save_streak(record.count, record.last_visit_date)

        self.state = AppState(
            streak=record.count,
            bookmarks=self.local_store.load_bookmarks(),
            last_visit_date=record.last_visit_date,
        )
        await self._auto_sync()
        return self.state

    async def toggle_bookmark(self, item_id: ItemId) -> AppState:
        self.state.bookmarks = toggle_bookmark(self.state.bookmarks, item_id)
        self.local_store.save_bookmarks(self.state.bookmarks)
        await self._auto_sync()
        return self.state

    def is_bookmarked(self, item_id: ItemId) -> bool:
        return item_id in self.state.bookmarks

    async def _auto_sync(self):
        if self.state.streak > 0 or self.state.bookmarks:
            await self.sync()

    async def sync(self) -> WrappedStats | None:
        """Push local state, then refresh wrapped stats. Failures are logged and ignored."""
        payload = SyncPayload(
            streak=self.state.streak,
            bookmarks=list(self.state.bookmarks),
            last_visit_date=self.state.last_visit_date or utc_today(),
        )
        result = await self.sync_client.push(self.identity, payload)
        if not result.ok:
            logger.error(f"Error syncing user data: {result.error}")

        return await self.refresh_wrapped()

    async def refresh_wrapped(self) -> WrappedStats | None:
        result = await self.sync_client.fetch_wrapped(self.identity)
        if not result.ok:
            logger.error(f"Error fetching wrapped stats: {result.error}")
            return self.state.wrapped
        self.state.wrapped = result.data
        return self.state.wrapped
