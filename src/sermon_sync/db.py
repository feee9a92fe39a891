import json
import logging
import sqlite3
import threading
from datetime import date, datetime, timezone
from pathlib import Path

from .config import DATA_DIR, DB_PATH, LOCAL_DB_PATH
from .models import (
    ItemId,
    ListeningEvent,
    ListeningStats,
    ListenRequest,
    SyncPayload,
    UserAggregate,
)
from .streak import parse_visit_date

logger = logging.getLogger(__name__)


def _default_path(configured: str | None, filename: str) -> str:
    if configured:
        return configured
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    return str(DATA_DIR / filename)


class AggregationStore:
    """
    SQLite store of per-user aggregates, keyed by identity (usually an email).

    Synced fields live as columns on `user_aggregates`; listening history is
    an append-only table. Every write is a field-level statement run under a
    single connection lock, so a sync push racing a listening report for the
    same identity cannot drop the other's update.
    """

    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or _default_path(DB_PATH, "aggregates.db")
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        """Initialize database tables if they don't exist."""
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)

        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS user_aggregates (
                identity TEXT PRIMARY KEY,
                streak INTEGER NOT NULL DEFAULT 0,
                bookmarks TEXT NOT NULL DEFAULT '[]',
                last_visit_date TEXT,
                total_seconds INTEGER NOT NULL DEFAULT 0,
                created_at TEXT DEFAULT (datetime('now'))
            )
        """
        )
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS listening_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                identity TEXT NOT NULL,
                sermon_id TEXT NOT NULL,
                sermon_title TEXT NOT NULL DEFAULT '',
                album_title TEXT,
                timestamp TEXT NOT NULL,
                duration_seconds INTEGER NOT NULL CHECK (duration_seconds > 0)
            )
        """
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_history_identity ON listening_history (identity, id)"
        )
        self.conn.commit()

    def close(self):
        with self._lock:
            self.conn.close()

    # --- Reads ---

    def get_user(self, identity: str) -> UserAggregate | None:
        """Return the full aggregate, or None if the identity was never written."""
        with self._lock:
            row = self.conn.execute(
                """SELECT streak, bookmarks, last_visit_date, total_seconds
                   FROM user_aggregates WHERE identity = ?""",
                (identity,),
            ).fetchone()
            if row is None:
                return None
            history = self._history(identity)

        streak, bookmarks_json, last_visit, total_seconds = row
        return UserAggregate(
            streak=streak or 0,
            bookmarks=_load_bookmarks(bookmarks_json),
            last_visit_date=parse_visit_date(last_visit),
            listening_stats=ListeningStats(total_seconds=total_seconds or 0, history=history),
        )

    def get_listening_stats(self, identity: str) -> ListeningStats | None:
        user = self.get_user(identity)
        return user.listening_stats if user else None

    def _history(self, identity: str) -> list[ListeningEvent]:
        rows = self.conn.execute(
            """SELECT sermon_id, sermon_title, album_title, timestamp, duration_seconds
               FROM listening_history
               WHERE identity = ?
               ORDER BY id""",
            (identity,),
        ).fetchall()
        return [
            ListeningEvent(
                sermon_id=json.loads(sermon_id),
                sermon_title=sermon_title,
                album_title=album_title,
                timestamp=timestamp,
                duration_seconds=duration,
            )
            for sermon_id, sermon_title, album_title, timestamp, duration in rows
        ]

    # --- Writes ---

    def upsert_sync(self, identity: str, payload: SyncPayload):
        """Replace streak, bookmarks and last visit date; listening stats are untouched."""
        last_visit = payload.last_visit_date.isoformat() if payload.last_visit_date else None
        with self._lock:
            self.conn.execute(
                """
                INSERT INTO user_aggregates (identity, streak, bookmarks, last_visit_date)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(identity)
                DO UPDATE SET streak = excluded.streak,
                              bookmarks = excluded.bookmarks,
                              last_visit_date = excluded.last_visit_date
                """,
                (identity, payload.streak, json.dumps(payload.bookmarks), last_visit),
            )
            self.conn.commit()

    def record_listening(
        self, identity: str, request: ListenRequest, timestamp: datetime | None = None
    ) -> ListeningEvent:
        """Append one listening event and add its duration to the running total."""
        timestamp = timestamp or datetime.now(timezone.utc)
        event = ListeningEvent(
            sermon_id=request.sermon_id,
            sermon_title=request.sermon_title,
            album_title=request.album_title,
            timestamp=timestamp.isoformat(),
            duration_seconds=request.duration_seconds,
        )
        with self._lock:
            try:
                self.conn.execute(
                    "INSERT OR IGNORE INTO user_aggregates (identity) VALUES (?)", (identity,)
                )
                self.conn.execute(
                    """UPDATE user_aggregates
                       SET total_seconds = total_seconds + ?
                       WHERE identity = ?""",
                    (event.duration_seconds, identity),
                )
                self.conn.execute(
                    """INSERT INTO listening_history
                           (identity, sermon_id, sermon_title, album_title, timestamp, duration_seconds)
                       VALUES (?, ?, ?, ?, ?, ?)""",
                    (
                        identity,
                        json.dumps(event.sermon_id),
                        event.sermon_title,
                        event.album_title,
                        event.timestamp,
                        event.duration_seconds,
                    ),
                )
                self.conn.commit()
            except sqlite3.Error:
                self.conn.rollback()
                raise
        return event


def _load_bookmarks(raw: str | None) -> list[ItemId]:
    try:
        value = json.loads(raw or "[]")
    except ValueError:
        logger.warning("Unreadable bookmarks column, treating as empty")
        return []
    return [b for b in value if isinstance(b, (int, str))] if isinstance(value, list) else []


class LocalStateStore:
    """Client-side key/value state (streak, last visit, bookmarks) that survives restarts."""

    STREAK_KEY = "user_streak"
    LAST_VISIT_KEY = "last_visit_date"
    BOOKMARKS_KEY = "user_bookmarks"

    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or _default_path(LOCAL_DB_PATH, "local_state.db")
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path)
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS local_state (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """
        )
        self.conn.commit()

    def get(self, key: str) -> str | None:
        row = self.conn.execute("SELECT value FROM local_state WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str):
        self.conn.execute(
            "INSERT OR REPLACE INTO local_state (key, value) VALUES (?, ?)", (key, value)
        )
        self.conn.commit()

    def load_streak(self) -> tuple[int, date | None]:
        raw = self.get(self.STREAK_KEY)
        try:
            count = max(0, int(raw)) if raw else 0
        except ValueError:
            count = 0
        return count, parse_visit_date(self.get(self.LAST_VISIT_KEY))

    def save_streak(self, count: int, last_visit_date: date):
        self.set(self.STREAK_KEY, str(count))
        self.set(self.LAST_VISIT_KEY, last_visit_date.isoformat())

    def load_bookmarks(self) -> list[ItemId]:
        return _load_bookmarks(self.get(self.BOOKMARKS_KEY))

    def save_bookmarks(self, bookmarks: list[ItemId]):
        self.set(self.BOOKMARKS_KEY, json.dumps(bookmarks))

    def close(self):
        self.conn.close()
