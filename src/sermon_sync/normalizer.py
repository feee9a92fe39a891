# src/sermon_sync/normalizer.py
"""
Map raw WordPress REST records into Sermon, Playlist and Quote models.

The CMS is loosely typed: fields go missing, get renamed between plugin
versions, and track lists arrive either as JSON strings or native arrays.
Every parser here is a pure function that returns a model or None and never
raises on malformed input.

Two variants exist for sermons because call sites disagree: list views keep
the raw title markup for rich rendering, search and bookmark lookups want
entity-decoded text.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable

from .config import (
    AUDIO_EXTENSIONS,
    PLACEHOLDER_IMAGE_URL,
    PLAYLIST_PLACEHOLDER_SEED,
    SERMON_PLACEHOLDER_SEED,
    TRACK_TITLE_ALIASES,
    TRACK_URL_ALIASES,
    TRACKLIST_FIELD_ALIASES,
)
from .models import Playlist, Quote, Sermon, Track

logger = logging.getLogger(__name__)

TAG_PATTERN = re.compile(r"<[^>]*>?", re.MULTILINE)

_AUDIO_EXT = "|".join(re.escape(ext) for ext in AUDIO_EXTENSIONS)
HREF_AUDIO_PATTERN = re.compile(rf'href="([^"]+\.(?:{_AUDIO_EXT}))"', re.IGNORECASE)
SRC_AUDIO_PATTERN = re.compile(rf'src="([^"]+\.(?:{_AUDIO_EXT}))"', re.IGNORECASE)

# Applied in order; anything not listed passes through untouched
HTML_ENTITIES = [
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#039;", "'"),
    ("&nbsp;", " "),
    ("&#8211;", "–"),
    ("&#8212;", "—"),
    ("&#8216;", "‘"),
    ("&#8217;", "’"),
    ("&#8220;", "“"),
    ("&#8221;", "”"),
]


# --- Text helpers ---


def strip_tags(html: str) -> str:
    """Remove all markup tags, keeping the text between them."""
    return TAG_PATTERN.sub("", html or "")


def decode_html(text: str) -> str:
    """Decode the fixed set of HTML entities the CMS emits."""
    for entity, char in HTML_ENTITIES:
        text = text.replace(entity, char)
    return text


def title_from_filename(url: str, default: str = "Track") -> str:
    """'https://x/Sunday-Service.mp3' -> 'Sunday Service'"""
    name = url.split("/")[-1]
    for ext in AUDIO_EXTENSIONS:
        name = name.replace(f".{ext}", "", 1)
    name = name.replace("-", " ")
    return name or default


def placeholder_image(seed: str) -> str:
    return PLACEHOLDER_IMAGE_URL.format(seed=seed)


def _rendered(raw: dict, key: str) -> str:
    value = raw.get(key)
    if isinstance(value, dict):
        value = value.get("rendered")
    return value if isinstance(value, str) else ""


def _lookup(raw: Any, path: tuple[str, ...]) -> Any:
    for key in path:
        if not isinstance(raw, dict):
            return None
        raw = raw.get(key)
    return raw


def _first_str(raw: dict, aliases: list[str]) -> str | None:
    for alias in aliases:
        value = raw.get(alias)
        if isinstance(value, str) and value:
            return value
    return None


def featured_image(raw: dict) -> str | None:
    media = _lookup(raw, ("_embedded", "wp:featuredmedia"))
    if isinstance(media, list) and media and isinstance(media[0], dict):
        url = media[0].get("source_url")
        if isinstance(url, str) and url:
            return url
    return None


def term_names(raw: dict) -> list[str]:
    terms = _lookup(raw, ("_embedded", "wp:term"))
    if not isinstance(terms, list) or not terms or not isinstance(terms[0], list):
        return []
    return [t["name"] for t in terms[0] if isinstance(t, dict) and isinstance(t.get("name"), str)]


def find_audio_url(content: str) -> str:
    """First linked audio file, preferring href= over src=. Empty if none."""
    match = HREF_AUDIO_PATTERN.search(content) or SRC_AUDIO_PATTERN.search(content)
    return match.group(1) if match else ""


# --- Sermons ---


def parse_sermon(raw: Any, decode: bool = False) -> Sermon | None:
    """Parse a post record. With decode=True, title and excerpt are entity-decoded."""
    if not isinstance(raw, dict) or raw.get("id") is None:
        return None

    content = _rendered(raw, "content")
    title = _rendered(raw, "title")
    excerpt = strip_tags(_rendered(raw, "excerpt"))
    if decode:
        title = decode_html(title)
        excerpt = decode_html(excerpt)

    try:
        return Sermon(
            id=raw["id"],
            title=title,
            date=str(raw.get("date") or ""),
            excerpt=excerpt,
            content=content,
            audio_url=find_audio_url(content),
            image_url=featured_image(raw) or placeholder_image(SERMON_PLACEHOLDER_SEED),
            categories=term_names(raw),
        )
    except ValueError as e:
        logger.warning(f"Skipping malformed post {raw.get('id')!r}: {e}")
        return None


def parse_sermons(records: Any, decode: bool = False) -> list[Sermon]:
    if not isinstance(records, list):
        return []
    sermons = (parse_sermon(record, decode=decode) for record in records)
    return [s for s in sermons if s is not None]


def virtual_sermon_from_track(
    track: Track, playlist: Playlist, now: datetime | None = None
) -> Sermon:
    """Wrap a playlist track as a Sermon so playback and bookmarks can address it."""
    now = now or datetime.now(timezone.utc)
    return Sermon(
        id=track.url,
        title=track.title,
        date=now.isoformat(),
        audio_url=track.url,
        image_url=playlist.image_url,
        categories=[playlist.title],
    )


# --- Playlists ---


def _coerce_track_records(value: Any) -> list[dict] | None:
    """
    Turn a candidate field into a list of track records.

    Any array wins its slot, even an empty one. None means the field is
    missing or unparseable and the next alias should be tried.
    """
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            value = json.loads(value)
        except ValueError:
            logger.warning("Failed to parse tracks JSON, trying next field")
            return None
    if not isinstance(value, list):
        return None
    return [item for item in value if isinstance(item, dict)]


def _tracks_from_fields(raw: dict) -> list[dict] | None:
    for path in TRACKLIST_FIELD_ALIASES:
        records = _coerce_track_records(_lookup(raw, path))
        if records is not None:
            return records
    return None


def _tracks_from_content(raw: dict) -> list[dict]:
    content = _rendered(raw, "content")
    return [
        {"title": title_from_filename(url), "url": url}
        for url in HREF_AUDIO_PATTERN.findall(content)
    ]


# Ordered strategies; the first one that returns records wins
TRACK_STRATEGIES: list[Callable[[dict], list[dict] | None]] = [
    _tracks_from_fields,
    _tracks_from_content,
]


def parse_track(record: dict, index: int) -> Track | None:
    url = _first_str(record, TRACK_URL_ALIASES)
    if not url:
        return None

    title = _first_str(record, TRACK_TITLE_ALIASES)
    if title is None:
        mp3 = record.get("track_mp3")
        if isinstance(mp3, str) and mp3:
            title = title_from_filename(mp3)
        else:
            title = f"Track {index + 1}"
    return Track(title=title, url=url)


def extract_tracks(raw: dict) -> list[Track]:
    records: list[dict] = []
    for strategy in TRACK_STRATEGIES:
        records = strategy(raw) or []
        if records:
            break

    tracks = (parse_track(record, index) for index, record in enumerate(records))
    return [t for t in tracks if t is not None]


def parse_playlist(raw: Any) -> Playlist | None:
    if not isinstance(raw, dict) or raw.get("id") is None:
        return None
    try:
        return Playlist(
            id=raw["id"],
            title=_rendered(raw, "title"),
            image_url=featured_image(raw) or placeholder_image(PLAYLIST_PLACEHOLDER_SEED),
            tracks=extract_tracks(raw),
        )
    except ValueError as e:
        logger.warning(f"Skipping malformed playlist {raw.get('id')!r}: {e}")
        return None


def parse_playlists(records: Any) -> list[Playlist]:
    if not isinstance(records, list):
        return []
    playlists = (parse_playlist(record) for record in records)
    return [p for p in playlists if p is not None]


# --- Quotes ---


def parse_quote(raw: Any) -> Quote | None:
    if not isinstance(raw, dict) or raw.get("id") is None:
        return None
    try:
        return Quote(
            id=raw["id"],
            content=decode_html(strip_tags(_rendered(raw, "content")).strip()),
            date=str(raw.get("date") or ""),
        )
    except ValueError as e:
        logger.warning(f"Skipping malformed quote {raw.get('id')!r}: {e}")
        return None


def parse_quotes(records: Any) -> list[Quote]:
    if not isinstance(records, list):
        return []
    quotes = (parse_quote(record) for record in records)
    return [q for q in quotes if q is not None]


def day_of_year(now: datetime) -> int:
    """
    Day number counted on the local wall clock (Jan 1 -> 1).

    Measuring from local midnight of Dec 31 on wall-clock time folds the DST
    offset difference between year start and now into the result, so a
    spring-forward day does not shift the count.
    """
    wall = now.replace(tzinfo=None)
    start = datetime(wall.year - 1, 12, 31)
    return int((wall - start).total_seconds() // 86400)


def select_daily_quote(quotes: list[Quote], now: datetime | None = None) -> Quote | None:
    if not quotes:
        return None
    now = now or datetime.now().astimezone()
    return quotes[day_of_year(now) % len(quotes)]
