from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Numeric ids are CMS posts, string ids are playlist track urls
ItemId = int | str


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# --- Content ---


class Sermon(CamelModel):
    id: ItemId
    title: str
    date: str = ""
    excerpt: str = ""
    content: str = ""
    audio_url: str = ""
    image_url: str = ""
    categories: list[str] = Field(default_factory=list)

    @property
    def playable(self) -> bool:
        return bool(self.audio_url)


class Track(CamelModel):
    title: str
    url: str


class Playlist(CamelModel):
    id: int
    title: str
    image_url: str = ""
    tracks: list[Track] = Field(default_factory=list)


class Quote(CamelModel):
    id: int
    content: str
    date: str = ""


# --- Client state ---


class StreakRecord(CamelModel):
    count: int = Field(default=0, ge=0)
    last_visit_date: date | None = None


class SyncPayload(CamelModel):
    streak: int = Field(default=0, ge=0)
    bookmarks: list[ItemId] = Field(default_factory=list)
    last_visit_date: date | None = None


# --- Listening ---


class ListenRequest(CamelModel):
    sermon_id: ItemId
    sermon_title: str = ""
    album_title: str | None = None
    duration_seconds: int = Field(gt=0)


class ListeningEvent(CamelModel):
    model_config = ConfigDict(frozen=True)

    sermon_id: ItemId
    sermon_title: str = ""
    album_title: str | None = None
    timestamp: str = ""
    duration_seconds: int = Field(gt=0)


class ListeningStats(CamelModel):
    total_seconds: int = Field(default=0, ge=0)
    history: list[ListeningEvent] = Field(default_factory=list)


class UserAggregate(CamelModel):
    streak: int = 0
    bookmarks: list[ItemId] = Field(default_factory=list)
    last_visit_date: date | None = None
    listening_stats: ListeningStats = Field(default_factory=ListeningStats)


class RankedItem(CamelModel):
    title: str | None = None
    count: int = 0


class WrappedStats(CamelModel):
    total_hours: float = 0
    top_sermon: RankedItem | None = None
    top_album: RankedItem | None = None
