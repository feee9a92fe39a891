# src/sermon_sync/config.py
"""
Sermon Sync Configuration

CONTENT SOURCE:
Sermons, playlists and quotes come from a WordPress REST API reached through
a same-origin forwarding proxy. Playlist track data lives in one of several
custom fields depending on the audio plugin version, so the alias chains
below are tried in order and the first usable one wins.

LISTENING REPORTS:
Played seconds are flushed to the sync server in whole windows of
REPORT_THRESHOLD_SECONDS, checked every REPORT_TICK_SECONDS.
"""

import os
from pathlib import Path

# Content API
CMS_BASE_URL = os.getenv("SERMON_SYNC_CMS_URL", "http://localhost:3000/api/wp-proxy/wp/v2")
DEFAULT_PAGE_SIZE = 10
SEARCH_PAGE_SIZE = 20
QUOTE_POOL_SIZE = 30

# WordPress category ids for the sub-views
MUSIC_CATEGORY_ID = 18
NOTES_CATEGORY_ID = 14

# Placeholder images are seeded per entity kind, not per id
PLACEHOLDER_IMAGE_URL = "https://picsum.photos/seed/{seed}/800/600"
SERMON_PLACEHOLDER_SEED = "sermon"
PLAYLIST_PLACEHOLDER_SEED = "playlist"

# Playlist track field aliases, in priority order.
# Each entry is a path into the raw record.
TRACKLIST_FIELD_ALIASES = [
    ("alb_tracklist",),
    ("meta", "alb_tracklist"),
    ("sonaar_tracks",),
    ("tracks",),
    ("track_list",),
    ("sonaar_track_list",),
    ("meta", "_sonaar_tracks"),
    ("meta", "sonaar_tracks"),
]
TRACK_TITLE_ALIASES = ["track_title", "title", "name", "stream_title"]
TRACK_URL_ALIASES = ["track_mp3", "url", "file_url", "audio_file", "mp3"]

AUDIO_EXTENSIONS = ["mp3"]

# Sync server
SYNC_API_URL = os.getenv("SERMON_SYNC_API_URL", "http://localhost:3000")
HTTP_TIMEOUT = 30.0

# Listening reporter
REPORT_THRESHOLD_SECONDS = 30
REPORT_TICK_SECONDS = 5.0

# Storage
DATA_DIR = Path.home() / ".sermon-sync"
DB_PATH = os.getenv("SERMON_SYNC_DB_PATH")
LOCAL_DB_PATH = os.getenv("SERMON_SYNC_LOCAL_DB_PATH")
