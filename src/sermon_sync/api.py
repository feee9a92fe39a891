"""Sermon Sync REST API: per-user streak, bookmarks and listening aggregates."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[2] / ".env")

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .db import AggregationStore
from .models import ListenRequest, SyncPayload
from .stats import compute_wrapped

logger = logging.getLogger(__name__)

store: AggregationStore | None = None


def empty_user() -> dict:
    return {"streak": 0, "bookmarks": [], "listeningStats": {"totalSeconds": 0, "history": []}}


@asynccontextmanager
async def lifespan(app: FastAPI):
    global store
    store = AggregationStore()
    logger.info(f"Aggregation store at {store.db_path}")
    yield
    store.close()
    store = None


def get_store() -> AggregationStore:
    if store is None:
        raise RuntimeError("Aggregation store is not initialized")
    return store


app = FastAPI(title="Sermon Sync", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- User Aggregates ---


@app.get("/api/user/{identity}")
async def get_user(identity: str, db: AggregationStore = Depends(get_store)):
    user = db.get_user(identity)
    if user is None:
        return empty_user()
    return user.to_wire()


@app.post("/api/user/{identity}/sync")
async def sync_user(identity: str, payload: SyncPayload, db: AggregationStore = Depends(get_store)):
    db.upsert_sync(identity, payload)
    return {"status": "ok"}


@app.post("/api/user/{identity}/listen")
async def report_listening(identity: str, req: ListenRequest, db: AggregationStore = Depends(get_store)):
    db.record_listening(identity, req)
    return {"status": "ok"}


@app.get("/api/user/{identity}/wrapped")
async def get_wrapped(identity: str, db: AggregationStore = Depends(get_store)):
    return compute_wrapped(db.get_listening_stats(identity)).to_wire()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=3000)
