"""HTTP client for the per-user sync server."""

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from .config import HTTP_TIMEOUT, SYNC_API_URL
from .models import ListenRequest, SyncPayload, UserAggregate, WrappedStats


@dataclass
class SyncResult:
    """Outcome of one sync call. Transport errors are captured here, not raised."""

    ok: bool
    data: Any = None
    error: str | None = None


class SyncClient:
    """Async client for the /api/user endpoints. No retries; callers decide what a failure means."""

    def __init__(self, base_url: str | None = None, timeout: float = HTTP_TIMEOUT):
        self.base_url = (base_url or SYNC_API_URL).rstrip("/")
        self.timeout = timeout

    def _url(self, identity: str, suffix: str = "") -> str:
        return f"{self.base_url}/api/user/{quote(identity, safe='')}{suffix}"

    async def _request(self, method: str, url: str, body: dict | None = None) -> SyncResult:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.request(method, url, json=body, timeout=self.timeout)
                response.raise_for_status()
                return SyncResult(ok=True, data=response.json())
        except (httpx.HTTPError, ValueError) as e:
            return SyncResult(ok=False, error=f"{method} {url} failed: {e}")

    async def push(self, identity: str, payload: SyncPayload) -> SyncResult:
        """Upsert streak, bookmarks and last visit date."""
        return await self._request("POST", self._url(identity, "/sync"), payload.to_wire())

    async def report_listening(self, identity: str, request: ListenRequest) -> SyncResult:
        return await self._request("POST", self._url(identity, "/listen"), request.to_wire())

    async def fetch_user(self, identity: str) -> SyncResult:
        result = await self._request("GET", self._url(identity))
        if result.ok:
            try:
                result.data = UserAggregate.model_validate(result.data)
            except ValueError as e:
                return SyncResult(ok=False, error=f"Unexpected user payload: {e}")
        return result

    async def fetch_wrapped(self, identity: str) -> SyncResult:
        result = await self._request("GET", self._url(identity, "/wrapped"))
        if result.ok:
            try:
                result.data = WrappedStats.model_validate(result.data)
            except ValueError as e:
                return SyncResult(ok=False, error=f"Unexpected wrapped payload: {e}")
        return result
