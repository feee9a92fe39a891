import httpx
import pytest
from unittest.mock import patch

from sermon_sync.models import ListenRequest, SyncPayload
from sermon_sync.sync_client import SyncClient


def mock_transport(handler):
    real_client = httpx.AsyncClient
    return patch(
        "sermon_sync.sync_client.httpx.AsyncClient",
        lambda: real_client(transport=httpx.MockTransport(handler)),
    )


@pytest.fixture
def client():
    return SyncClient(base_url="http://sync.test/")


@pytest.mark.asyncio
async def test_push_sends_camel_case_body(client):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = request.content
        return httpx.Response(200, json={"status": "ok"})

    with mock_transport(handler):
        result = await client.push("me@example.com", SyncPayload(streak=2, bookmarks=[1, "a.mp3"]))

    assert result.ok
    assert result.data == {"status": "ok"}
    assert seen["url"].startswith("http://sync.test/api/user/me")
    assert seen["url"].endswith("example.com/sync")
    assert b'"lastVisitDate"' in seen["body"]
    assert b'"bookmarks":[1,"a.mp3"]' in seen["body"].replace(b" ", b"")


@pytest.mark.asyncio
async def test_report_listening(client):
    def handler(request):
        assert request.url.path.endswith("/listen")
        return httpx.Response(200, json={"status": "ok"})

    with mock_transport(handler):
        result = await client.report_listening(
            "me@example.com", ListenRequest(sermon_id=3, sermon_title="T", duration_seconds=30)
        )

    assert result.ok


@pytest.mark.asyncio
async def test_fetch_wrapped_parses_model(client):
    def handler(request):
        return httpx.Response(
            200, json={"totalHours": 1.2, "topSermon": {"title": "Grace", "count": 4}, "topAlbum": None}
        )

    with mock_transport(handler):
        result = await client.fetch_wrapped("me@example.com")

    assert result.ok
    assert result.data.total_hours == 1.2
    assert result.data.top_sermon.count == 4
    assert result.data.top_album is None


@pytest.mark.asyncio
async def test_fetch_user_default_shape(client):
    def handler(request):
        return httpx.Response(
            200, json={"streak": 0, "bookmarks": [], "listeningStats": {"totalSeconds": 0, "history": []}}
        )

    with mock_transport(handler):
        result = await client.fetch_user("new@example.com")

    assert result.ok
    assert result.data.streak == 0
    assert result.data.listening_stats.history == []


@pytest.mark.asyncio
async def test_failures_are_returned_not_raised(client):
    def handler(request):
        return httpx.Response(503)

    with mock_transport(handler):
        result = await client.push("me@example.com", SyncPayload(streak=1))

    assert not result.ok
    assert "503" in result.error


@pytest.mark.asyncio
async def test_connection_error(client):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with mock_transport(handler):
        result = await client.fetch_wrapped("me@example.com")

    assert not result.ok
    assert result.data is None
