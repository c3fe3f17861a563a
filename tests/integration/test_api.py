"""
Integration tests for the HTTP API.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.dependencies import (
    get_event_publisher,
    get_playback_scheduler,
    get_scanner,
    get_schedule_store,
)
from app.main import app
from app.services.scheduler_service import PlaybackScheduler
from tests.conftest import NOW, make_schedule


def _parse(ts: str) -> datetime:
    return datetime.fromisoformat(ts.replace("Z", "+00:00"))


@pytest_asyncio.fixture
async def client(store, publisher, scanner) -> AsyncGenerator[AsyncClient, None]:
    scheduler = PlaybackScheduler(scanner)
    app.dependency_overrides[get_schedule_store] = lambda: store
    app.dependency_overrides[get_event_publisher] = lambda: publisher
    app.dependency_overrides[get_scanner] = lambda: scanner
    app.dependency_overrides[get_playback_scheduler] = lambda: scheduler

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def _request(**overrides) -> dict:
    body = {
        "userId": "u1",
        "title": "Evening News",
        "channel": "news",
        "date": "2030-01-01",
        "time": "12:00",
        "recurrence": "NONE",
        "programUrl": "http://media.test/news.mp4",
    }
    body.update(overrides)
    return body


@pytest.mark.integration
class TestScheduleCrud:

    @pytest.mark.asyncio
    async def test_create_and_fetch(self, client, store):
        response = await client.post("/api/schedules", json=_request(durationMin=45))

        assert response.status_code == 201
        body = response.json()
        assert body["userId"] == "u1"
        assert body["durationMin"] == 45
        assert body["recurrence"] == "NONE"
        assert _parse(body["startAt"]) == datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)

        stored = await store.get(body["id"])
        assert stored.preplay_published is False

        fetched = await client.get(f"/api/schedules/{body['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["title"] == "Evening News"

    @pytest.mark.asyncio
    async def test_create_defaults_duration(self, client):
        response = await client.post("/api/schedules", json=_request())

        assert response.json()["durationMin"] == 30

    @pytest.mark.asyncio
    async def test_create_validation_error(self, client):
        response = await client.post("/api/schedules", json=_request(time="7pm"))

        assert response.status_code == 422
        assert response.json()["detail"][0]["loc"][-1] == "time"

    @pytest.mark.asyncio
    async def test_create_rejects_unknown_recurrence(self, client):
        response = await client.post("/api/schedules", json=_request(recurrence="HOURLY"))

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_create_impossible_date_is_bad_request(self, client):
        response = await client.post("/api/schedules", json=_request(date="2030-02-30"))

        assert response.status_code == 400
        assert "Invalid date/time" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_get_missing_is_404(self, client):
        response = await client.get("/api/schedules/does-not-exist")

        assert response.status_code == 404
        assert "does-not-exist" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_list_filters(self, client, store):
        await store.save(make_schedule("a", NOW, user_id="u1", channel="news"))
        await store.save(make_schedule("b", NOW, user_id="u2", channel="news"))
        await store.save(make_schedule("c", NOW, user_id="u2", channel="sports"))

        by_user = await client.get("/api/schedules", params={"userId": "u2"})
        by_channel = await client.get("/api/schedules", params={"channel": "news"})
        everything = await client.get("/api/schedules")

        assert {s["id"] for s in by_user.json()} == {"b", "c"}
        assert {s["id"] for s in by_channel.json()} == {"a", "b"}
        assert {s["id"] for s in everything.json()} == {"a", "b", "c"}

    @pytest.mark.asyncio
    async def test_upcoming(self, client, store):
        now = datetime.now(timezone.utc)
        await store.save(make_schedule("past", now - timedelta(hours=1)))
        await store.save(make_schedule("second", now + timedelta(hours=2)))
        await store.save(make_schedule("first", now + timedelta(hours=1)))
        await store.save(make_schedule("third", now + timedelta(hours=3)))

        response = await client.get("/api/schedules/upcoming", params={"userId": "u1", "limit": 2})
        unlimited = await client.get("/api/schedules/upcoming", params={"limit": 0})

        assert [s["id"] for s in response.json()] == ["first", "second"]
        assert [s["id"] for s in unlimited.json()] == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, client, store):
        await store.save(make_schedule("a", NOW))

        first = await client.delete("/api/schedules/a")
        second = await client.delete("/api/schedules/a")

        assert first.status_code == 204
        assert second.status_code == 204
        assert await store.get("a") is None


@pytest.mark.integration
class TestNowPlayingEndpoint:

    @pytest.mark.asyncio
    async def test_nothing_scheduled(self, client):
        response = await client.get("/api/schedules/now", params={"userId": "u1"})

        assert response.status_code == 200
        assert response.json() == {"status": "NONE", "entry": None, "nextEntry": None}

    @pytest.mark.asyncio
    async def test_playing_and_next(self, client, store):
        now = datetime.now(timezone.utc)
        await store.save(make_schedule("live", now - timedelta(minutes=5, seconds=10), duration_min=60))
        await store.save(make_schedule("next", now + timedelta(hours=2)))

        response = await client.get("/api/schedules/now", params={"userId": "u1"})

        body = response.json()
        assert body["status"] == "PLAY"
        assert body["entry"]["id"] == "live"
        assert body["entry"]["skipStartMin"] == 5
        assert body["entry"]["videoUrl"] == "http://media.test/live.mp4"
        assert body["nextEntry"]["id"] == "next"
        assert body["nextEntry"]["skipStartMin"] == 0

    @pytest.mark.asyncio
    async def test_user_id_is_required(self, client):
        response = await client.get("/api/schedules/now")

        assert response.status_code == 422


@pytest.mark.integration
class TestSchedulerEndpoints:

    @pytest.mark.asyncio
    async def test_manual_scan(self, client, store, publisher):
        await store.save(make_schedule("a", NOW + timedelta(minutes=5)))

        response = await client.post("/scan")

        body = response.json()
        assert response.status_code == 200
        assert body["scanNumber"] == 1
        assert body["claimed"] == 1
        assert body["dispatched"] == 1
        assert body["dropped"] == 0
        assert [e.schedule_id for e in publisher.events] == ["a"]

    @pytest.mark.asyncio
    async def test_status_and_health(self, client):
        await client.post("/scan")

        status = (await client.get("/api/scheduler/status")).json()
        health = (await client.get("/health")).json()

        assert status["scanCount"] == 1
        assert status["running"] is False
        assert _parse(status["lastScan"]) == NOW
        assert status["lastSummary"]["status"] == "success"
        assert health["status"] == "ok"
        assert health["scan_count"] == 1
        assert health["scheduler_running"] is False

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")

        assert response.json()["service"] == "Playback Scheduler"

    @pytest.mark.asyncio
    async def test_debug_publish(self, client, publisher):
        response = await client.post("/api/debug/publish-test", params={"id": "manual7", "userId": "u9"})

        assert response.status_code == 200
        assert response.json()["status"] == "published"
        assert publisher.events[0].schedule_id == "manual7"
        assert publisher.events[0].user_id == "u9"


@pytest.mark.integration
class TestCors:

    @pytest.mark.asyncio
    async def test_preflight_allows_any_origin(self, client):
        response = await client.options(
            "/api/schedules/now",
            params={"userId": "u1"},
            headers={
                "Origin": "http://player.example.com",
                "Access-Control-Request-Method": "GET",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "GET" in response.headers["access-control-allow-methods"]

    @pytest.mark.asyncio
    async def test_cross_origin_get_carries_allow_origin(self, client):
        response = await client.get(
            "/api/schedules/now",
            params={"userId": "u1"},
            headers={"Origin": "http://player.example.com"},
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
