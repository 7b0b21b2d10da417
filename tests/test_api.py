"""
HTTP-level tests for the Swipematch API, run in-process through
``httpx.ASGITransport`` against the per-test SQLite store.
"""

import asyncio
import uuid
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi import FastAPI
from tenacity import wait_none

from app import main
from app.errors import StoreFailureError


async def _create_user(client, username):
    resp = await client.post(
        "/api/v1/users",
        json={"username": username, "display_name": username.title(), "age": 30},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestHealth:
    @pytest.mark.asyncio
    async def test_liveness(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "service": "swipematch"}

    @pytest.mark.asyncio
    async def test_deep_reports_database(self, client):
        resp = await client.get("/health/deep")
        assert resp.json() == {"status": "healthy", "database": "connected"}

    @pytest.mark.asyncio
    async def test_deep_degraded_when_store_unreachable(self, client, store):
        down = AsyncMock(side_effect=StoreFailureError("unable to open database"))
        with patch.object(store, "ping", down):
            resp = await client.get("/health/deep")

        assert resp.status_code == 200
        assert resp.json()["status"] == "degraded"


class TestUsersApi:
    @pytest.mark.asyncio
    async def test_create_get_and_list(self, client):
        created = await _create_user(client, "dana")

        fetched = await client.get(f"/api/v1/users/{created['id']}")
        listed = await client.get("/api/v1/users")

        assert fetched.status_code == 200
        assert fetched.json()["username"] == "dana"
        assert [u["id"] for u in listed.json()] == [created["id"]]

    @pytest.mark.asyncio
    async def test_duplicate_username_conflict(self, client):
        await _create_user(client, "dana")
        resp = await client.post(
            "/api/v1/users",
            json={"username": "dana", "display_name": "Other", "age": 30},
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["kind"] == "conflict"

    @pytest.mark.asyncio
    async def test_unknown_user_not_found(self, client):
        resp = await client.get(f"/api/v1/users/{uuid.uuid4()}")
        assert resp.status_code == 404


class TestSwipeMatchMessageApi:
    @pytest.mark.asyncio
    async def test_mutual_like_then_conversation(self, client):
        a = await _create_user(client, "ann")
        b = await _create_user(client, "ben")

        first = await client.post(
            "/api/v1/swipes",
            json={"swiper_id": a["id"], "target_id": b["id"], "decision": "like"},
        )
        assert first.status_code == 201
        assert first.json()["matched"] is False
        assert first.json()["match_id"] is None

        second = await client.post(
            "/api/v1/swipes",
            json={"swiper_id": b["id"], "target_id": a["id"], "decision": "like"},
        )
        body = second.json()
        assert body["matched"] is True
        match_id = body["match_id"]

        matches = (await client.get(f"/api/v1/matches/user/{a['id']}")).json()
        assert [m["match_id"] for m in matches] == [match_id]
        assert matches[0]["other_username"] == "ben"

        sent = await client.post(
            "/api/v1/messages",
            json={"match_id": match_id, "sender_id": b["id"], "content": "hey"},
        )
        assert sent.status_code == 201
        assert sent.json()["is_read"] is False

        listed = (await client.get(f"/api/v1/messages/{match_id}")).json()
        assert [m["content"] for m in listed] == ["hey"]

        read = await client.post(
            f"/api/v1/messages/{match_id}/read", json={"reader_id": a["id"]}
        )
        assert read.json() == {"match_id": match_id, "updated": 1}

        match = (await client.get(f"/api/v1/matches/{match_id}")).json()
        assert match["last_message_at"] is not None

    @pytest.mark.asyncio
    async def test_pass_never_reports_match(self, client):
        a = await _create_user(client, "ann")
        b = await _create_user(client, "ben")
        await client.post(
            "/api/v1/swipes",
            json={"swiper_id": a["id"], "target_id": b["id"], "decision": "like"},
        )

        resp = await client.post(
            "/api/v1/swipes",
            json={"swiper_id": b["id"], "target_id": a["id"], "decision": "pass"},
        )

        assert resp.json()["matched"] is False


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_self_swipe_is_bad_request(self, client):
        a = await _create_user(client, "ann")
        resp = await client.post(
            "/api/v1/swipes",
            json={"swiper_id": a["id"], "target_id": a["id"], "decision": "like"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["kind"] == "invalid_argument"

    @pytest.mark.asyncio
    async def test_unknown_decision_is_validation_error(self, client):
        resp = await client.post(
            "/api/v1/swipes",
            json={
                "swiper_id": str(uuid.uuid4()),
                "target_id": str(uuid.uuid4()),
                "decision": "superlike",
            },
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_target_is_store_failure(self, client):
        a = await _create_user(client, "ann")
        resp = await client.post(
            "/api/v1/swipes",
            json={"swiper_id": a["id"], "target_id": str(uuid.uuid4()), "decision": "like"},
        )
        assert resp.status_code == 503
        assert resp.json() == {
            "error": {"kind": "store_failure", "message": "Database error"}
        }

    @pytest.mark.asyncio
    async def test_message_to_unknown_match_not_found(self, client):
        a = await _create_user(client, "ann")
        resp = await client.post(
            "/api/v1/messages",
            json={"match_id": str(uuid.uuid4()), "sender_id": a["id"], "content": "hi"},
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["kind"] == "not_found"

    @pytest.mark.asyncio
    async def test_unknown_user_matches_not_found(self, client):
        resp = await client.get(f"/api/v1/matches/user/{uuid.uuid4()}")
        assert resp.status_code == 404


class TestStartupPing:
    @pytest.fixture(autouse=True)
    def _no_backoff(self, monkeypatch):
        monkeypatch.setattr(main, "wait_exponential", lambda **_: wait_none())

    @pytest.mark.asyncio
    async def test_retries_until_store_answers(self):
        store = AsyncMock()
        store.ping.side_effect = [StoreFailureError("starting up"), None]

        await main._wait_for_store(store)

        assert store.ping.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_configured_attempts(self, monkeypatch, settings):
        monkeypatch.setattr(
            main, "settings", settings.model_copy(update={"DB_CONNECT_ATTEMPTS": 1})
        )
        store = AsyncMock()
        store.ping.side_effect = StoreFailureError("refused")

        with pytest.raises(StoreFailureError):
            await main._wait_for_store(store)
        assert store.ping.await_count == 1


class TestRequestMiddleware:
    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        resp = await client.get("/health", headers={"X-Request-ID": "req-42"})
        assert resp.headers["X-Request-ID"] == "req-42"

    @pytest.mark.asyncio
    async def test_request_id_generated_when_absent(self, client):
        resp = await client.get("/health")
        assert len(resp.headers["X-Request-ID"]) == 32

    @pytest.mark.asyncio
    async def test_slow_request_gets_504(self):
        slow_app = FastAPI()

        @slow_app.get("/slow")
        async def slow() -> dict:
            await asyncio.sleep(1)
            return {}

        slow_app.add_middleware(main.TimeoutMiddleware, timeout_seconds=0.05)
        transport = httpx.ASGITransport(app=slow_app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            resp = await c.get("/slow")

        assert resp.status_code == 504
        assert resp.json()["error"]["kind"] == "timeout"


class TestInFlightRequests:
    @pytest.mark.asyncio
    async def test_drain_returns_once_idle(self):
        tracker = main.InFlightRequests(drain_timeout=1.0)
        tracker.enter()

        async def finish():
            await asyncio.sleep(0.01)
            tracker.leave()

        _, drained = await asyncio.gather(finish(), tracker.drain())

        assert drained is True
        assert tracker.count == 0

    @pytest.mark.asyncio
    async def test_drain_gives_up_after_timeout(self):
        tracker = main.InFlightRequests(drain_timeout=0.01)
        tracker.enter()

        assert await tracker.drain() is False
        assert tracker.count == 1
