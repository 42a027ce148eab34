"""
Jokebox Backend — HTTP Endpoint Tests
=======================================

What:  End-to-end checks of the routes, status codes and error bodies.
How:   HTTPX AsyncClient over ASGITransport; each test gets its own
       in-memory database through the test_client fixture.
"""

import asyncio
import json
from datetime import datetime

import pytest

from jokebox.services.broadcast import broadcast_registry
from jokebox.services.joke_service import joke_service

JOKE = {"setup": "why", "punchline": "because", "name": "Al"}


def parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


async def count_jokes(session_factory) -> int:
    async with session_factory() as session:
        return await joke_service.count(session)


class TestJokeCrud:

    @pytest.mark.asyncio
    async def test_create_then_get(self, test_client):
        response = await test_client.post("/jokes", json=JOKE)
        assert response.status_code == 201
        created = response.json()
        assert isinstance(created["id"], int)
        assert created["created_at"] == created["updated_at"]

        response = await test_client.get(f"/jokes/{created['id']}")
        assert response.status_code == 200
        body = response.json()
        assert body["setup"] == "why"
        assert body["punchline"] == "because"
        assert body["author"] == "Al"

    @pytest.mark.asyncio
    async def test_create_missing_fields_is_400(self, test_client, session_factory):
        response = await test_client.post("/jokes", json={"setup": "why"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["missing_fields"] == ["punchline", "author"]
        assert await count_jokes(session_factory) == 0

    @pytest.mark.asyncio
    async def test_create_without_body_is_400(self, test_client):
        response = await test_client.post("/jokes")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_get_unknown_is_404(self, test_client):
        response = await test_client.get("/jokes/9999")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_id_beyond_column_range(self, test_client):
        huge = "99999999999999999999999"

        response = await test_client.get(f"/jokes/{huge}")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

        response = await test_client.put(f"/jokes/{huge}", json={"setup": "X"})
        assert response.status_code == 500
        assert response.json()["error"] == "server_error"

        response = await test_client.delete(f"/jokes/{huge}")
        assert response.status_code == 500
        assert response.json()["error"] == "server_error"

    @pytest.mark.asyncio
    async def test_non_integer_id_is_400(self, test_client):
        response = await test_client.get("/jokes/abc")
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_list_with_name_filter(self, test_client):
        for author in ("Alice", "NATALIA", "Bob"):
            await test_client.post("/jokes", json={**JOKE, "name": author})

        response = await test_client.get("/jokes", params={"name": "ali"})
        assert response.status_code == 200
        assert sorted(j["author"] for j in response.json()) == ["Alice", "NATALIA"]

        response = await test_client.get("/jokes")
        assert len(response.json()) == 3

    @pytest.mark.asyncio
    async def test_update_partial(self, test_client):
        created = (await test_client.post("/jokes", json=JOKE)).json()

        response = await test_client.put(f"/jokes/{created['id']}", json={"setup": "X"})

        assert response.status_code == 200
        body = response.json()
        assert body["setup"] == "X"
        assert body["punchline"] == "because"
        assert body["author"] == "Al"
        assert parse_ts(body["updated_at"]) > parse_ts(created["updated_at"])

    @pytest.mark.asyncio
    async def test_update_unknown_is_500(self, test_client):
        response = await test_client.put("/jokes/9999", json={"setup": "X"})
        assert response.status_code == 500
        assert response.json()["error"] == "server_error"

    @pytest.mark.asyncio
    async def test_delete(self, test_client):
        created = (await test_client.post("/jokes", json=JOKE)).json()

        response = await test_client.delete(f"/jokes/{created['id']}")
        assert response.status_code == 204
        assert response.content == b""

        assert (await test_client.get(f"/jokes/{created['id']}")).status_code == 404
        assert (await test_client.delete(f"/jokes/{created['id']}")).status_code == 500

    @pytest.mark.asyncio
    async def test_random_empty_is_404(self, test_client):
        response = await test_client.get("/jokes/random/one")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_random_returns_a_stored_joke(self, test_client):
        ids = set()
        for i in range(3):
            ids.add((await test_client.post("/jokes", json={**JOKE, "setup": f"s{i}"})).json()["id"])

        response = await test_client.get("/jokes/random/one")
        assert response.status_code == 200
        assert response.json()["id"] in ids


class TestAdvancedJoke:

    @pytest.mark.asyncio
    async def test_missing_header_is_401_and_writes_nothing(self, test_client, session_factory):
        response = await test_client.post("/advanced-joke", json=JOKE)
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"
        assert await count_jokes(session_factory) == 0

    @pytest.mark.asyncio
    async def test_wrong_header_is_401_and_writes_nothing(self, test_client, session_factory):
        response = await test_client.post(
            "/advanced-joke", json=JOKE, headers={"auth-key": "nope"}
        )
        assert response.status_code == 401
        assert await count_jokes(session_factory) == 0

    @pytest.mark.asyncio
    async def test_correct_header_creates(self, test_client, session_factory):
        response = await test_client.post(
            "/advanced-joke", json=JOKE, headers={"auth-key": "test-auth-key"}
        )
        assert response.status_code == 201
        assert response.json()["author"] == "Al"
        assert await count_jokes(session_factory) == 1

    @pytest.mark.asyncio
    async def test_correct_header_missing_fields_is_400(self, test_client):
        response = await test_client.post(
            "/advanced-joke", json={"setup": "x"}, headers={"auth-key": "test-auth-key"}
        )
        assert response.status_code == 400


class TestLivePublish:

    @pytest.mark.asyncio
    async def test_created_joke_reaches_subscribers(self, test_client):
        channel = broadcast_registry.subscribe()
        try:
            created = (await test_client.post("/jokes", json=JOKE)).json()

            assert channel.pending == 1
            message = await channel.messages().__anext__()
            assert json.loads(message)["id"] == created["id"]
        finally:
            broadcast_registry.unsubscribe(channel)

    @pytest.mark.asyncio
    async def test_rejected_create_publishes_nothing(self, test_client):
        channel = broadcast_registry.subscribe()
        try:
            await test_client.post("/jokes", json={"setup": "only"})
            await test_client.post("/advanced-joke", json=JOKE)
            assert channel.pending == 0
        finally:
            broadcast_registry.unsubscribe(channel)


class EventStreamClient:
    """
    Minimal ASGI client for GET /events.

    httpx's ASGITransport only returns once the app has finished, which an
    event stream never does; this one hands out messages as they are sent
    and delivers http.disconnect when told to.
    """

    def __init__(self, app):
        self.app = app
        self.sent: asyncio.Queue = asyncio.Queue()
        self._disconnected = asyncio.Event()
        self._request_delivered = False
        self.task = None

    async def _receive(self):
        if not self._request_delivered:
            self._request_delivered = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await self._disconnected.wait()
        return {"type": "http.disconnect"}

    async def _send(self, message):
        await self.sent.put(message)

    async def open(self) -> dict:
        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": "GET",
            "scheme": "http",
            "path": "/events",
            "raw_path": b"/events",
            "root_path": "",
            "query_string": b"",
            "headers": [(b"host", b"test"), (b"accept", b"text/event-stream")],
            "client": ("127.0.0.1", 50000),
            "server": ("test", 80),
        }
        self.task = asyncio.create_task(self.app(scope, self._receive, self._send))
        start = await asyncio.wait_for(self.sent.get(), timeout=2.0)
        assert start["type"] == "http.response.start"
        return start

    async def next_chunk(self) -> bytes:
        while True:
            message = await asyncio.wait_for(self.sent.get(), timeout=2.0)
            if message["type"] == "http.response.body" and message.get("body"):
                return message["body"]

    async def disconnect(self) -> None:
        self._disconnected.set()
        await asyncio.wait_for(self.task, timeout=2.0)


class TestEventsEndpoint:

    @pytest.mark.asyncio
    async def test_stream_delivers_new_jokes_and_cleans_up(self, test_client):
        from jokebox.main import app

        before = broadcast_registry.subscriber_count
        client = EventStreamClient(app)

        start = await client.open()
        headers = {k.decode(): v.decode() for k, v in start["headers"]}
        assert start["status"] == 200
        assert headers["content-type"].startswith("text/event-stream")
        assert headers["cache-control"].startswith("no-cache")
        assert broadcast_registry.subscriber_count == before + 1

        created = (await test_client.post("/jokes", json=JOKE)).json()

        frame = (await client.next_chunk()).decode()
        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame[len("data: "):])["id"] == created["id"]

        await client.disconnect()
        assert broadcast_registry.subscriber_count == before


class TestMisc:

    @pytest.mark.asyncio
    async def test_index_lists_endpoints(self, test_client):
        response = await test_client.get("/")
        assert response.status_code == 200
        assert "GET /events" in response.json()["endpoints"]

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["database"] == "connected"
        assert body["subscribers"] == broadcast_registry.subscriber_count
        assert body["dropped_subscribers"] == broadcast_registry.dropped

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/", headers={"X-Request-ID": "abc12345"})
        assert response.headers["X-Request-ID"] == "abc12345"
