"""Tests for KV stores, OAuth sessions and installation grants."""

from __future__ import annotations

import json

import httpx
import pytest

from mcp_project_manager.errors import NetworkError, ProjectManagerError
from mcp_project_manager.sessions.manager import InstallationGrantStore, SessionManager
from mcp_project_manager.sessions.store import MemoryStore, UpstashStore


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


# ===================================================================
# Stores
# ===================================================================


class TestMemoryStore:
    async def test_set_get_delete(self):
        store = MemoryStore()

        await store.set("k", "v", 60)
        assert await store.get("k") == "v"

        await store.delete("k")
        assert await store.get("k") is None

    async def test_entries_expire(self):
        clock = FakeClock()
        store = MemoryStore(clock=clock)
        await store.set("k", "v", 10)

        clock.now += 9
        assert await store.get("k") == "v"
        clock.now += 1
        assert await store.get("k") is None

    async def test_writes_sweep_expired_entries(self):
        clock = FakeClock()
        store = MemoryStore(clock=clock)
        await store.set("abandoned", "v", 10)
        await store.set("live", "v", 60)

        clock.now += 10
        await store.set("new", "v", 10)

        assert set(store._items) == {"live", "new"}

    async def test_delete_missing_key(self):
        await MemoryStore().delete("nope")


def _upstash(handler) -> tuple[UpstashStore, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return UpstashStore(http, "https://kv.example.com/", "kv-token"), seen


class TestUpstashStore:
    async def test_set_sends_command_array(self):
        store, seen = _upstash(lambda _: httpx.Response(200, json={"result": "OK"}))

        await store.set("session:abc", "{}", 1800)

        request = seen[0]
        assert request.url.host == "kv.example.com"
        assert request.method == "POST"
        assert request.headers["Authorization"] == "Bearer kv-token"
        assert json.loads(request.content) == ["SET", "session:abc", "{}", "EX", "1800"]

    async def test_get_returns_result(self):
        store, _ = _upstash(lambda _: httpx.Response(200, json={"result": "value"}))
        assert await store.get("k") == "value"

    async def test_get_missing(self):
        store, _ = _upstash(lambda _: httpx.Response(200, json={"result": None}))
        assert await store.get("k") is None

    async def test_error_body(self):
        store, _ = _upstash(lambda _: httpx.Response(400, json={"error": "WRONGPASS"}))

        with pytest.raises(ProjectManagerError, match="KV store DEL failed: WRONGPASS"):
            await store.delete("k")

    async def test_transport_failure(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        store, _ = _upstash(refuse)
        with pytest.raises(NetworkError):
            await store.get("k")


# ===================================================================
# Sessions and grants
# ===================================================================


class TestSessionManager:
    async def test_create_and_get(self):
        clock = FakeClock(1_700_000_000_000)
        manager = SessionManager(MemoryStore(), clock=clock)

        session = await manager.create("gho_token", "octocat", ip_address="1.2.3.4")
        loaded = await manager.get(session.session_id)

        assert loaded == session
        assert session.expires_at - session.created_at == 30 * 60 * 1000
        assert len(session.session_id) >= 40

    async def test_ids_are_unique(self):
        manager = SessionManager(MemoryStore())
        first = await manager.create("t", "u")
        second = await manager.create("t", "u")
        assert first.session_id != second.session_id

    async def test_expired_session_is_deleted(self):
        clock = FakeClock(1_000)
        store = MemoryStore()
        manager = SessionManager(store, clock=clock)
        session = await manager.create("t", "u")

        clock.now = session.expires_at + 1
        assert await manager.get(session.session_id) is None
        assert await store.get(f"session:{session.session_id}") is None

    async def test_malformed_session_is_discarded(self):
        store = MemoryStore()
        await store.set("session:bad", "not json", 60)

        assert await SessionManager(store).get("bad") is None
        assert await store.get("session:bad") is None

    async def test_unknown_session(self):
        assert await SessionManager(MemoryStore()).get("missing") is None


class TestInstallationGrantStore:
    async def test_save_and_get(self):
        grants = InstallationGrantStore(MemoryStore(), clock=FakeClock(5_000))

        grant = await grants.save("123", "ghu_token", "octocat")

        assert await grants.get("123") == grant
        assert grant.expires_at == 5_000 + 30 * 24 * 60 * 60 * 1000

    async def test_missing(self):
        assert await InstallationGrantStore(MemoryStore()).get("404") is None
