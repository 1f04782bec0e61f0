"""Key-value store adapters: in-process memory and Upstash/Vercel KV REST."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from mcp_project_manager.errors import ProjectManagerError
from mcp_project_manager.resilience.classifier import normalize_error

logger = logging.getLogger(__name__)


@dataclass
class MemoryStore:
    """Single-process store. Expired keys are dropped on read and swept on write."""

    clock: Callable[[], float] = field(default=time.monotonic)
    _items: dict[str, tuple[str, float]] = field(default_factory=dict, init=False, repr=False)

    async def get(self, key: str) -> str | None:
        item = self._items.get(key)
        if item is None:
            return None
        value, expires = item
        if self.clock() >= expires:
            del self._items[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        now = self.clock()
        expired = [name for name, (_, expires) in self._items.items() if now >= expires]
        for name in expired:
            del self._items[name]
        self._items[key] = (value, now + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._items.pop(key, None)


@dataclass
class UpstashStore:
    """Upstash Redis REST API: each command is POSTed as a JSON array.

    API docs: https://upstash.com/docs/redis/features/restapi
    """

    http: httpx.AsyncClient
    url: str
    token: str

    async def get(self, key: str) -> str | None:
        result = await self._command("GET", key)
        return None if result is None else str(result)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._command("SET", key, value, "EX", str(ttl_seconds))

    async def delete(self, key: str) -> None:
        await self._command("DEL", key)

    async def _command(self, *args: str) -> object:
        try:
            response = await self.http.post(
                self.url.rstrip("/"),
                json=list(args),
                headers={"Authorization": f"Bearer {self.token}"},
            )
        except httpx.HTTPError as exc:
            raise normalize_error(exc) from exc

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not response.is_success or "error" in data:
            message = data.get("error") or f"HTTP {response.status_code}"
            raise ProjectManagerError(
                f"KV store {args[0]} failed: {message}",
                context={"status": response.status_code},
            )
        return data.get("result")
