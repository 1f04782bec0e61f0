"""Port for the ephemeral key-value store behind sessions and grants."""

from __future__ import annotations

from typing import Protocol


class KeyValueStorePort(Protocol):
    """String key-value store with per-key expiry handled by the store."""

    async def get(self, key: str) -> str | None:
        """Return the value, or None when missing or expired."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds``."""
        ...

    async def delete(self, key: str) -> None:
        """Remove ``key``. Missing keys are ignored."""
        ...
