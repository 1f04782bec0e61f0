"""OAuth sessions and GitHub App installation grants on top of a KV store."""

from __future__ import annotations

import dataclasses
import json
import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from mcp_project_manager.models import InstallationGrant, Session
from mcp_project_manager.sessions.base import KeyValueStorePort

logger = logging.getLogger(__name__)

SESSION_TTL_SECONDS = 30 * 60
GRANT_TTL_SECONDS = 30 * 24 * 60 * 60


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class SessionManager:
    """Sessions keyed ``session:{id}``; ids come from ``secrets.token_urlsafe``."""

    store: KeyValueStorePort
    ttl_seconds: int = SESSION_TTL_SECONDS
    clock: Callable[[], int] = field(default=_now_ms)

    async def create(
        self,
        access_token: str,
        username: str,
        *,
        ip_address: str = "",
        user_agent: str = "",
    ) -> Session:
        now = self.clock()
        session = Session(
            session_id=secrets.token_urlsafe(32),
            access_token=access_token,
            username=username,
            created_at=now,
            expires_at=now + self.ttl_seconds * 1000,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        await self.store.set(
            f"session:{session.session_id}",
            json.dumps(dataclasses.asdict(session)),
            self.ttl_seconds,
        )
        logger.info("Session created for %s", username)
        return session

    async def get(self, session_id: str) -> Session | None:
        """Return the live session, or None when unknown or expired."""
        raw = await self.store.get(f"session:{session_id}")
        if raw is None:
            return None
        try:
            session = Session(**json.loads(raw))
        except (ValueError, TypeError):
            logger.warning("Discarding malformed session %s", session_id)
            await self.delete(session_id)
            return None
        if self.clock() > session.expires_at:
            await self.delete(session_id)
            return None
        return session

    async def delete(self, session_id: str) -> None:
        await self.store.delete(f"session:{session_id}")


@dataclass
class InstallationGrantStore:
    """User tokens captured during app installation, keyed ``oauth:{installation_id}``."""

    store: KeyValueStorePort
    ttl_seconds: int = GRANT_TTL_SECONDS
    clock: Callable[[], int] = field(default=_now_ms)

    async def save(
        self, installation_id: str, access_token: str, username: str
    ) -> InstallationGrant:
        now = self.clock()
        grant = InstallationGrant(
            installation_id=installation_id,
            access_token=access_token,
            username=username,
            created_at=now,
            expires_at=now + self.ttl_seconds * 1000,
        )
        await self.store.set(
            f"oauth:{installation_id}",
            json.dumps(dataclasses.asdict(grant)),
            self.ttl_seconds,
        )
        return grant

    async def get(self, installation_id: str) -> InstallationGrant | None:
        raw = await self.store.get(f"oauth:{installation_id}")
        if raw is None:
            return None
        try:
            return InstallationGrant(**json.loads(raw))
        except (ValueError, TypeError):
            logger.warning("Discarding malformed grant for installation %s", installation_id)
            return None
