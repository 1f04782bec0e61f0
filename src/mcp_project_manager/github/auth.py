"""GitHub App authentication: app JWTs, installation tokens, hub access."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
import jwt

from mcp_project_manager.config import Settings
from mcp_project_manager.errors import ConfigurationError, InstallationNotFoundError
from mcp_project_manager.github.client import GitHubClient

logger = logging.getLogger(__name__)

# GitHub rejects app JWTs valid for more than 10 minutes
_JWT_LIFETIME_SECONDS = 540
_JWT_CLOCK_DRIFT_SECONDS = 60


@dataclass
class GitHubAppAuth:
    """Mints credentials for the GitHub App described by ``settings``."""

    http: httpx.AsyncClient
    settings: Settings
    clock: Callable[[], float] = field(default=time.time)

    def app_jwt(self) -> str:
        """Sign a short-lived RS256 JWT identifying the app."""
        app_id, private_key = self.settings.validated_app_credentials()
        now = int(self.clock())
        payload = {
            "iat": now - _JWT_CLOCK_DRIFT_SECONDS,
            "exp": now + _JWT_LIFETIME_SECONDS,
            "iss": app_id,
        }
        try:
            return jwt.encode(payload, private_key, algorithm="RS256")
        except (ValueError, TypeError, jwt.PyJWTError) as exc:
            raise ConfigurationError(f"PRIVATE_KEY could not sign the app JWT: {exc}") from exc

    def app_client(self) -> GitHubClient:
        return GitHubClient(self.http, token=self.app_jwt())

    async def installation_token(self, installation_id: int | str) -> str:
        return await self.app_client().create_installation_token(installation_id)

    async def installation_client(self, installation_id: int) -> GitHubClient:
        """Client acting as the app installation (webhook handlers use this)."""
        token = await self.installation_token(installation_id)
        return GitHubClient(self.http, token=token)

    async def installations(self) -> list[dict]:
        return await self.app_client().list_installations()

    async def installations_for(self, login: str) -> list[dict]:
        """Installations whose account (user or organization) is ``login``."""
        return [
            inst
            for inst in await self.installations()
            if (inst.get("account") or {}).get("login") == login
        ]

    async def client_for_account(self, login: str) -> GitHubClient:
        matches = await self.installations_for(login)
        if not matches:
            raise InstallationNotFoundError(
                f"MCP Project Manager is not installed on {login}",
                context={"account": login},
            )
        return await self.installation_client(int(matches[0]["id"]))

    async def hub_client(self) -> GitHubClient:
        """Client with write access to the hub repository.

        A personal access token (``GITHUB_HUB_TOKEN``) wins; otherwise the
        app's own installation on the hub owner is used.
        """
        if self.settings.hub_token:
            logger.info("Using personal access token for hub access")
            return GitHubClient(self.http, token=self.settings.hub_token)
        logger.info("Using installation token of %s for hub access", self.settings.hub_owner)
        return await self.client_for_account(self.settings.hub_owner)
