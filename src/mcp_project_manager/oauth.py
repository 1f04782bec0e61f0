"""GitHub OAuth: state parameter, authorize/install URLs and code exchange."""

from __future__ import annotations

import json
import logging
import math
import secrets
import time
from dataclasses import asdict, dataclass

import httpx

from mcp_project_manager.errors import ValidationError
from mcp_project_manager.github.client import GitHubClient
from mcp_project_manager.resilience.classifier import normalize_error
from mcp_project_manager.resilience.retry import with_retry

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
STATE_WINDOW_MS = 10 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def new_request_id(now: int) -> str:
    return f"req_{now}_{secrets.token_hex(5)}"


@dataclass(frozen=True, slots=True)
class OAuthState:
    """Round-tripped through GitHub's redirect as a JSON query parameter."""

    timestamp: int
    action: str
    project_name: str = "mcp-project"
    request_id: str = ""

    def encode(self) -> str:
        data = asdict(self)
        if not self.request_id:
            del data["request_id"]
        return json.dumps(data, separators=(",", ":"))

    @classmethod
    def decode(cls, raw: str) -> OAuthState:
        """Parse a state parameter.

        Raises:
            ValidationError: Not JSON, or no numeric ``timestamp``.
        """
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise ValidationError(
                "Invalid state parameter", details="State parameter must be valid JSON"
            ) from exc
        timestamp = data.get("timestamp") if isinstance(data, dict) else None
        if (
            not isinstance(timestamp, int | float)
            or isinstance(timestamp, bool)
            or (isinstance(timestamp, float) and not math.isfinite(timestamp))
        ):
            raise ValidationError(
                "Invalid state parameter", details="State parameter must carry a timestamp"
            )
        return cls(
            timestamp=int(timestamp),
            action=str(data.get("action") or ""),
            project_name=str(data.get("project_name") or "mcp-project"),
            request_id=str(data.get("request_id") or ""),
        )

    def is_expired(self, now: int, window_ms: int = STATE_WINDOW_MS) -> bool:
        return now - self.timestamp > window_ms


def build_authorize_url(
    client_id: str,
    redirect_uri: str,
    state: OAuthState,
    scope: str = "repo",
) -> str:
    params = {"client_id": client_id, "scope": scope, "state": state.encode()}
    if redirect_uri:
        params["redirect_uri"] = redirect_uri
    return str(httpx.URL(AUTHORIZE_URL, params=params))


def build_install_url(app_slug: str, state: OAuthState) -> str:
    return str(
        httpx.URL(
            f"https://github.com/apps/{app_slug}/installations/new",
            params={"state": state.encode(), "request_user_authorization": "true"},
        )
    )


@dataclass
class OAuthClient:
    """Exchanges authorization codes for user tokens."""

    http: httpx.AsyncClient
    client_id: str
    client_secret: str
    redirect_uri: str = ""

    async def exchange_code(self, code: str, state: str = "") -> str:
        """Return the user access token for ``code``.

        Raises:
            ValidationError: GitHub answered without an access token.
        """
        body = {"client_id": self.client_id, "client_secret": self.client_secret, "code": code}
        if self.redirect_uri:
            body["redirect_uri"] = self.redirect_uri
        if state:
            body["state"] = state
        try:
            response = await self.http.post(
                TOKEN_URL, data=body, headers={"Accept": "application/json"}
            )
        except httpx.HTTPError as exc:
            raise normalize_error(exc) from exc

        try:
            data = response.json()
        except ValueError:
            data = {}
        token = data.get("access_token")
        if not token:
            raise ValidationError(
                "Failed to obtain access token",
                details=data.get("error_description") or data.get("error") or "Unknown error",
            )
        return str(token)

    async def fetch_user(self, access_token: str) -> dict:
        """Profile of the token's user, retrying transient failures."""
        github = GitHubClient(self.http, token=access_token)
        user = await with_retry(github.get_authenticated_user, action="GitHub user lookup")
        if not user.get("login"):
            raise ValidationError(
                "Failed to fetch user information",
                details=user.get("message") or "Unknown error",
            )
        return user
