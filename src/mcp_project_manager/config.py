"""Runtime settings loaded from environment variables."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass

from mcp_project_manager.errors import ConfigurationError

_NUMERIC_RE = re.compile(r"^\d+$")


@dataclass(frozen=True, slots=True)
class Settings:
    """Process-wide configuration. Read-only after startup."""

    github_client_id: str = ""
    github_client_secret: str = ""
    github_redirect_uri: str = ""
    app_id: str = ""
    private_key: str = ""
    webhook_secret: str = ""
    kv_rest_api_url: str = ""
    kv_rest_api_token: str = ""
    automation_bypass_secret: str = ""
    hub_token: str = ""
    hub_owner: str = "ACNet-AI"
    hub_repo: str = "mcp-servers-hub"
    registry_path: str = "registry.json"
    app_slug: str = "mcp-project-manager"
    repository_created_delay: float = 5.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ

        def read(name: str, default: str = "") -> str:
            return env.get(name, default).strip()

        delay_raw = read("REPOSITORY_CREATED_DELAY", "5")
        try:
            delay = float(delay_raw)
        except ValueError:
            raise ConfigurationError(
                f"REPOSITORY_CREATED_DELAY must be a number, got '{delay_raw}'"
            ) from None

        return cls(
            github_client_id=read("GITHUB_CLIENT_ID"),
            github_client_secret=read("GITHUB_CLIENT_SECRET"),
            github_redirect_uri=read("GITHUB_REDIRECT_URI"),
            app_id=read("APP_ID"),
            private_key=read("PRIVATE_KEY"),
            webhook_secret=read("WEBHOOK_SECRET"),
            kv_rest_api_url=read("KV_REST_API_URL"),
            kv_rest_api_token=read("KV_REST_API_TOKEN"),
            automation_bypass_secret=read("VERCEL_AUTOMATION_BYPASS_SECRET"),
            hub_token=read("GITHUB_HUB_TOKEN"),
            hub_owner=read("HUB_OWNER", "ACNet-AI"),
            hub_repo=read("HUB_REPO", "mcp-servers-hub"),
            registry_path=read("REGISTRY_PATH", "registry.json"),
            app_slug=read("GITHUB_APP_SLUG", "mcp-project-manager"),
            repository_created_delay=delay,
            log_level=read("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def oauth_configured(self) -> bool:
        return bool(self.github_client_id and self.github_client_secret)

    @property
    def app_configured(self) -> bool:
        return bool(self.app_id and self.private_key)

    @property
    def kv_configured(self) -> bool:
        return bool(self.kv_rest_api_url and self.kv_rest_api_token)

    def validated_app_credentials(self) -> tuple[str, str]:
        """Return ``(app_id, pem_private_key)`` or raise ConfigurationError.

        Deployment platforms often store the key with literal ``\\n``
        sequences; those are turned back into newlines.
        """
        if not self.app_id:
            raise ConfigurationError("APP_ID environment variable is required")
        if not self.private_key:
            raise ConfigurationError("PRIVATE_KEY environment variable is required")
        if not _NUMERIC_RE.match(self.app_id):
            raise ConfigurationError("APP_ID must be a numeric value")

        key = self.private_key.replace("\\n", "\n")
        if "-----BEGIN" not in key or "-----END" not in key:
            raise ConfigurationError("PRIVATE_KEY must be in valid PEM format")
        return self.app_id, key
