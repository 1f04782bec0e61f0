"""Webhook delivery signature verification."""

from __future__ import annotations

import hashlib
import hmac

_PREFIX = "sha256="


def sign(secret: str, body: bytes) -> str:
    """Return the ``X-Hub-Signature-256`` header value for ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{_PREFIX}{digest}"


def verify_signature(secret: str, body: bytes, signature: str | None) -> bool:
    """Check a delivery against the shared webhook secret.

    An empty secret disables verification (local development).
    """
    if not secret:
        return True
    if not signature or not signature.startswith(_PREFIX):
        return False
    return hmac.compare_digest(sign(secret, body), signature)
