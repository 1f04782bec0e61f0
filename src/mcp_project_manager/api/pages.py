"""Minimal HTML pages shown in the browser at the end of GitHub redirects."""

from __future__ import annotations

from datetime import UTC, datetime
from html import escape

_STYLE = """
body { font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; }
.success { background-color: #d4edda; color: #155724; padding: 20px; border-radius: 8px; }
.warning { background-color: #fff3cd; color: #856404; padding: 20px; border-radius: 8px; }
.info { background-color: #d1ecf1; color: #0c5460; padding: 15px; border-radius: 5px; }
code { background-color: #f8f9fa; padding: 2px 6px; border-radius: 3px; }
"""


def _page(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n"
        f'<meta charset="UTF-8">\n<title>{escape(title)}</title>\n'
        f"<style>{_STYLE}</style>\n</head>\n<body>\n{body}\n</body>\n</html>\n"
    )


def _format_ms(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


def oauth_success_page(username: str, session_id: str, expires_at: int) -> str:
    sid = escape(session_id)
    return _page(
        "OAuth Authorization Successful",
        f"""<h1>🎉 GitHub OAuth Authorization Successful</h1>
<div class="success">
  <p><strong>Username:</strong> {escape(username)}</p>
  <p><strong>Session ID:</strong> <code id="sessionId">{sid}</code></p>
  <p><strong>Expires At:</strong> {_format_ms(expires_at)}</p>
</div>
<div class="info">
  <h3>Next Steps</h3>
  <p>1. Copy the Session ID above</p>
  <p>2. Send it with API calls as the header <code>session-id: {sid}</code></p>
  <p>3. Use <code>/api/publish</code> to create repositories</p>
  <p>4. The session is valid for 30 minutes</p>
</div>""",
    )


def installation_page(
    installation_id: str,
    username: str,
    project_name: str,
    *,
    has_user_token: bool,
    installation_token_obtained: bool,
) -> str:
    status = "Successful" if installation_token_obtained else "Partially Successful"
    css = "success" if installation_token_obtained else "warning"
    oauth = " &amp; OAuth Authorization" if has_user_token else ""
    token_note = (
        "User authorization stored. You can return to the CLI."
        if has_user_token
        else "No user authorization was received; repository creation needs the OAuth flow."
    )
    return _page(
        f"GitHub App Installation {status}",
        f"""<h1>GitHub App Installation{oauth} {status}</h1>
<div class="{css}">
  <p><strong>Installation ID:</strong> <code>{escape(installation_id)}</code></p>
  <p><strong>User:</strong> {escape(username)}</p>
  <p><strong>Project:</strong> {escape(project_name)}</p>
</div>
<div class="info"><p>{token_note}</p></div>""",
    )
