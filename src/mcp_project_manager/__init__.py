"""mcp-project-manager: GitHub App that registers MCP server projects in the hub."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _distribution_version

_LOCAL_VERSION_FALLBACK = "0.0.0+local"


def _resolve_version() -> str:
    """Resolve package version from installed metadata with deterministic fallback."""
    try:
        return _distribution_version("mcp-project-manager")
    except PackageNotFoundError:
        return _LOCAL_VERSION_FALLBACK


__version__ = _resolve_version()


def main() -> None:
    """Entry point for the `mcp-project-manager` web service."""
    import argparse
    import logging

    import uvicorn

    from mcp_project_manager.api.app import create_app
    from mcp_project_manager.config import Settings

    parser = argparse.ArgumentParser(description="MCP Project Manager GitHub App service")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on")
    args = parser.parse_args()

    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings), host=args.host, port=args.port, log_level="info")


def tools_main() -> None:
    """Entry point for `mcp-project-manager-tools` (MCP server over stdio)."""
    from mcp_project_manager.server import mcp

    mcp.run(transport="stdio")
