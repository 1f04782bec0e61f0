"""MCP server exposing the project detector and the hub registry as tools."""

from __future__ import annotations

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from mcp_project_manager.tools.context import tool_lifespan
from mcp_project_manager.tools.project import detect_project, lookup_registry_entry

mcp = FastMCP(
    "mcp-project-manager",
    instructions=(
        "mcp-project-manager inspects GitHub repositories for MCP server projects "
        "and reads the MCP servers hub registry.\n\n"
        "- **detect_project**: run the detector and validator on a repository "
        "('owner/repo' or a GitHub URL). Reports confidence, reasons, validation "
        "errors and warnings, and whether the project qualifies for automatic "
        "registration.\n"
        "- **lookup_registry_entry**: fetch a project's entry from the hub registry "
        "by name.\n\n"
        "Both tools are read-only; registration itself happens through the GitHub App."
    ),
    lifespan=tool_lifespan,
)

# ─── Read-only tools ──────────────────────────────────────────
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(detect_project)
mcp.tool(annotations=ToolAnnotations(readOnlyHint=True))(lookup_registry_entry)
