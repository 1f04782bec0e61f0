"""POST /api/publish: prepare a project for the hub and optionally create its repository."""

from __future__ import annotations

import dataclasses
import json
import logging
import tomllib
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from mcp_project_manager.api.context import AppContext, get_app_context
from mcp_project_manager.detection.manifests import (
    config_from_package_json,
    config_from_pyproject,
    load_pyproject,
    project_table,
)
from mcp_project_manager.errors import (
    GitHubUnauthorizedError,
    InvalidProjectStructureError,
    RepositoryExistsError,
    ValidationError,
)
from mcp_project_manager.github.client import GitHubClient
from mcp_project_manager.models import MCPProjectRegistration, ProjectConfig
from mcp_project_manager.registry.entries import extract_project_info
from mcp_project_manager.registry.hub import iso_timestamp
from mcp_project_manager.validation.eligibility import validate_registration_data

logger = logging.getLogger(__name__)

router = APIRouter(tags=["publish"])


class PublishFile(BaseModel):
    path: str
    content: str


class PublishRequest(BaseModel):
    """Body sent by the publishing CLI. Field names follow its camelCase JSON."""

    model_config = ConfigDict(populate_by_name=True)

    project_name: str = Field("", alias="projectName")
    language: str = ""
    files: list[PublishFile] | None = None
    package_json: dict | None = Field(None, alias="packageJson")
    owner: str = ""
    repo_name: str = Field("", alias="repoName")
    description: str = ""
    version: str = ""
    category: str = ""
    tags: list[str] | None = None
    private: bool = False


def manifest_config(body: PublishRequest, repo_name: str) -> ProjectConfig:
    """Project metadata from ``packageJson`` or a manifest among ``files``.

    Raises:
        ValidationError: The manifest is present but malformed.
        InvalidProjectStructureError: No manifest was supplied.
    """
    if body.package_json is not None:
        return config_from_package_json(json.dumps(body.package_json))

    files = {f.path: f.content for f in body.files or []}
    if "package.json" in files:
        try:
            return config_from_package_json(files["package.json"])
        except ValueError as exc:
            raise ValidationError("Invalid package.json format") from exc
    if "pyproject.toml" in files:
        try:
            project = project_table(load_pyproject(files["pyproject.toml"]))
        except tomllib.TOMLDecodeError as exc:
            raise ValidationError("Invalid pyproject.toml format") from exc
        if project is not None:
            return config_from_pyproject(project, repo_name)

    raise InvalidProjectStructureError(
        "No valid project manifest found",
        details="Provide packageJson, or a package.json or pyproject.toml among files",
    )


def build_registration(body: PublishRequest, owner: str, repo_name: str) -> MCPProjectRegistration:
    """Registration from the manifest, with explicit request fields taking priority."""
    registration = extract_project_info(manifest_config(body, repo_name), owner, repo_name)
    overrides: dict[str, object] = {}
    if body.description:
        overrides["description"] = body.description
    if body.version:
        overrides["version"] = body.version
    if body.category:
        overrides["category"] = body.category
    if body.tags is not None:
        overrides["tags"] = list(body.tags)
    return dataclasses.replace(registration, **overrides) if overrides else registration


@router.post("/publish")
async def publish(
    body: PublishRequest,
    request: Request,
    ctx: AppContext = Depends(get_app_context),
) -> dict[str, object]:
    if not body.project_name or body.files is None or not body.language:
        raise ValidationError(
            "Missing required fields: projectName, files, language",
            details=sorted(body.model_dump(by_alias=True, exclude_defaults=True)),
        )

    session_id = request.headers.get("session-id", "")
    session = None
    if session_id:
        session = await ctx.sessions.get(session_id)
        if session is None:
            raise GitHubUnauthorizedError(
                "Invalid or expired session",
                details="Session not found or has expired. Please re-authenticate.",
            )

    owner = session.username if session else (body.owner or "unknown")
    repo_name = body.repo_name or body.project_name
    registration = build_registration(body, owner, repo_name)

    validation = validate_registration_data(registration)
    if not validation.is_valid:
        raise ValidationError("Invalid project data", details=validation.errors)

    if session is None:
        return {
            "success": True,
            "message": "Project prepared for publishing",
            "projectInfo": registration.to_entry(),
            "repository": registration.repository,
            "timestamp": iso_timestamp(datetime.now(UTC)),
        }

    github = GitHubClient(ctx.http, token=session.access_token)
    if await github.repository_exists(owner, repo_name):
        raise RepositoryExistsError(
            f"Repository {owner}/{repo_name} already exists",
            context={"owner": owner, "repo": repo_name},
        )
    created = await github.create_user_repository(
        repo_name,
        description=registration.description,
        private=body.private,
        gitignore_template="Python" if registration.language == "python" else "Node",
    )
    branch = await github.push_files(
        owner, repo_name, [(f.path, f.content) for f in body.files]
    )
    logger.info("Published %s for %s", repo_name, owner)
    return {
        "success": True,
        "message": "Repository created and files pushed",
        "projectInfo": registration.to_entry(),
        "repository": created.get("html_url") or registration.repository,
        "branch": branch,
        "files_pushed": len(body.files),
        "timestamp": iso_timestamp(datetime.now(UTC)),
    }
