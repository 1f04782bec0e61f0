"""Tests for the factory and generic project detectors."""

from __future__ import annotations

import base64

import httpx
import pytest
from conftest import FACTORY_LAYOUT, FACTORY_PYPROJECT, FakeRepo

from mcp_project_manager.detection.factory import (
    check_project_structure,
    detect_mcp_factory_project,
    factory_version,
)
from mcp_project_manager.detection.generic import (
    detect_mcp_project,
    detect_project_config,
    detect_repository,
)
from mcp_project_manager.detection.manifests import config_from_package_json, parse_setup_py
from mcp_project_manager.errors import ValidationError
from mcp_project_manager.github.client import GitHubClient
from mcp_project_manager.models import (
    ManifestSource,
    MCPFactoryProject,
    ProjectConfig,
    ProjectType,
)


def _without(*paths: str) -> dict[str, str]:
    """FACTORY_LAYOUT minus every file equal to or under ``paths``."""
    return {
        name: text
        for name, text in FACTORY_LAYOUT.items()
        if not any(name == p or name.startswith(f"{p}/") for p in paths)
    }


# ===================================================================
# MCP Factory detector
# ===================================================================


class TestFactoryDetector:
    async def test_complete_factory_project(self, factory_repo: FakeRepo):
        result = await detect_mcp_factory_project(factory_repo, "acme", "weather-mcp")

        assert result.is_mcp_project is True
        assert result.confidence == 1.0
        assert result.reasons[0] == "Found mcp-factory dependency"
        assert "Found required directory: tools/" in result.reasons
        assert result.reasons[-1] == "High confidence MCP Factory project detected"
        project = result.project
        assert isinstance(project, MCPFactoryProject)
        assert project.name == "weather-mcp"
        assert project.type == ProjectType.MCP_FACTORY
        assert project.factory_version == ">=0.1.0"
        assert project.author == "Ada Lovelace"
        assert project.license == "MIT"
        assert project.structure_compliance == 1.0

    async def test_missing_pyproject(self):
        result = await detect_mcp_factory_project(FakeRepo({"README.md": "x"}), "a", "b")

        assert result.is_mcp_project is False
        assert result.confidence == 0.0
        assert result.reasons == ["pyproject.toml not found - not a Python project"]
        assert result.project is None

    async def test_invalid_pyproject(self):
        repo = FakeRepo({"pyproject.toml": "[project\nname="})
        result = await detect_mcp_factory_project(repo, "a", "b")

        assert result.confidence == 0.1
        assert result.reasons == ["Invalid pyproject.toml format"]

    async def test_missing_factory_dependency(self):
        repo = FakeRepo({"pyproject.toml": '[project]\nname = "x"\ndependencies = ["mcp"]\n'})
        result = await detect_mcp_factory_project(repo, "a", "b")

        assert result.confidence == 0.2
        assert result.reasons == ["Missing mcp-factory dependency in pyproject.toml"]
        assert result.project is None

    async def test_low_compliance_keeps_project_metadata(self):
        repo = FakeRepo(_without("server.py", "README.md", "resources", "prompts"))
        result = await detect_mcp_factory_project(repo, "a", "weather-mcp")

        # 2 of 6 checklist items: 0.6 + 0.4 * 2/6
        assert result.confidence == pytest.approx(0.7333, abs=1e-4)
        assert result.is_mcp_project is False
        assert result.reasons[-1] == "Confidence too low (73.3%) for MCP Factory project"
        assert isinstance(result.project, MCPFactoryProject)
        assert result.project.required_files["server.py"] is False

    async def test_missing_description_penalty_applies_before_threshold(self):
        files = _without("prompts")
        files["pyproject.toml"] = FACTORY_PYPROJECT.replace(
            'description = "MCP server exposing weather forecasts as tools"\n', ""
        )
        result = await detect_mcp_factory_project(FakeRepo(files), "a", "b")

        # (0.6 + 0.4 * 5/6) * 0.8
        assert result.confidence == pytest.approx(0.7467, abs=1e-4)
        assert result.is_mcp_project is False
        assert "Missing required project name or description" in result.reasons

    async def test_name_defaults_to_repository(self):
        files = dict(FACTORY_LAYOUT)
        files["pyproject.toml"] = FACTORY_PYPROJECT.replace('name = "weather-mcp"\n', "")
        result = await detect_mcp_factory_project(FakeRepo(files), "a", "fallback-name")

        assert result.project is not None
        assert result.project.name == "fallback-name"

    async def test_ref_is_forwarded_to_every_fetch(self, factory_repo: FakeRepo):
        await detect_mcp_factory_project(factory_repo, "a", "b", ref="abc123")

        assert factory_repo.requests
        assert {ref for _, ref in factory_repo.requests} == {"abc123"}


class TestProjectStructure:
    async def test_unparsable_config_yaml_only_adds_reason(self):
        files = dict(FACTORY_LAYOUT)
        files["config.yaml"] = "server: [unclosed"
        check = await check_project_structure(FakeRepo(files), "a", "b")

        assert check.compliance == 1.0
        assert "Found optional file: config.yaml" in check.reasons
        assert any(r.startswith("config.yaml could not be parsed") for r in check.reasons)

    async def test_api_failure_counts_as_missing(self):
        repo = FakeRepo(FACTORY_LAYOUT, failing=("README.md",))
        check = await check_project_structure(repo, "a", "b")

        assert check.files["README.md"] is False
        assert "Missing required file: README.md" in check.reasons

    async def test_garbled_api_response_counts_as_missing(self):
        prefix = "/repos/acme/weather-mcp/contents/"

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path.removeprefix(prefix)
            if path == "README.md":
                return httpx.Response(200, text="<html>oops</html>")
            if path in FACTORY_LAYOUT:
                encoded = base64.b64encode(FACTORY_LAYOUT[path].encode()).decode()
                return httpx.Response(200, json={"content": encoded, "sha": "s"})
            children = [name for name in FACTORY_LAYOUT if name.startswith(f"{path}/")]
            if children:
                return httpx.Response(200, json=[{"name": name} for name in children])
            return httpx.Response(404, json={"message": "Not Found"})

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        result = await detect_mcp_factory_project(GitHubClient(http), "acme", "weather-mcp")

        assert isinstance(result.project, MCPFactoryProject)
        assert result.project.required_files["README.md"] is False
        assert result.project.structure_compliance == pytest.approx(5 / 6)

    async def test_file_named_like_directory_does_not_count(self):
        files = _without("tools")
        files["tools"] = "not a directory"
        check = await check_project_structure(FakeRepo(files), "a", "b")

        assert check.directories["tools"] is False
        assert "Missing required directory: tools/" in check.reasons


class TestFactoryVersion:
    def test_extracts_specifier(self):
        assert factory_version("mcp-factory>=0.3.1") == ">=0.3.1"
        assert factory_version("mcp-factory[cli] ==1.0 ; python_version>'3.10'") == "==1.0"

    def test_unpinned(self):
        assert factory_version("mcp-factory") == ""


# ===================================================================
# Manifest detection
# ===================================================================


class TestDetectProjectConfig:
    async def test_prefers_pyproject(self):
        repo = FakeRepo(
            {
                "pyproject.toml": '[project]\nname = "py-mcp"\nversion = "1.2.3"\n',
                "package.json": '{"name": "js-mcp"}',
            }
        )
        config = await detect_project_config(repo, "a", "b")

        assert config is not None
        assert config.name == "py-mcp"
        assert config.source == ManifestSource.PYPROJECT_TOML

    async def test_invalid_pyproject_raises(self):
        repo = FakeRepo({"pyproject.toml": "not = [valid"})

        with pytest.raises(ValidationError, match="Invalid project configuration"):
            await detect_project_config(repo, "a", "b")

    async def test_setup_py_fallback(self):
        setup = (
            "from setuptools import setup\n"
            "setup(\n"
            "    name='legacy-mcp',\n"
            "    version='0.1.0',\n"
            "    description='An MCP server',\n"
            "    long_description=open('README.md').read(),\n"
            "    install_requires=['mcp>=1.0', 'requests'],\n"
            "    keywords=['mcp'],\n"
            ")\n"
        )
        config = await detect_project_config(FakeRepo({"setup.py": setup}), "a", "b")

        assert config is not None
        assert config.source == ManifestSource.SETUP_PY
        assert config.name == "legacy-mcp"
        assert config.description == "An MCP server"
        assert config.dependencies == ["mcp>=1.0", "requests"]

    async def test_package_json_merges_dev_dependencies(self):
        package = (
            '{"name": "ts-mcp", "version": "1.0.0",'
            ' "dependencies": {"@modelcontextprotocol/sdk": "^1.0.0"},'
            ' "devDependencies": {"typescript": "^5.0.0"}}'
        )
        config = await detect_project_config(FakeRepo({"package.json": package}), "a", "b")

        assert config is not None
        assert config.type == ProjectType.NODEJS
        assert config.dependencies == ["@modelcontextprotocol/sdk", "typescript"]

    async def test_malformed_package_json_is_ignored(self):
        config = await detect_project_config(FakeRepo({"package.json": "{oops"}), "a", "b")
        assert config is None

    async def test_no_manifest(self):
        assert await detect_project_config(FakeRepo({"README.md": "hi"}), "a", "b") is None


class TestManifestParsers:
    def test_setup_py_without_call(self):
        assert parse_setup_py("print('hello')") is None

    def test_package_json_author_object(self):
        config = config_from_package_json('{"name": "x", "author": {"name": "Grace"}}')
        assert config.author == "Grace"

    def test_package_json_must_be_object(self):
        with pytest.raises(ValueError):
            config_from_package_json("[1, 2]")


# ===================================================================
# Generic detector
# ===================================================================


def _config(**overrides: object) -> ProjectConfig:
    fields: dict[str, object] = {
        "type": ProjectType.NODEJS,
        "source": ManifestSource.PACKAGE_JSON,
        "name": "weather",
        "description": "Forecasts",
    }
    fields.update(overrides)
    return ProjectConfig(**fields)  # type: ignore[arg-type]


class TestGenericDetector:
    def test_all_signals_cap_at_one(self):
        config = _config(
            name="weather-mcp",
            description="A Model Context Protocol server",
            keywords=["mcp"],
            dependencies=["@modelcontextprotocol/sdk"],
        )
        result = detect_mcp_project(config, ["index.ts", "mcp.json"])

        assert result.confidence == 1.0
        assert result.is_mcp_project is True
        assert "Contains server files" in result.reasons
        assert "Filename contains MCP" in result.reasons

    def test_dependency_alone_meets_threshold(self):
        result = detect_mcp_project(_config(dependencies=["@modelcontextprotocol/sdk"]))

        assert result.confidence == 0.4
        assert result.is_mcp_project is True
        assert result.reasons == ["Has MCP SDK dependency"]

    def test_name_alone_is_below_threshold(self):
        result = detect_mcp_project(_config(name="mcp-thing"))

        assert result.confidence == 0.3
        assert result.is_mcp_project is False

    def test_unrelated_project(self):
        result = detect_mcp_project(_config(), ["index.js"])

        assert result.confidence == 0.15
        assert result.is_mcp_project is False
        assert result.project is not None


class TestDetectRepository:
    async def test_factory_result_wins(self, factory_repo: FakeRepo):
        result = await detect_repository(factory_repo, "a", "b")
        assert isinstance(result.project, MCPFactoryProject)

    async def test_falls_back_to_generic_with_root_listing(self):
        repo = FakeRepo(
            {
                "package.json": (
                    '{"name": "notes-mcp", "description": "MCP server for notes",'
                    ' "dependencies": {"@modelcontextprotocol/sdk": "1.0.0"}}'
                ),
                "index.ts": "export {}",
            }
        )
        result = await detect_repository(repo, "a", "b")

        assert result.is_mcp_project is True
        # 40 + 30 + 20 + 15
        assert result.confidence == pytest.approx(1.0)
        assert "Contains server files" in result.reasons

    async def test_nothing_detected_returns_factory_result(self):
        result = await detect_repository(FakeRepo({"README.md": "x"}), "a", "b")

        assert result.is_mcp_project is False
        assert result.reasons == ["pyproject.toml not found - not a Python project"]
