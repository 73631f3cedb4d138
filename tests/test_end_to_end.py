"""End-to-end tests: MCP call_tool handler -> dispatcher -> real GitHubClient -> stub upstream.

The upstream is an `httpx.MockTransport`, so every layer except the network runs for real.
"""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import github_repo_mcp.tools as tools
import httpx
import pytest
from github_repo_mcp.config import AppConfig, LimitsConfig
from github_repo_mcp.github_client import GitHubClient
from github_repo_mcp.server import call_tool


def _install_runtime(monkeypatch: pytest.MonkeyPatch, handler, tmp_path: Path) -> list[httpx.Request]:
    seen: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    cfg = AppConfig(
        token="tok",
        api_base_url="https://api.github.com",
        audit_log_path=tmp_path / "audit.jsonl",
        audit_max_bytes=5 * 1024 * 1024,
        audit_max_backups=2,
        limits=LimitsConfig(),
    )
    runtime = replace(
        tools.build_runtime(cfg),
        github=GitHubClient(token=cfg.token, api_base_url=cfg.api_base_url, transport=httpx.MockTransport(recording)),
    )
    monkeypatch.setattr(tools, "_RUNTIME", runtime)
    return seen


@pytest.mark.asyncio
async def test_get_repository_success_envelope(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/repos/octocat/Hello-World"
        return httpx.Response(
            200,
            json={"name": "Hello-World", "full_name": "octocat/Hello-World", "stargazers_count": 1500},
        )

    _install_runtime(monkeypatch, handler, tmp_path)

    out = await call_tool("get-repository", {"owner": "octocat", "repo": "Hello-World"})

    assert out.isError is False
    parsed = json.loads(out.content[0].text)
    assert parsed["name"] == "Hello-World"
    assert parsed["stargazers_count"] == 1500


@pytest.mark.asyncio
async def test_get_repository_404_failure_envelope(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Not Found", "documentation_url": "https://docs.github.com"})

    _install_runtime(monkeypatch, handler, tmp_path)

    out = await call_tool("get-repository", {"owner": "octocat", "repo": "missing"})

    assert out.isError is True
    assert out.content[0].text == "Not Found"
    assert out.structuredContent is not None
    assert out.structuredContent["code"] == "UpstreamNotFound"

    audit_lines = (tmp_path / "audit.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(audit_lines) == 1
    event = json.loads(audit_lines[0])
    assert event["outcome"] == "failed"
    assert event["target"] == "octocat/missing"
    assert "tok" not in audit_lines[0]


@pytest.mark.asyncio
async def test_default_substitution_on_the_wire(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    seen = _install_runtime(monkeypatch, handler, tmp_path)

    out = await call_tool("list-repositories-by-owner", {"username": "octocat"})

    assert out.isError is False
    assert out.content[0].text == "[]"
    assert len(seen) == 1
    params = seen[0].url.params
    assert seen[0].url.path == "/users/octocat/repos"
    assert params["type"] == "owner"
    assert params["sort"] == "updated"
    assert params["direction"] == "desc"
    assert params["per_page"] == "30"
    assert params["page"] == "1"


@pytest.mark.asyncio
async def test_file_content_rendered_as_plain_text(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"type": "file", "encoding": "base64", "content": "SGVsbG8="})

    _install_runtime(monkeypatch, handler, tmp_path)

    out = await call_tool("get-file-content", {"owner": "octo", "repo": "repo", "path": "hello.txt"})

    assert out.isError is False
    assert out.content[0].text == "Hello"


@pytest.mark.asyncio
async def test_unknown_tool_via_handler_sends_nothing_upstream(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("GitHub should not be called")

    seen = _install_runtime(monkeypatch, handler, tmp_path)

    out = await call_tool("create-repository", {"name": "x"})

    assert out.isError is True
    assert out.structuredContent is not None
    assert out.structuredContent["code"] == "UnknownOperation"
    assert seen == []


@pytest.mark.asyncio
async def test_validation_error_via_handler(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("GitHub should not be called")

    seen = _install_runtime(monkeypatch, handler, tmp_path)

    out = await call_tool("get-repository", None)  # type: ignore[arg-type]

    assert out.isError is True
    assert out.structuredContent is not None
    assert out.structuredContent["code"] == "ValidationError"
    assert "Missing required field" in out.content[0].text
    assert seen == []


@pytest.mark.asyncio
async def test_unknown_tool_is_written_to_audit_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("GitHub should not be called")

    _install_runtime(monkeypatch, handler, tmp_path)

    await call_tool("get-repository", {"owner": "octo"})
    out = await call_tool("create-repository", {"owner": "octo", "repo": "new"})

    assert out.isError is True
    lines = (tmp_path / "audit.jsonl").read_text(encoding="utf-8").splitlines()
    events = [json.loads(line) for line in lines]
    assert [e["operation"] for e in events] == ["get-repository", "create-repository"]
    assert events[1]["outcome"] == "denied"
    assert events[1]["target"] == "octo/new"
    assert "duration_ms" in events[1]
