"""Error-path and validation coverage for tools dispatch.

These tests ensure dispatch rejects unknown tools and invalid arguments without
touching GitHub, converts upstream and unexpected failures into envelopes, and
never raises.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import github_repo_mcp.tools as tools
import pytest
from github_repo_mcp.audit import AuditEvent
from github_repo_mcp.config import AppConfig, LimitsConfig
from github_repo_mcp.errors import ErrorKind, SafeError
from github_repo_mcp.registry import operation_names
from github_repo_mcp.results import Failure, Success


@dataclass
class DummyAudit:
    events: list[AuditEvent]

    def write_event(self, event: AuditEvent) -> None:
        self.events.append(event)


class SpyGitHub:
    def __init__(self, result: object | Exception = None) -> None:
        self._result = result
        self.calls: list[dict[str, Any]] = []

    async def request_json(self, **kwargs: Any) -> object:
        self.calls.append(dict(kwargs))
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


def _runtime(github: SpyGitHub) -> tools.Runtime:
    cfg = AppConfig(
        token="tok",
        api_base_url="https://api.github.com",
        audit_log_path=None,
        audit_max_bytes=5 * 1024 * 1024,
        audit_max_backups=2,
        limits=LimitsConfig(),
    )
    return tools.Runtime(config=cfg, audit=DummyAudit(events=[]), github=github)  # type: ignore[arg-type]


def test_every_registered_operation_has_an_adapter() -> None:
    assert set(tools._TOOL_FUNCS) == set(operation_names())  # pylint: disable=protected-access


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["delete-repository", "", "GET-REPOSITORY", "get_repository"])
async def test_unknown_operation_makes_no_upstream_call(name: str) -> None:
    github = SpyGitHub()
    runtime = _runtime(github)

    out = await tools.dispatch_tool(name, {"owner": "octo", "repo": "repo"}, runtime=runtime)

    assert isinstance(out, Failure)
    assert out.cause is ErrorKind.UNKNOWN_OPERATION
    assert "get-repository" in out.message
    assert github.calls == []
    assert runtime.audit.events[0].outcome == "denied"  # type: ignore[attr-defined]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "name,args",
    [
        ("list-repositories-by-owner", {}),
        ("get-repository", {"owner": "octo"}),
        ("list-directory-entries", {"repo": "repo"}),
        ("get-file-content", {"owner": "octo", "repo": "repo"}),
        ("search-repositories", {"sort": "stars"}),
        ("get-repository-readme", {}),
        ("list-branches", {"owner": "octo"}),
        ("list-languages", {"repo": "repo"}),
        ("list-contributors", {"owner": "octo"}),
        ("get-repository-stats", {}),
    ],
)
async def test_missing_required_field_fails_before_network(name: str, args: dict) -> None:
    github = SpyGitHub()

    out = await tools.dispatch_tool(name, args, runtime=_runtime(github))

    assert isinstance(out, Failure)
    assert out.cause is ErrorKind.VALIDATION_ERROR
    assert "Missing required field" in out.message
    assert github.calls == []


@pytest.mark.asyncio
async def test_out_of_range_value_fails_before_network() -> None:
    github = SpyGitHub()

    out = await tools.dispatch_tool("list-branches", {"owner": "o", "repo": "r", "per_page": 500}, runtime=_runtime(github))

    assert isinstance(out, Failure)
    assert out.cause is ErrorKind.VALIDATION_ERROR
    assert github.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kind",
    [
        ErrorKind.UPSTREAM_NOT_FOUND,
        ErrorKind.UPSTREAM_UNAUTHORIZED,
        ErrorKind.UPSTREAM_RATE_LIMITED,
        ErrorKind.UPSTREAM_ERROR,
    ],
)
async def test_upstream_errors_become_failures_with_message_preserved(kind: ErrorKind) -> None:
    github = SpyGitHub(SafeError(code=kind, message="upstream said no", status_code=418))
    runtime = _runtime(github)

    out = await tools.dispatch_tool("get-repository", {"owner": "octo", "repo": "repo"}, runtime=runtime)

    assert out == Failure(kind, "upstream said no")
    assert len(github.calls) == 1
    event = runtime.audit.events[0]  # type: ignore[attr-defined]
    assert event.outcome == "failed"
    assert event.reason == "upstream said no"


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_internal_error() -> None:
    github = SpyGitHub(RuntimeError("kaboom"))

    out = await tools.dispatch_tool("list-languages", {"owner": "octo", "repo": "repo"}, runtime=_runtime(github))

    assert out == Failure(ErrorKind.INTERNAL_ERROR, "Internal error")


@pytest.mark.asyncio
async def test_unexpected_upstream_shape_is_upstream_error() -> None:
    github = SpyGitHub({"not": "a list"})

    out = await tools.dispatch_tool("list-branches", {"owner": "octo", "repo": "repo"}, runtime=_runtime(github))

    assert isinstance(out, Failure)
    assert out.cause is ErrorKind.UPSTREAM_ERROR


@pytest.mark.asyncio
async def test_raw_adapter_return_is_normalized(monkeypatch: pytest.MonkeyPatch) -> None:
    async def raw_adapter(_runtime: tools.Runtime, _arguments: dict[str, Any]) -> object:
        return None

    monkeypatch.setitem(tools._TOOL_FUNCS, "list-languages", raw_adapter)  # pylint: disable=protected-access

    out = await tools.dispatch_tool("list-languages", {"owner": "o", "repo": "r"}, runtime=_runtime(SpyGitHub()))

    assert out == Success()


@pytest.mark.asyncio
async def test_missing_configuration_is_reported_not_raised(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setattr(tools, "_RUNTIME", None)

    out = await tools.dispatch_tool("get-repository", {"owner": "octo", "repo": "repo"})

    assert isinstance(out, Failure)
    assert out.cause is ErrorKind.INTERNAL_ERROR
    assert "GITHUB_TOKEN" in out.message


def test_initialize_runtime_from_env_caches_runtime(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "tok")
    monkeypatch.setenv("GITHUB_BASE_URL", "https://ghe.example.com/api/v3")
    monkeypatch.setattr(tools, "_RUNTIME", None)

    r1 = tools.initialize_runtime_from_env()
    r2 = tools.initialize_runtime_from_env()

    assert r1 is r2
    assert r1.github.api_base_url == "https://ghe.example.com/api/v3"


@pytest.mark.asyncio
async def test_non_mapping_arguments_are_treated_as_empty() -> None:
    github = SpyGitHub()
    runtime = _runtime(github)

    out = await tools.dispatch_tool("get-repository", None, runtime=runtime)

    assert isinstance(out, Failure)
    assert out.cause is ErrorKind.VALIDATION_ERROR
    assert out.message == "Missing required field: owner"
    assert github.calls == []
    assert runtime.audit.events[0].target == "<unknown>"  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_unknown_operation_without_configuration_is_still_unknown(monkeypatch: pytest.MonkeyPatch, capsys) -> None:  # noqa: ANN001
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setattr(tools, "_RUNTIME", None)

    out = await tools.dispatch_tool("delete-repository", {"owner": "octo", "repo": "repo"})

    assert isinstance(out, Failure)
    assert out.cause is ErrorKind.UNKNOWN_OPERATION
    assert '"outcome":"denied"' in capsys.readouterr().err
