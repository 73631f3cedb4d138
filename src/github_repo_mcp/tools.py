"""Backend adapters and the dispatch layer.

This module:
- builds the per-server runtime (config, audit sink, shared GitHub client)
- implements one adapter per registered operation
- dispatches a named invocation to its adapter and folds every outcome,
  including unexpected exceptions, into a `Success` / `Failure` envelope
"""

from __future__ import annotations

import base64
import binascii
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping
from urllib.parse import quote

from .audit import AuditLogger, build_event, new_correlation_id, target_from_args
from .config import AppConfig, load_config_from_env
from .errors import ErrorKind, SafeError
from .github_client import GitHubClient
from .params import (
    DirectoryParams,
    FileContentParams,
    ListBranchesParams,
    ListContributorsParams,
    ListRepositoriesParams,
    ReadmeParams,
    RepositoryParams,
    SearchRepositoriesParams,
    bind_arguments,
)
from .registry import operation_names
from .results import Failure, InvocationResult, Success, as_result

logger = logging.getLogger(__name__)

NOT_A_FILE_MESSAGE = "Content is not a file or not accessible"
README_NOT_ACCESSIBLE_MESSAGE = "README content is not accessible"


@dataclass(frozen=True, slots=True)
class Runtime:
    """Per-server dependencies shared, read-only, across tool calls."""

    config: AppConfig
    audit: AuditLogger
    github: GitHubClient


_RUNTIME: Runtime | None = None


def build_runtime(config: AppConfig) -> Runtime:
    """Assemble the runtime for a loaded configuration."""
    audit = AuditLogger(
        sink_path=config.audit_log_path,
        max_bytes=config.audit_max_bytes,
        max_backups=config.audit_max_backups,
    )
    github = GitHubClient(token=config.token, limits=config.limits, api_base_url=config.api_base_url)
    return Runtime(config=config, audit=audit, github=github)


def initialize_runtime_from_env() -> Runtime:
    """Initialize and cache runtime from environment.

    Called at server startup (fail-fast), and can also be used lazily.
    """
    global _RUNTIME  # pylint: disable=global-statement
    if _RUNTIME is not None:
        return _RUNTIME

    _RUNTIME = build_runtime(load_config_from_env())
    return _RUNTIME


def _seg(value: str) -> str:
    return quote(value.strip(), safe="")


def _repo_path(owner: str, repo: str) -> str:
    return f"/repos/{_seg(owner)}/{_seg(repo)}"


def _content_path(path: str) -> str:
    return quote(path.strip().strip("/"), safe="/")


def _ref_params(ref: str | None) -> dict[str, str] | None:
    if ref:
        return {"ref": ref}
    return None


def _page_params(per_page: int, page: int) -> dict[str, str]:
    return {"per_page": str(per_page), "page": str(page)}


def _bool_param(value: bool) -> str:
    return "true" if value else "false"


def _decode_base64_text(data: Any, *, not_accessible: str) -> InvocationResult:
    if not isinstance(data, dict) or not isinstance(data.get("content"), str):
        return Failure(ErrorKind.UPSTREAM_ERROR, not_accessible)
    encoding = data.get("encoding", "base64")
    if encoding != "base64":
        # Files over 1 MB come back with encoding "none" and no inline content.
        return Failure(ErrorKind.UPSTREAM_ERROR, not_accessible)
    try:
        raw = base64.b64decode(data["content"].encode("ascii"), validate=False)
    except (binascii.Error, UnicodeEncodeError):
        return Failure(ErrorKind.UPSTREAM_ERROR, "GitHub returned malformed base64 content")
    return Success(raw.decode("utf-8", errors="replace"))


async def _tool_list_repositories_by_owner(runtime: Runtime, arguments: dict[str, Any]) -> InvocationResult:
    params = bind_arguments("list-repositories-by-owner", arguments, ListRepositoriesParams)
    query = {"type": params.type, "sort": params.sort, "direction": params.direction}
    query.update(_page_params(params.per_page, params.page))

    data = await runtime.github.request_json(path=f"/users/{_seg(params.username)}/repos", params=query)
    if not isinstance(data, list):
        return Failure(ErrorKind.UPSTREAM_ERROR, "Unexpected repository list response")
    return Success(data)


async def _tool_get_repository(runtime: Runtime, arguments: dict[str, Any]) -> InvocationResult:
    params = bind_arguments("get-repository", arguments, RepositoryParams)

    data = await runtime.github.request_json(path=_repo_path(params.owner, params.repo))
    if not isinstance(data, dict):
        return Failure(ErrorKind.UPSTREAM_ERROR, "Unexpected repository response")
    return Success(data)


async def _tool_list_directory_entries(runtime: Runtime, arguments: dict[str, Any]) -> InvocationResult:
    params = bind_arguments("list-directory-entries", arguments, DirectoryParams)

    data = await runtime.github.request_json(
        path=f"{_repo_path(params.owner, params.repo)}/contents/{_content_path(params.path)}",
        params=_ref_params(params.ref),
    )
    # A path that resolves to a single file comes back as one object.
    if isinstance(data, list):
        return Success(data)
    if isinstance(data, dict):
        return Success([data])
    return Failure(ErrorKind.UPSTREAM_ERROR, "Unexpected directory listing response")


async def _tool_get_file_content(runtime: Runtime, arguments: dict[str, Any]) -> InvocationResult:
    params = bind_arguments("get-file-content", arguments, FileContentParams)

    data = await runtime.github.request_json(
        path=f"{_repo_path(params.owner, params.repo)}/contents/{_content_path(params.path)}",
        params=_ref_params(params.ref),
    )
    return _decode_base64_text(data, not_accessible=NOT_A_FILE_MESSAGE)


async def _tool_search_repositories(runtime: Runtime, arguments: dict[str, Any]) -> InvocationResult:
    params = bind_arguments("search-repositories", arguments, SearchRepositoriesParams)
    query = {"q": params.q, "order": params.order}
    if params.sort:
        query["sort"] = params.sort
    query.update(_page_params(params.per_page, params.page))

    data = await runtime.github.request_json(path="/search/repositories", params=query)
    items = data.get("items") if isinstance(data, dict) else None
    if not isinstance(items, list):
        return Failure(ErrorKind.UPSTREAM_ERROR, "Unexpected search response")
    return Success(items)


async def _tool_get_repository_readme(runtime: Runtime, arguments: dict[str, Any]) -> InvocationResult:
    params = bind_arguments("get-repository-readme", arguments, ReadmeParams)

    data = await runtime.github.request_json(
        path=f"{_repo_path(params.owner, params.repo)}/readme",
        params=_ref_params(params.ref),
    )
    return _decode_base64_text(data, not_accessible=README_NOT_ACCESSIBLE_MESSAGE)


async def _tool_list_branches(runtime: Runtime, arguments: dict[str, Any]) -> InvocationResult:
    params = bind_arguments("list-branches", arguments, ListBranchesParams)
    query = _page_params(params.per_page, params.page)
    if params.protected is not None:
        query["protected"] = _bool_param(params.protected)

    data = await runtime.github.request_json(
        path=f"{_repo_path(params.owner, params.repo)}/branches",
        params=query,
    )
    if not isinstance(data, list):
        return Failure(ErrorKind.UPSTREAM_ERROR, "Unexpected branches response")
    return Success(data)


async def _tool_list_languages(runtime: Runtime, arguments: dict[str, Any]) -> InvocationResult:
    params = bind_arguments("list-languages", arguments, RepositoryParams)

    data = await runtime.github.request_json(path=f"{_repo_path(params.owner, params.repo)}/languages")
    if not isinstance(data, dict):
        return Failure(ErrorKind.UPSTREAM_ERROR, "Unexpected languages response")
    return Success(data)


async def _tool_list_contributors(runtime: Runtime, arguments: dict[str, Any]) -> InvocationResult:
    params = bind_arguments("list-contributors", arguments, ListContributorsParams)
    query = {"anon": _bool_param(params.anon)}
    query.update(_page_params(params.per_page, params.page))

    data = await runtime.github.request_json(
        path=f"{_repo_path(params.owner, params.repo)}/contributors",
        params=query,
    )
    # GitHub answers 204 No Content for empty repositories.
    if data is None:
        return Success([])
    if not isinstance(data, list):
        return Failure(ErrorKind.UPSTREAM_ERROR, "Unexpected contributors response")
    return Success(data)


ToolFunc = Callable[[Runtime, dict[str, Any]], Awaitable[Any]]

_TOOL_FUNCS: dict[str, ToolFunc] = {
    "list-repositories-by-owner": _tool_list_repositories_by_owner,
    "get-repository": _tool_get_repository,
    "list-directory-entries": _tool_list_directory_entries,
    "get-file-content": _tool_get_file_content,
    "search-repositories": _tool_search_repositories,
    "get-repository-readme": _tool_get_repository_readme,
    "list-branches": _tool_list_branches,
    "list-languages": _tool_list_languages,
    "list-contributors": _tool_list_contributors,
    # Same request and payload as get-repository.
    "get-repository-stats": _tool_get_repository,
}


def _outcome_label(result: InvocationResult) -> str:
    if isinstance(result, Success):
        return "succeeded"
    if result.cause in (ErrorKind.VALIDATION_ERROR, ErrorKind.UNKNOWN_OPERATION):
        return "denied"
    return "failed"


def _resolve_runtime() -> Runtime | None:
    try:
        return initialize_runtime_from_env()
    except SafeError:
        return None


async def dispatch_tool(
    name: str,
    arguments: Mapping[str, Any] | None,
    *,
    runtime: Runtime | None = None,
) -> InvocationResult:
    """Dispatch a tool call.

    Never raises: unknown names, invalid arguments, GitHub failures and
    unexpected exceptions all come back as a `Failure`. Every call, including
    one for an unknown name, writes exactly one event to the runtime's audit log.
    """
    started = time.monotonic()
    if not isinstance(arguments, Mapping):
        arguments = {}
    correlation_id = new_correlation_id()

    if runtime is None:
        runtime = _resolve_runtime()
    # Without configuration the event still reaches stderr.
    audit = runtime.audit if runtime is not None else AuditLogger(sink_path=None)

    result: InvocationResult
    func = _TOOL_FUNCS.get(name)
    if func is None:
        result = Failure(
            ErrorKind.UNKNOWN_OPERATION,
            f"Unknown tool: {name}. Available tools: {', '.join(operation_names())}",
        )
    else:
        try:
            if runtime is None:
                runtime = initialize_runtime_from_env()
            result = as_result(await func(runtime, dict(arguments)))
        except SafeError as err:
            result = Failure(err.code, err.message)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Tool %s raised an unexpected error", name)
            result = Failure(ErrorKind.INTERNAL_ERROR, "Internal error")

    audit.write_event(
        build_event(
            correlation_id=correlation_id,
            operation=name,
            target=target_from_args(arguments),
            outcome=_outcome_label(result),
            reason=result.message if isinstance(result, Failure) else None,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
    )
    return result
