"""Tool registry: the public contract surface.

Each operation is described by a name, a human description and a JSON-Schema
input contract. Optional properties either carry a documented `default`, which
the adapters apply when the field is absent, or are forwarded upstream only when
supplied. The catalog is built once at import and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class OperationDescriptor:
    """A named, schema-described read-only GitHub operation."""

    name: str
    description: str
    input_schema: Mapping[str, Any]


def _owner() -> dict[str, Any]:
    return {"type": "string", "minLength": 1, "description": "Repository owner (username or organization)"}


def _repo() -> dict[str, Any]:
    return {"type": "string", "minLength": 1, "description": "Repository name"}


def _ref() -> dict[str, Any]:
    return {"type": "string", "minLength": 1, "description": "Branch, tag, or commit SHA to view at"}


def _per_page(what: str) -> dict[str, Any]:
    return {
        "type": "integer",
        "minimum": 1,
        "maximum": 100,
        "default": 30,
        "description": f"Number of {what} per page (default: 30)",
    }


def _page() -> dict[str, Any]:
    return {"type": "integer", "minimum": 1, "default": 1, "description": "Page number (default: 1)"}


def _object_schema(properties: dict[str, Any], required: list[str]) -> dict[str, Any]:
    return {
        "type": "object",
        "required": required,
        "properties": properties,
        "additionalProperties": False,
    }


def _repo_only_schema() -> dict[str, Any]:
    return _object_schema({"owner": _owner(), "repo": _repo()}, ["owner", "repo"])


_CATALOG: tuple[OperationDescriptor, ...] = (
    OperationDescriptor(
        name="list-repositories-by-owner",
        description="List repositories for a specific GitHub user or organization.",
        input_schema=_object_schema(
            {
                "username": {"type": "string", "minLength": 1, "description": "GitHub username or organization name"},
                "type": {
                    "type": "string",
                    "enum": ["all", "owner", "member"],
                    "default": "owner",
                    "description": "Type of repositories to list (default: owner)",
                },
                "sort": {
                    "type": "string",
                    "enum": ["created", "updated", "pushed", "full_name"],
                    "default": "updated",
                    "description": "Sort repositories by (default: updated)",
                },
                "direction": {
                    "type": "string",
                    "enum": ["asc", "desc"],
                    "default": "desc",
                    "description": "Sort direction (default: desc)",
                },
                "per_page": _per_page("repositories"),
                "page": _page(),
            },
            ["username"],
        ),
    ),
    OperationDescriptor(
        name="get-repository",
        description="Get detailed information about a specific repository.",
        input_schema=_repo_only_schema(),
    ),
    OperationDescriptor(
        name="list-directory-entries",
        description="List files and directories in a repository path.",
        input_schema=_object_schema(
            {
                "owner": _owner(),
                "repo": _repo(),
                "path": {
                    "type": "string",
                    "default": "",
                    "description": "Path within the repository (default: repository root)",
                },
                "ref": _ref(),
            },
            ["owner", "repo"],
        ),
    ),
    OperationDescriptor(
        name="get-file-content",
        description="Get the decoded text content of a specific file in a repository.",
        input_schema=_object_schema(
            {
                "owner": _owner(),
                "repo": _repo(),
                "path": {"type": "string", "minLength": 1, "description": "Path to the file"},
                "ref": _ref(),
            },
            ["owner", "repo", "path"],
        ),
    ),
    OperationDescriptor(
        name="search-repositories",
        description="Search for repositories on GitHub using keywords (GitHub search syntax).",
        input_schema=_object_schema(
            {
                "q": {"type": "string", "minLength": 1, "description": "Search query (supports GitHub search syntax)"},
                "sort": {
                    "type": "string",
                    "enum": ["stars", "forks", "help-wanted-issues", "updated"],
                    "description": "Sort results by (default: best match)",
                },
                "order": {
                    "type": "string",
                    "enum": ["asc", "desc"],
                    "default": "desc",
                    "description": "Sort order (default: desc)",
                },
                "per_page": _per_page("results"),
                "page": _page(),
            },
            ["q"],
        ),
    ),
    OperationDescriptor(
        name="get-repository-readme",
        description="Get the decoded README content of a repository.",
        input_schema=_object_schema(
            {"owner": _owner(), "repo": _repo(), "ref": _ref()},
            ["owner", "repo"],
        ),
    ),
    OperationDescriptor(
        name="list-branches",
        description="List branches in a repository.",
        input_schema=_object_schema(
            {
                "owner": _owner(),
                "repo": _repo(),
                "protected": {"type": "boolean", "description": "Only return protected branches"},
                "per_page": _per_page("branches"),
                "page": _page(),
            },
            ["owner", "repo"],
        ),
    ),
    OperationDescriptor(
        name="list-languages",
        description="List programming languages used in a repository (bytes of code per language).",
        input_schema=_repo_only_schema(),
    ),
    OperationDescriptor(
        name="list-contributors",
        description="List contributors to a repository.",
        input_schema=_object_schema(
            {
                "owner": _owner(),
                "repo": _repo(),
                "anon": {
                    "type": "boolean",
                    "default": False,
                    "description": "Include anonymous contributors (default: false)",
                },
                "per_page": _per_page("contributors"),
                "page": _page(),
            },
            ["owner", "repo"],
        ),
    ),
    OperationDescriptor(
        name="get-repository-stats",
        description="Get repository statistics (stars, forks, watchers, open issues, etc.).",
        input_schema=_repo_only_schema(),
    ),
)

_BY_NAME: Mapping[str, OperationDescriptor] = MappingProxyType({op.name: op for op in _CATALOG})


def list_operations() -> tuple[OperationDescriptor, ...]:
    """Return every registered operation in registration order."""
    return _CATALOG


def get_operation(name: str) -> OperationDescriptor | None:
    """Look up an operation by name."""
    return _BY_NAME.get(name)


def operation_names() -> tuple[str, ...]:
    """Return the registered operation names in registration order."""
    return tuple(op.name for op in _CATALOG)
