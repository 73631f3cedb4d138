"""Argument validation and typed parameter structs.

An agent hands over an untyped argument bag. Before any adapter logic runs the
bag is checked against the operation's input schema, coerced, completed with
the schema defaults and frozen into one of the parameter dataclasses below.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any, Mapping, TypeVar

from .errors import validation_error
from .registry import get_operation

_TRUE_STRINGS = frozenset({"true", "1", "yes"})
_FALSE_STRINGS = frozenset({"false", "0", "no"})


@dataclass(frozen=True, slots=True)
class RepositoryParams:
    owner: str
    repo: str


@dataclass(frozen=True, slots=True)
class ListRepositoriesParams:
    username: str
    type: str
    sort: str
    direction: str
    per_page: int
    page: int


@dataclass(frozen=True, slots=True)
class DirectoryParams:
    owner: str
    repo: str
    path: str
    ref: str | None


@dataclass(frozen=True, slots=True)
class FileContentParams:
    owner: str
    repo: str
    path: str
    ref: str | None


@dataclass(frozen=True, slots=True)
class SearchRepositoriesParams:
    q: str
    sort: str | None
    order: str
    per_page: int
    page: int


@dataclass(frozen=True, slots=True)
class ReadmeParams:
    owner: str
    repo: str
    ref: str | None


@dataclass(frozen=True, slots=True)
class ListBranchesParams:
    owner: str
    repo: str
    protected: bool | None
    per_page: int
    page: int


@dataclass(frozen=True, slots=True)
class ListContributorsParams:
    owner: str
    repo: str
    anon: bool
    per_page: int
    page: int


ParamsT = TypeVar("ParamsT")


def _coerce_integer(key: str, value: Any) -> int:
    # bool is an int subclass; never accept it as a number.
    if isinstance(value, bool):
        raise validation_error(f"Field '{key}' must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise validation_error(f"Field '{key}' must be an integer")


def _coerce_boolean(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise validation_error(f"Field '{key}' must be a boolean")


def _coerce(key: str, spec: Mapping[str, Any], value: Any) -> Any:
    expected = spec.get("type")
    if expected == "string":
        if not isinstance(value, str):
            raise validation_error(f"Field '{key}' must be a string")
        min_len = spec.get("minLength")
        if isinstance(min_len, int) and len(value.strip()) < min_len:
            raise validation_error(f"Field '{key}' must be at least {min_len} characters")
        out: Any = value
    elif expected == "integer":
        out = _coerce_integer(key, value)
        minimum = spec.get("minimum")
        maximum = spec.get("maximum")
        if isinstance(minimum, int) and out < minimum:
            raise validation_error(f"Field '{key}' must be >= {minimum}")
        if isinstance(maximum, int) and out > maximum:
            raise validation_error(f"Field '{key}' must be <= {maximum}")
    elif expected == "boolean":
        out = _coerce_boolean(key, value)
    else:
        out = value

    allowed = spec.get("enum")
    if allowed is not None and out not in allowed:
        raise validation_error(f"Field '{key}' must be one of: {', '.join(str(a) for a in allowed)}")
    return out


def validate_tool_arguments(tool_name: str, arguments: Mapping[str, Any]) -> dict[str, Any]:
    """Validate arguments against the tool's input schema and apply defaults.

    Enforces required fields, no extra properties when additionalProperties=false,
    the basic JSON types (with lenient coercion of numeric and boolean strings),
    enum membership, numeric bounds and string minLength. It does NOT implement
    full JSON Schema.

    Returns a dict holding every declared property: supplied values coerced,
    absent ones set to their schema default or None.

    Raises:
        SafeError: ValidationError on the first violation found.
    """
    descriptor = get_operation(tool_name)
    if descriptor is None:
        raise validation_error(f"Unknown operation: {tool_name}")

    schema = descriptor.input_schema
    props: Mapping[str, Any] = schema.get("properties", {})
    required: list[str] = schema.get("required", [])

    for k in required:
        if arguments.get(k) is None:
            raise validation_error(f"Missing required field: {k}")

    if schema.get("additionalProperties", True) is False:
        extras = sorted(k for k in arguments if k not in props)
        if extras:
            raise validation_error(f"Unexpected fields are not allowed: {', '.join(extras)}")

    bound: dict[str, Any] = {}
    for k, spec in props.items():
        value = arguments.get(k)
        if value is None:
            bound[k] = spec.get("default")
        else:
            bound[k] = _coerce(k, spec, value)
    return bound


def bind_arguments(tool_name: str, arguments: Mapping[str, Any], params_type: type[ParamsT]) -> ParamsT:
    """Validate an argument bag and materialize the operation's parameter struct."""
    bound = validate_tool_arguments(tool_name, arguments)
    return params_type(**{f.name: bound.get(f.name) for f in fields(params_type)})
