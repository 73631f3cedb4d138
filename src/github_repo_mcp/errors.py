"""Error taxonomy and the single internal exception type.

Every failure an agent can observe is classified by an `ErrorKind`. Messages
must be human-readable, non-empty and must never contain the access token.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Classification carried by every failure envelope."""

    UPSTREAM_NOT_FOUND = "UpstreamNotFound"
    UPSTREAM_UNAUTHORIZED = "UpstreamUnauthorized"
    UPSTREAM_RATE_LIMITED = "UpstreamRateLimited"
    UPSTREAM_ERROR = "UpstreamError"
    VALIDATION_ERROR = "ValidationError"
    UNKNOWN_OPERATION = "UnknownOperation"
    INTERNAL_ERROR = "InternalError"


@dataclass(frozen=True, slots=True)
class SafeError(Exception):
    """An error safe to expose to agents."""

    code: ErrorKind
    message: str
    status_code: int | None = None

    def __str__(self) -> str:
        return self.message


def validation_error(message: str) -> SafeError:
    """Error for arguments that fail the operation's parameter schema."""
    return SafeError(code=ErrorKind.VALIDATION_ERROR, message=message)


def config_error(message: str) -> SafeError:
    """Error for invalid host configuration (startup only)."""
    return SafeError(code=ErrorKind.INTERNAL_ERROR, message=message)
