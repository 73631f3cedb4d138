"""Invocation result envelope and its MCP rendering.

Every tool call ends as exactly one `Success` or `Failure`. Rendering turns the
envelope into the `CallToolResult` sent back to the client:

- Success with data: pretty-printed JSON (text payloads are sent as-is)
- Success without data: "Operation completed successfully"
- Failure: the message as text, `isError=True`, and the error kind in
  `structuredContent` so clients can branch on it without parsing text
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

from mcp.types import CallToolResult, TextContent

from .errors import ErrorKind

EMPTY_SUCCESS_TEXT = "Operation completed successfully"
DEFAULT_FAILURE_TEXT = "Operation failed"


@dataclass(frozen=True, slots=True)
class Success:
    """Operation completed; `payload` is None when there is nothing to show."""

    payload: Any = None


@dataclass(frozen=True, slots=True)
class Failure:
    """Operation failed; `message` is always non-empty."""

    cause: ErrorKind
    message: str

    def __post_init__(self) -> None:
        if not isinstance(self.message, str) or not self.message.strip():
            object.__setattr__(self, "message", DEFAULT_FAILURE_TEXT)


InvocationResult = Union[Success, Failure]


def as_result(outcome: Any) -> InvocationResult:
    """Coerce an adapter outcome into the envelope.

    Envelope values pass through unchanged. Anything else is a raw payload and
    counts as an implicit success; None or an empty string means "no data".
    """
    if isinstance(outcome, (Success, Failure)):
        return outcome
    if outcome is None or outcome == "":
        return Success()
    return Success(payload=outcome)


def render_text(result: InvocationResult) -> str:
    """Render the text block shown to the client."""
    if isinstance(result, Failure):
        return result.message
    payload = result.payload
    if payload is None or payload == "":
        return EMPTY_SUCCESS_TEXT
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, indent=2, ensure_ascii=False, default=str)


def render_result(result: InvocationResult) -> CallToolResult:
    """Convert an envelope into an MCP-compliant CallToolResult."""
    content = [TextContent(type="text", text=render_text(result))]
    if isinstance(result, Failure):
        return CallToolResult(
            content=content,
            structuredContent={"ok": False, "code": result.cause.value, "message": result.message},
            isError=True,
        )
    return CallToolResult(content=content, isError=False)
