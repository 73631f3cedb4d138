"""Structured audit logging.

One JSONL event is emitted per tool invocation, whatever its outcome. Events go
to stderr and, when configured, are appended to a size-capped file. They name
the invocation target only and never carry the access token or other argument
values.
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

logger = logging.getLogger(__name__)

_QUERY_TARGET_CHARS = 80


def new_correlation_id() -> str:
    """Generate a random correlation id for traceability."""
    return uuid.uuid4().hex


def target_from_args(arguments: Mapping[str, Any]) -> str:
    """Summarize what an invocation points at: owner/repo, a user, or a search query."""
    owner = arguments.get("owner")
    repo = arguments.get("repo")
    if isinstance(owner, str) and isinstance(repo, str) and owner and repo:
        return f"{owner}/{repo}"
    username = arguments.get("username")
    if isinstance(username, str) and username:
        return f"user:{username}"
    query = arguments.get("q")
    if isinstance(query, str) and query:
        return f"search:{query[:_QUERY_TARGET_CHARS]}"
    return "<unknown>"


@dataclass(frozen=True, slots=True)
class AuditEvent:
    timestamp: str
    correlation_id: str
    operation: str
    target: str
    outcome: str
    reason: str | None = None
    duration_ms: int | None = None

    def to_json(self) -> str:
        """Serialize as one compact JSON line, leaving out unset optional fields."""
        record = {k: v for k, v in asdict(self).items() if v is not None}
        return json.dumps(record, sort_keys=True, separators=(",", ":"))


def build_event(
    *,
    correlation_id: str,
    operation: str,
    target: str,
    outcome: str,
    reason: str | None = None,
    duration_ms: int | None = None,
) -> AuditEvent:
    """Construct an audit event stamped with the current UTC time."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return AuditEvent(
        timestamp=stamp,
        correlation_id=correlation_id,
        operation=operation,
        target=target,
        outcome=outcome,
        reason=reason,
        duration_ms=duration_ms,
    )


def _shift_backups(path: Path, keep: int) -> None:
    # audit.jsonl -> audit.jsonl.1 -> ... -> audit.jsonl.<keep>; the oldest is overwritten.
    if keep <= 0:
        path.write_text("", encoding="utf-8")
        return
    for index in range(keep, 0, -1):
        newer = path if index == 1 else path.with_name(f"{path.name}.{index - 1}")
        if newer.exists():
            newer.replace(path.with_name(f"{path.name}.{index}"))


class AuditLogger:
    """Writes audit events as JSONL to stderr and optionally to a file."""

    def __init__(
        self,
        *,
        sink_path: Path | None,
        max_bytes: int = 5 * 1024 * 1024,
        max_backups: int = 2,
    ) -> None:
        self._sink_path = sink_path
        self._max_bytes = max_bytes
        self._max_backups = max_backups

    @property
    def file_sink_enabled(self) -> bool:
        return self._sink_path is not None

    def write_event(self, event: AuditEvent) -> None:
        line = event.to_json()
        print(line, file=sys.stderr)
        if self._sink_path is not None:
            self._append(self._sink_path, line)

    def _append(self, path: Path, line: str) -> None:
        # A failing file sink never fails the tool call; stderr already has the event.
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if path.exists() and path.stat().st_size >= self._max_bytes:
                _shift_backups(path, self._max_backups)
            with path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as exc:
            logger.warning("Audit file sink write failed (%s)", type(exc).__name__)
