"""GitHub REST client wrapper.

Provides:
- single-attempt GET requests (no retries, no backoff)
- configurable API base URL for GitHub Enterprise deployments
- translation of upstream failures into `ErrorKind`-classified `SafeError`s,
  preserving GitHub's own error message where one is returned
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

import httpx

from .config import DEFAULT_API_BASE_URL, LimitsConfig
from .errors import ErrorKind, SafeError

logger = logging.getLogger(__name__)


class GitHubClient:
    """Minimal read-only GitHub REST client.

    Holds only immutable settings, so one instance is shared by every
    concurrent tool call.
    """

    def __init__(
        self,
        *,
        token: str,
        limits: LimitsConfig | None = None,
        api_base_url: str = DEFAULT_API_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a GitHub REST client.

        Args:
            token: Access token sent as a Bearer credential.
            limits: Network limits (timeouts).
            api_base_url: REST API root; https://api.github.com or an Enterprise `/api/v3` URL.
            transport: Optional httpx transport for tests.
        """
        self._token = token
        self._limits = limits or LimitsConfig()
        self._api_base_url = api_base_url.rstrip("/")
        self._transport = transport

    @property
    def api_base_url(self) -> str:
        return self._api_base_url

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "github-repo-mcp",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _error_message(self, resp: httpx.Response) -> str | None:
        try:
            payload = resp.json()
        except ValueError:
            return None
        if isinstance(payload, dict) and isinstance(payload.get("message"), str) and payload["message"]:
            return payload["message"]
        return None

    def _is_rate_limited(self, resp: httpx.Response, message: str | None) -> bool:
        if resp.status_code == 429:
            return True
        if resp.status_code != 403:
            return False
        if resp.headers.get("x-ratelimit-remaining") == "0":
            return True
        return message is not None and "rate limit" in message.lower()

    def _classify(self, resp: httpx.Response, message: str | None) -> ErrorKind:
        if resp.status_code == 404:
            return ErrorKind.UPSTREAM_NOT_FOUND
        if self._is_rate_limited(resp, message):
            return ErrorKind.UPSTREAM_RATE_LIMITED
        if resp.status_code in (401, 403):
            return ErrorKind.UPSTREAM_UNAUTHORIZED
        return ErrorKind.UPSTREAM_ERROR

    async def request_json(
        self,
        *,
        path: str,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        """GET `path` and return decoded JSON.

        GitHub APIs may return either an object (dict) or an array (list).

        Raises:
            SafeError: classified upstream failure; exactly one HTTP request is made.
        """
        url = f"{self._api_base_url}{path}"
        logger.debug("GET %s params=%s", path, dict(params or {}))

        try:
            async with httpx.AsyncClient(
                follow_redirects=True,
                timeout=httpx.Timeout(self._limits.http_timeout_s),
                transport=self._transport,
            ) as client:
                resp = await client.get(url, headers=self._headers(), params=dict(params or {}))
        except httpx.HTTPError as exc:
            logger.warning("GitHub request to %s failed: %s", path, type(exc).__name__)
            raise SafeError(
                code=ErrorKind.UPSTREAM_ERROR,
                message=f"Network request to GitHub failed ({type(exc).__name__})",
            ) from exc

        if resp.status_code >= 400:
            message = self._error_message(resp)
            kind = self._classify(resp, message)
            logger.info("GitHub returned %s for %s (%s)", resp.status_code, path, kind.value)
            raise SafeError(
                code=kind,
                message=message or f"GitHub request failed (status={resp.status_code})",
                status_code=resp.status_code,
            )

        if resp.status_code == 204 or not resp.content:
            return None

        try:
            return resp.json()
        except json.JSONDecodeError as exc:
            raise SafeError(code=ErrorKind.UPSTREAM_ERROR, message="GitHub returned invalid JSON") from exc
