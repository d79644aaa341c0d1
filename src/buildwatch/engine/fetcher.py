"""HTTP client for a build job's last-build JSON endpoint."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from types import TracebackType

import httpx

from buildwatch.models.updates import FetchResult

logger = logging.getLogger(__name__)

LAST_BUILD_PATH = "lastBuild/api/json"


def status_url(url_string: str) -> str:
    """Return the last-build JSON URL for a job's base URL."""
    return f"{url_string.rstrip('/')}/{LAST_BUILD_PATH}"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StatusFetcher:
    """Issues one authenticated GET per call and normalizes the reply.

    Transport problems never escape :meth:`fetch`; they are folded into the
    returned :class:`FetchResult` so the caller can record them on the project.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = 30.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._clock = clock

    async def __aenter__(self) -> StatusFetcher:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch(self, url_string: str, username: str, token: str) -> FetchResult:
        """Fetch and parse the last build of the job at ``url_string``."""
        start_time = self._clock()
        url = status_url(url_string)
        try:
            response = await self._client.get(url, auth=httpx.BasicAuth(username, token))
        except httpx.HTTPError as exc:
            logger.debug("Request to %s failed: %s", url, exc)
            return FetchResult(
                start_time=start_time,
                request_error=type(exc).__name__,
                request_error_description=str(exc) or type(exc).__name__,
            )

        body = response.content
        if not body.strip():
            return FetchResult(start_time=start_time, status_code=response.status_code)

        try:
            decoded = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.debug("Non-JSON body from %s (HTTP %d)", url, response.status_code)
            return FetchResult(
                start_time=start_time,
                status_code=response.status_code,
                body_received=True,
                parse_failed=True,
            )

        return FetchResult(
            start_time=start_time,
            status_code=response.status_code,
            body_received=True,
            payload=decoded if isinstance(decoded, dict) else {},
        )
