"""
HTTP Client

Read-only HTTP client for upstream APIs with a bounded timeout and a
single retry. A request never blocks longer than
``timeout * (max_retries + 1)`` plus the retry delay.
"""

from __future__ import annotations

import json as jsonlib
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    """Status, body and headers of one upstream reply."""
    status_code: int
    content: bytes
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        return jsonlib.loads(self.content)


class HttpError(Exception):
    """Upstream call failed. ``status_code`` is None for transport failures."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_transport_error(self) -> bool:
        return self.status_code is None


def _is_retryable(response: HttpResponse) -> bool:
    return response.status_code >= 500


class HttpClient:
    """
    GET-only client with bounded timeout and retry.

    Transport errors and 5xx responses are retried up to ``max_retries``
    times. Any other status is returned to the caller as-is, so a 404
    reaches the caller as a response rather than an exception.

    Usage:
        client = HttpClient(timeout=10.0)
        response = client.get("https://api.github.com/repos/o/r/issues/1")
    """

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        max_retries: int = 1,
        retry_delay: float = 0.5,
        default_headers: Optional[dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Args:
            timeout: Per-attempt timeout in seconds
            max_retries: Extra attempts after the first one
            retry_delay: Sleep between attempts in seconds
            default_headers: Sent with every request, overridden per call
            session: Pre-built requests session (tests)
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self.retry_delay = retry_delay
        self.default_headers = default_headers or {}
        self._session = session or requests.Session()

    def _attempt(
        self,
        url: str,
        headers: dict[str, str],
        params: Optional[dict[str, Any]],
        timeout: float,
    ) -> HttpResponse:
        try:
            reply = self._session.request(
                method="GET",
                url=url,
                headers=headers,
                params=params,
                timeout=timeout,
            )
        except requests.RequestException as e:
            raise HttpError(f"{type(e).__name__}: {e}") from e
        return HttpResponse(
            status_code=reply.status_code,
            content=reply.content,
            headers=dict(reply.headers),
        )

    def get(
        self,
        url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> HttpResponse:
        """
        GET ``url``, retrying transport failures and 5xx replies.

        Raises:
            HttpError: If the last attempt failed in transport or with a 5xx
        """
        merged = {**self.default_headers, **(headers or {})}
        per_attempt = timeout or self.timeout

        failure: Optional[HttpError] = None
        for attempt in range(self.max_retries + 1):
            if attempt:
                logger.info("Retrying GET %s (attempt %d)", url, attempt + 1)
                time.sleep(self.retry_delay)
            try:
                response = self._attempt(url, merged, params, per_attempt)
            except HttpError as e:
                logger.warning("GET %s failed: %s", url, e)
                failure = e
                continue
            if _is_retryable(response):
                logger.warning("GET %s returned HTTP %d", url, response.status_code)
                failure = HttpError(f"HTTP {response.status_code}", status_code=response.status_code)
                continue
            return response

        raise failure
