"""
GitHub issue source.

Read-only access to issue metadata and comments. Every call has a bounded
timeout and at most one retry (see core.http.HttpClient). Failures come
back as one of two kinds: the issue does not exist (IssueNotFound), or
GitHub could not answer (UpstreamUnavailable, retryable).
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import requests

from core.config.runtime import GitHubConfig
from core.http import HttpClient, HttpError, HttpResponse
from core.schemas.errors import (
    InvalidIssueURLException,
    IssueNotFoundException,
    UpstreamUnavailableException,
)

logger = logging.getLogger(__name__)

ISSUE_URL_RE = re.compile(r"github\.com/([^/\s]+)/([^/\s]+)/issues/(\d+)")

# Comment pages read per verification, 100 comments each
MAX_COMMENT_PAGES = 10

# Tried in order against the issue body, then the title
_ORACLE_NAME_PATTERNS = (
    re.compile(r"\*\*name\*\*[:\s]+([A-Za-z0-9_-]+)", re.IGNORECASE),
    re.compile(r"name[:\s]+[\"']?([A-Za-z0-9_-]+)", re.IGNORECASE),
    re.compile(r"([A-Za-z0-9_-]+)\s+[Oo]racle"),
)


@dataclass(frozen=True)
class IssueRef:
    """A parsed reference to one GitHub issue."""
    owner: str
    repo: str
    number: int

    @property
    def repo_key(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}/issues/{self.number}"


@dataclass
class IssueInfo:
    author: str
    title: str = ""
    body: str = ""
    labels: list[str] = field(default_factory=list)

    @property
    def oracle_name(self) -> Optional[str]:
        return extract_oracle_name(self.title, self.body)

    def has_label(self, label: str) -> bool:
        return any(l.lower() == label.lower() for l in self.labels)


@dataclass
class IssueComment:
    author: str
    body: str


def parse_issue_url(url: str) -> IssueRef:
    """
    Parse ``https://github.com/owner/repo/issues/N``.

    Raises:
        InvalidIssueURLException: If the URL does not reference an issue
    """
    match = ISSUE_URL_RE.search(url or "")
    if not match:
        raise InvalidIssueURLException(
            "Invalid GitHub issue URL", details={"url": (url or "")[:200]}
        )
    owner, repo, number = match.groups()
    return IssueRef(owner=owner, repo=repo, number=int(number))


def normalize_birth_issue(value: Optional[str | int], default_repo: str) -> Optional[str]:
    """
    Canonical birth issue URL.

    A bare issue number refers to an issue in ``default_repo``.

    Raises:
        InvalidIssueURLException: If the value is neither a number nor an issue URL
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.isdigit():
        return f"https://github.com/{default_repo}/issues/{int(text)}"
    return parse_issue_url(text).url


def extract_oracle_name(title: str, body: str) -> Optional[str]:
    """Best-effort Oracle name from a birth issue's body or title."""
    for text in (body or "", title or ""):
        for pattern in _ORACLE_NAME_PATTERNS:
            match = pattern.search(text)
            if match:
                return match.group(1)
    return None


class IssueSource(ABC):
    """Read-only issue and comment lookup."""

    @abstractmethod
    def fetch_issue(self, ref: IssueRef) -> IssueInfo:
        pass

    @abstractmethod
    def fetch_comments(self, ref: IssueRef) -> list[IssueComment]:
        pass


class GitHubIssueSource(IssueSource):
    """IssueSource backed by the GitHub REST API."""

    def __init__(
        self,
        http_client: Optional[HttpClient] = None,
        api_base: str = "https://api.github.com",
        token: Optional[str] = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.headers = headers
        self.http = http_client or HttpClient()

    @classmethod
    def from_config(cls, config: GitHubConfig) -> "GitHubIssueSource":
        client = HttpClient(
            timeout=config.timeout,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
            default_headers={"User-Agent": config.user_agent},
        )
        return cls(http_client=client, api_base=config.api_base, token=config.token)

    def _get(self, url: str, ref: IssueRef, params: Optional[dict[str, Any]] = None) -> HttpResponse:
        try:
            response = self.http.get(url, headers=self.headers, params=params)
        except HttpError as e:
            logger.warning("GitHub unavailable for %s: %s", ref.url, e)
            raise UpstreamUnavailableException(
                "GitHub is unavailable, try again later",
                status_code=e.status_code,
            ) from e

        if response.status_code == 404:
            raise IssueNotFoundException("Issue not found", details={"url": ref.url})
        if not response.ok:
            logger.warning("GitHub returned HTTP %d for %s", response.status_code, url)
            raise UpstreamUnavailableException(
                f"GitHub request failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _decode(response: HttpResponse) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailableException("GitHub returned malformed JSON") from e

    def _get_json(self, path: str, ref: IssueRef, params: Optional[dict[str, Any]] = None) -> Any:
        return self._decode(self._get(f"{self.api_base}{path}", ref, params))

    def _next_page(self, response: HttpResponse) -> Optional[str]:
        """The ``rel="next"`` URL from a Link header, if it stays on the API host."""
        link = next((v for k, v in response.headers.items() if k.lower() == "link"), None)
        if not link:
            return None
        for entry in requests.utils.parse_header_links(link):
            if entry.get("rel") == "next":
                url = entry.get("url", "")
                if url.startswith(f"{self.api_base}/"):
                    return url
                logger.warning("Ignoring off-host next page link: %s", url)
        return None

    def fetch_issue(self, ref: IssueRef) -> IssueInfo:
        data = self._get_json(f"/repos/{ref.owner}/{ref.repo}/issues/{ref.number}", ref)
        return IssueInfo(
            author=(data.get("user") or {}).get("login", ""),
            title=data.get("title") or "",
            body=data.get("body") or "",
            labels=[l.get("name", "") for l in data.get("labels") or [] if isinstance(l, dict)],
        )

    def fetch_comments(self, ref: IssueRef) -> list[IssueComment]:
        """All comments on the issue, following Link pagination up to MAX_COMMENT_PAGES."""
        url: Optional[str] = f"{self.api_base}/repos/{ref.owner}/{ref.repo}/issues/{ref.number}/comments"
        params: Optional[dict[str, Any]] = {"per_page": 100}
        comments: list[IssueComment] = []
        for _ in range(MAX_COMMENT_PAGES):
            response = self._get(url, ref, params)
            comments.extend(
                IssueComment(
                    author=(c.get("user") or {}).get("login", ""),
                    body=c.get("body") or "",
                )
                for c in self._decode(response) or []
            )
            url = self._next_page(response)
            if url is None:
                break
            # the next link carries its own query string
            params = None
        else:
            logger.warning(
                "Stopped reading comments on %s after %d pages", ref.url, MAX_COMMENT_PAGES
            )
        return comments
