"""
Repository ownership challenge.

Proves control of a GitHub repository by having the author of its birth
issue (#1) post a one-time code as a comment on that issue.

State machine per repository:

    Pending --(matching comment by issue author)--> Consumed
       |----(TTL elapsed)-------------------------> Expired
       '----(new code issued for the same repo)---> Invalidated

Failed verification attempts (wrong code, no comment yet, comment by
someone else) return a typed result and leave the challenge Pending, so
the same code can be retried until it expires.
"""
from __future__ import annotations

import logging
import re
import secrets
import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from core.config.runtime import AuthConfig
from core.schemas.challenges import RepoChallenge, RepoChallengeState
from core.schemas.errors import (
    CodeMismatchOrExpiredException,
    CommentAuthorMismatchException,
    CommentNotFoundException,
    MissingLabelException,
    OracleNetException,
    WrongIssueNumberException,
)
from core.schemas.identity import Identity
from core.store import ChallengeStore, MemoryChallengeStore

from auth.github_source import IssueComment, IssueRef, IssueSource, parse_issue_url
from identity.resolver import IdentityResolver

logger = logging.getLogger(__name__)

BIRTH_ISSUE_NUMBER = 1

# 32 bits, rendered as 8 hex characters
CODE_BYTES = 4


def generate_code(num_bytes: int = CODE_BYTES) -> str:
    return secrets.token_hex(num_bytes)


def contains_code_token(body: str, code: str) -> bool:
    """True if ``body`` contains ``verify:<code>`` as a whole token."""
    return re.search(rf"verify:{re.escape(code)}(?![0-9A-Fa-f])", body) is not None


def _format_ttl(seconds: int) -> str:
    minutes, rem = divmod(seconds, 60)
    if rem == 0 and minutes:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{seconds} seconds"


@dataclass
class RepoChallengeStart:
    code: str
    instruction: str
    expires_in: str
    expires_at: datetime
    issue_url: str
    oracle_name: Optional[str] = None


@dataclass
class RepoVerifyResult:
    """Outcome of a verification attempt. Failures carry an error code."""
    success: bool
    identity: Optional[Identity] = None
    created: Optional[bool] = None
    error_code: Optional[str] = None
    error: Optional[str] = None
    hint: Optional[str] = None

    @property
    def approved(self) -> Optional[bool]:
        return self.identity.approved if self.identity else None

    @classmethod
    def failure(cls, exc: OracleNetException, hint: Optional[str] = None) -> "RepoVerifyResult":
        return cls(success=False, error_code=exc.code, error=exc.message, hint=hint)


class RepoVerificationChallenge:
    """
    Issues and checks per-repository one-time codes.

    Args:
        source: GitHub issue/comment lookup
        resolver: Receives the verified GitHub identity on success
        store: Live (Pending) challenges keyed by lower-cased "owner/repo"
        config: Label and TTL settings
        history_size: Terminal transitions remembered for status queries
    """

    def __init__(
        self,
        source: IssueSource,
        resolver: IdentityResolver,
        store: Optional[ChallengeStore[RepoChallenge]] = None,
        config: Optional[AuthConfig] = None,
        history_size: int = 1000,
    ) -> None:
        self.source = source
        self.resolver = resolver
        self.store = store if store is not None else MemoryChallengeStore(name="repo challenges")
        self.config = config or AuthConfig()
        self._history: OrderedDict[tuple[str, str], RepoChallenge] = OrderedDict()
        self._latest: dict[str, str] = {}
        self._history_size = history_size
        self._history_lock = threading.Lock()

    @staticmethod
    def _key(ref: IssueRef) -> str:
        return ref.repo_key.lower()

    def _record(self, challenge: RepoChallenge) -> None:
        key = challenge.repo_key.lower()
        with self._history_lock:
            self._history[(key, challenge.code)] = challenge
            self._history.move_to_end((key, challenge.code))
            if challenge.state is RepoChallengeState.PENDING:
                self._latest[key] = challenge.code
            while len(self._history) > self._history_size:
                (evicted_key, evicted_code), _ = self._history.popitem(last=False)
                if self._latest.get(evicted_key) == evicted_code:
                    del self._latest[evicted_key]

    def _birth_issue_ref(self, issue_url: str) -> IssueRef:
        ref = parse_issue_url(issue_url)
        if ref.number != BIRTH_ISSUE_NUMBER:
            raise WrongIssueNumberException(ref.number, details={"url": ref.url})
        return ref

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def start(self, issue_url: str) -> RepoChallengeStart:
        """
        Issue a code for the repository owning ``issue_url``.

        Raises:
            InvalidIssueURLException: If the URL is not a GitHub issue URL
            WrongIssueNumberException: If the issue is not #1
            IssueNotFoundException: If GitHub has no such issue
            MissingLabelException: If the issue lacks the birth label
            UpstreamUnavailableException: If GitHub cannot be reached
        """
        ref = self._birth_issue_ref(issue_url)
        issue = self.source.fetch_issue(ref)

        label = self.config.birth_label
        if not issue.has_label(label):
            raise MissingLabelException(label, details={"url": ref.url})

        now = int(self.store.now())
        ttl = self.config.repo_code_ttl_seconds
        challenge = RepoChallenge(
            repo_key=ref.repo_key,
            code=generate_code(),
            issue_url=ref.url,
            issue_number=ref.number,
            issue_author=issue.author,
            oracle_name=issue.oracle_name,
            issued_at=datetime.fromtimestamp(now, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(now + ttl, tz=timezone.utc),
        )

        replaced = self.store.put(self._key(ref), challenge, now + ttl)
        if replaced is not None:
            self._record(replaced.transition(RepoChallengeState.INVALIDATED))
            logger.warning("Superseded pending repo challenge for %s", ref.repo_key)
        self._record(challenge)
        logger.info("Issued repo challenge for %s (author=%s)", ref.repo_key, issue.author)

        return RepoChallengeStart(
            code=challenge.code,
            instruction=(
                f"Post a comment on {ref.url} containing: {challenge.token}"
            ),
            expires_in=_format_ttl(ttl),
            expires_at=challenge.expires_at,
            issue_url=ref.url,
            oracle_name=challenge.oracle_name,
        )

    def verify(self, issue_url: str, code: str) -> RepoVerifyResult:
        """
        Check the issue's comments for the code posted by the issue author.

        Returns:
            A successful result with the resolved identity, or a failed
            result with CODE_MISMATCH_OR_EXPIRED, COMMENT_NOT_FOUND or
            COMMENT_AUTHOR_MISMATCH. Failed results change no state.

        Raises:
            InvalidIssueURLException / WrongIssueNumberException: Bad URL
            IssueNotFoundException: If the issue disappeared
            UpstreamUnavailableException: If GitHub cannot be reached
            StorageException: If the identity cannot be written
        """
        ref = self._birth_issue_ref(issue_url)
        key = self._key(ref)
        submitted = (code or "").strip().lower()

        challenge = self.store.get(key)
        if (
            challenge is None
            or not submitted.isascii()
            or not secrets.compare_digest(challenge.code, submitted)
        ):
            return self._code_mismatch(key, submitted)

        comments = self.source.fetch_comments(ref)
        failure = self._check_comments(challenge, comments)
        if failure is not None:
            return failure

        if not self.store.compare_and_delete(key, challenge):
            logger.warning("Repo challenge for %s claimed concurrently", ref.repo_key)
            return self._code_mismatch(key, submitted)

        try:
            resolution = self.resolver.resolve_by_github(
                challenge.issue_author,
                ref.repo_key,
                oracle_name=challenge.oracle_name,
                birth_issue=ref.url,
            )
        except Exception:
            self.store.put_if_absent(key, challenge, challenge.expires_at.timestamp())
            raise

        self._record(challenge.transition(RepoChallengeState.CONSUMED))
        logger.info(
            "Repo %s verified for %s (identity=%s)",
            ref.repo_key, challenge.issue_author, resolution.identity.id,
        )
        return RepoVerifyResult(
            success=True,
            identity=resolution.identity,
            created=resolution.created,
        )

    def state(self, repo_key: str, code: Optional[str] = None) -> Optional[RepoChallengeState]:
        """
        Current state of a repository's challenge.

        With no code, reports on the most recently issued one. Returns
        None if nothing is known about it.
        """
        key = repo_key.lower()
        with self._history_lock:
            code = code or self._latest.get(key)
            if code is None:
                return None
            recorded = self._history.get((key, code))
        if recorded is None:
            return None
        if recorded.state is not RepoChallengeState.PENDING:
            return recorded.state
        live = self.store.get(key)
        if live is not None and live.code == code:
            return RepoChallengeState.PENDING
        return RepoChallengeState.EXPIRED

    def sweep_expired(self) -> int:
        return self.store.sweep_expired()

    # ------------------------------------------------------------------
    # Failure results
    # ------------------------------------------------------------------

    def _code_mismatch(self, key: str, code: str) -> RepoVerifyResult:
        state = self.state(key, code) if code else None
        if state is RepoChallengeState.INVALIDATED:
            hint = "This code was replaced by a newer one. Use the latest code."
        elif state is RepoChallengeState.CONSUMED:
            hint = "This code was already used."
        else:
            hint = "Start verification again to get a new code."
        return RepoVerifyResult.failure(
            CodeMismatchOrExpiredException("Invalid or expired verification code"),
            hint=hint,
        )

    @staticmethod
    def _check_comments(
        challenge: RepoChallenge,
        comments: list[IssueComment],
    ) -> Optional[RepoVerifyResult]:
        carrying = [c for c in comments if contains_code_token(c.body, challenge.code)]
        if not carrying:
            return RepoVerifyResult.failure(
                CommentNotFoundException("Verification comment not found"),
                hint=f"Post a comment containing: {challenge.token}",
            )
        author = challenge.issue_author.lower()
        if not any(c.author.lower() == author for c in carrying):
            logger.warning(
                "Code for %s posted by %s, expected issue author %s",
                challenge.repo_key,
                ",".join(sorted({c.author for c in carrying})),
                challenge.issue_author,
            )
            return RepoVerifyResult.failure(
                CommentAuthorMismatchException(
                    "Comment must be posted by the issue author",
                    details={"expected": challenge.issue_author},
                ),
                hint=f"The comment must be posted by @{challenge.issue_author}",
            )
        return None

