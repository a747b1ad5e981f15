"""
Repository Challenge Unit Tests
Tests for auth/repo_challenge.py
"""
import re

import pytest

from auth.repo_challenge import RepoVerificationChallenge, contains_code_token
from core.config.runtime import AuthConfig
from core.schemas.challenges import RepoChallengeState
from core.schemas.errors import (
    ErrorCodes,
    InvalidIssueURLException,
    IssueNotFoundException,
    MissingLabelException,
    UpstreamUnavailableException,
    WrongIssueNumberException,
)
from core.schemas.identity import IdentityKind
from core.store import MemoryChallengeStore
from identity.allowlist import AllowList, static_provider
from identity.records import MemoryIdentityStore
from identity.resolver import IdentityResolver
from fixtures.common import BIRTH_ISSUE_URL, BIRTH_REPO


@pytest.fixture
def identity_store():
    return MemoryIdentityStore()


@pytest.fixture
def challenges(issue_source, identity_store, clock):
    resolver = IdentityResolver(identity_store, static_provider(AllowList()))
    return RepoVerificationChallenge(
        source=issue_source,
        resolver=resolver,
        store=MemoryChallengeStore(clock=clock),
        config=AuthConfig(),
    )


class TestCodeToken:
    """Token matching inside comment bodies."""

    def test_exact(self):
        assert contains_code_token("verify:abcd1234", "abcd1234")

    def test_embedded_in_text(self):
        assert contains_code_token("Here you go: verify:abcd1234 thanks!", "abcd1234")

    def test_longer_hex_run_does_not_match(self):
        assert not contains_code_token("verify:abcd1234ff", "abcd1234")

    def test_missing_prefix(self):
        assert not contains_code_token("abcd1234", "abcd1234")


class TestStart:
    """Issuing codes."""

    def test_start_issues_code(self, challenges):
        started = challenges.start(BIRTH_ISSUE_URL)

        assert re.fullmatch(r"[0-9a-f]{8}", started.code)
        assert f"verify:{started.code}" in started.instruction
        assert started.expires_in == "10 minutes"
        assert started.issue_url == BIRTH_ISSUE_URL
        assert started.oracle_name == "Aria"
        assert challenges.state(BIRTH_REPO) is RepoChallengeState.PENDING

    def test_wrong_issue_number(self, challenges):
        with pytest.raises(WrongIssueNumberException):
            challenges.start(f"https://github.com/{BIRTH_REPO}/issues/2")

    def test_invalid_url(self, challenges):
        with pytest.raises(InvalidIssueURLException):
            challenges.start("https://example.com/not-an-issue")

    def test_missing_label(self, challenges, issue_source):
        issue_source.add_issue(labels=["question"])
        with pytest.raises(MissingLabelException):
            challenges.start(BIRTH_ISSUE_URL)

    def test_unknown_issue(self, challenges):
        with pytest.raises(IssueNotFoundException):
            challenges.start("https://github.com/someone/else/issues/1")

    def test_upstream_unavailable(self, challenges, issue_source):
        issue_source.unavailable = True
        with pytest.raises(UpstreamUnavailableException) as exc_info:
            challenges.start(BIRTH_ISSUE_URL)
        assert exc_info.value.retryable is True

    def test_restart_invalidates_previous_code(self, challenges):
        first = challenges.start(BIRTH_ISSUE_URL)
        second = challenges.start(BIRTH_ISSUE_URL)

        assert challenges.state(BIRTH_REPO, first.code) is RepoChallengeState.INVALIDATED
        assert challenges.state(BIRTH_REPO, second.code) is RepoChallengeState.PENDING

    def test_history_eviction_forgets_latest_code(self, issue_source, identity_store, clock):
        challenges = RepoVerificationChallenge(
            source=issue_source,
            resolver=IdentityResolver(identity_store, static_provider(AllowList())),
            store=MemoryChallengeStore(clock=clock),
            history_size=2,
        )
        repos = [BIRTH_REPO, "Soul-Brews-Studio/bo-oracle", "Soul-Brews-Studio/cy-oracle"]
        for repo in repos[1:]:
            issue_source.add_issue(repo=repo)

        for repo in repos:
            challenges.start(f"https://github.com/{repo}/issues/1")

        assert challenges.state(BIRTH_REPO) is None
        assert challenges.state(repos[2]) is RepoChallengeState.PENDING
        assert set(challenges._latest) == {repo.lower() for repo in repos[1:]}
    """Checking comments and resolving the identity."""

    def test_success(self, challenges, issue_source, identity_store):
        code = challenges.start(BIRTH_ISSUE_URL).code
        issue_source.add_comment("nat", f"verify:{code}")

        result = challenges.verify(BIRTH_ISSUE_URL, code)

        assert result.success is True
        assert result.created is True
        assert result.approved is True
        identity = result.identity
        assert identity.github_username == "nat"
        assert identity.github_repo == BIRTH_REPO
        assert identity.birth_issue == BIRTH_ISSUE_URL
        assert identity.display_name == "Aria"
        assert identity.repo_verified is True
        assert identity.kind is IdentityKind.ORACLE
        assert len(identity_store) == 1
        assert challenges.state(BIRTH_REPO, code) is RepoChallengeState.CONSUMED

    def test_author_match_is_case_insensitive(self, challenges, issue_source):
        code = challenges.start(BIRTH_ISSUE_URL).code
        issue_source.add_comment("NAT", f"done verify:{code}")
        assert challenges.verify(BIRTH_ISSUE_URL, code).success

    def test_code_is_case_insensitive(self, challenges, issue_source):
        code = challenges.start(BIRTH_ISSUE_URL).code
        issue_source.add_comment("nat", f"verify:{code}")
        assert challenges.verify(BIRTH_ISSUE_URL, f"  {code.upper()} ").success

    def test_comment_not_found(self, challenges):
        code = challenges.start(BIRTH_ISSUE_URL).code

        result = challenges.verify(BIRTH_ISSUE_URL, code)

        assert result.success is False
        assert result.error_code == ErrorCodes.COMMENT_NOT_FOUND
        assert f"verify:{code}" in result.hint
        assert challenges.state(BIRTH_REPO, code) is RepoChallengeState.PENDING

    def test_comment_by_someone_else(self, challenges, issue_source):
        code = challenges.start(BIRTH_ISSUE_URL).code
        issue_source.add_comment("mallory", f"verify:{code}")

        result = challenges.verify(BIRTH_ISSUE_URL, code)

        assert result.success is False
        assert result.error_code == ErrorCodes.COMMENT_AUTHOR_MISMATCH
        assert "@nat" in result.hint
        assert challenges.state(BIRTH_REPO, code) is RepoChallengeState.PENDING

    def test_retry_after_failure(self, challenges, issue_source):
        code = challenges.start(BIRTH_ISSUE_URL).code
        assert not challenges.verify(BIRTH_ISSUE_URL, code).success

        issue_source.add_comment("nat", f"verify:{code}")
        assert challenges.verify(BIRTH_ISSUE_URL, code).success

    def test_wrong_code(self, challenges, issue_source):
        challenges.start(BIRTH_ISSUE_URL)
        issue_source.add_comment("nat", "verify:00000000")

        result = challenges.verify(BIRTH_ISSUE_URL, "00000000")

        assert result.success is False
        assert result.error_code == ErrorCodes.CODE_MISMATCH_OR_EXPIRED

    def test_no_challenge_issued(self, challenges):
        result = challenges.verify(BIRTH_ISSUE_URL, "abcd1234")
        assert result.error_code == ErrorCodes.CODE_MISMATCH_OR_EXPIRED

    def test_non_ascii_code(self, challenges):
        challenges.start(BIRTH_ISSUE_URL)
        result = challenges.verify(BIRTH_ISSUE_URL, "ābcd1234")
        assert result.error_code == ErrorCodes.CODE_MISMATCH_OR_EXPIRED

    def test_code_is_single_use(self, challenges, issue_source):
        code = challenges.start(BIRTH_ISSUE_URL).code
        issue_source.add_comment("nat", f"verify:{code}")
        assert challenges.verify(BIRTH_ISSUE_URL, code).success

        again = challenges.verify(BIRTH_ISSUE_URL, code)

        assert again.success is False
        assert again.error_code == ErrorCodes.CODE_MISMATCH_OR_EXPIRED
        assert "already used" in again.hint

    def test_superseded_code_rejected(self, challenges, issue_source):
        first = challenges.start(BIRTH_ISSUE_URL).code
        challenges.start(BIRTH_ISSUE_URL)
        issue_source.add_comment("nat", f"verify:{first}")

        result = challenges.verify(BIRTH_ISSUE_URL, first)

        assert result.error_code == ErrorCodes.CODE_MISMATCH_OR_EXPIRED
        assert "replaced" in result.hint

    def test_expired_code(self, challenges, issue_source, clock):
        code = challenges.start(BIRTH_ISSUE_URL).code
        issue_source.add_comment("nat", f"verify:{code}")
        clock.advance(600)

        result = challenges.verify(BIRTH_ISSUE_URL, code)

        assert result.error_code == ErrorCodes.CODE_MISMATCH_OR_EXPIRED
        assert challenges.state(BIRTH_REPO, code) is RepoChallengeState.EXPIRED

    def test_failed_lookup_keeps_challenge(self, challenges, issue_source):
        code = challenges.start(BIRTH_ISSUE_URL).code
        issue_source.unavailable = True

        with pytest.raises(UpstreamUnavailableException):
            challenges.verify(BIRTH_ISSUE_URL, code)
        assert challenges.state(BIRTH_REPO, code) is RepoChallengeState.PENDING

    def test_failed_resolution_restores_challenge(self, challenges, issue_source, monkeypatch):
        code = challenges.start(BIRTH_ISSUE_URL).code
        issue_source.add_comment("nat", f"verify:{code}")

        def fail(*args, **kwargs):
            raise RuntimeError("store offline")

        monkeypatch.setattr(challenges.resolver, "resolve_by_github", fail)
        with pytest.raises(RuntimeError):
            challenges.verify(BIRTH_ISSUE_URL, code)

        assert challenges.state(BIRTH_REPO, code) is RepoChallengeState.PENDING

    def test_reverification_updates_existing_identity(self, challenges, issue_source):
        first = challenges.start(BIRTH_ISSUE_URL).code
        issue_source.add_comment("nat", f"verify:{first}")
        created = challenges.verify(BIRTH_ISSUE_URL, first)

        second = challenges.start(BIRTH_ISSUE_URL).code
        issue_source.add_comment("nat", f"verify:{second}")
        again = challenges.verify(BIRTH_ISSUE_URL, second)

        assert again.created is False
        assert again.identity.id == created.identity.id

    def test_sweep_expired(self, challenges, clock):
        challenges.start(BIRTH_ISSUE_URL)
        clock.advance(601)
        assert challenges.sweep_expired() == 1
