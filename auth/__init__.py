"""
Verification protocols: wallet sign-in challenges and repository
ownership challenges.
"""
from .github_source import (
    GitHubIssueSource,
    IssueComment,
    IssueInfo,
    IssueRef,
    IssueSource,
    extract_oracle_name,
    normalize_birth_issue,
    parse_issue_url,
)
from .message import SignInMessage, parse_sign_in_message
from .nonce_store import NonceStore
from .repo_challenge import RepoChallengeStart, RepoVerificationChallenge, RepoVerifyResult
from .wallet_verifier import LinkResult, SignatureVerifier, SignInResult, WalletSignInService

__all__ = [
    "GitHubIssueSource",
    "IssueComment",
    "IssueInfo",
    "IssueRef",
    "IssueSource",
    "extract_oracle_name",
    "normalize_birth_issue",
    "parse_issue_url",
    "SignInMessage",
    "parse_sign_in_message",
    "NonceStore",
    "RepoChallengeStart",
    "RepoVerificationChallenge",
    "RepoVerifyResult",
    "LinkResult",
    "SignatureVerifier",
    "SignInResult",
    "WalletSignInService",
]
