"""
Common test fixtures shared by all modules.

Provides factory functions and fakes for the identity service:
- Deterministic wallet accounts and personal-message signing
- MerkleLeaf / Identity factories
- FakeClock for TTL-driven stores
- FakeIssueSource standing in for the GitHub REST API
"""

from datetime import datetime, timezone
from typing import Optional

from eth_account import Account
from eth_account.messages import encode_defunct

from auth.github_source import IssueComment, IssueInfo, IssueRef, IssueSource
from core.merkle import MerkleLeaf
from core.schemas.errors import IssueNotFoundException, UpstreamUnavailableException
from core.schemas.identity import Identity, classify_identity


# =============================================================================
# Wallets
# =============================================================================

def make_account(seed: int = 0x11):
    """
    Create a deterministic local account.

    Args:
        seed: One byte, repeated 32 times to form the private key.
    """
    return Account.from_key("0x" + f"{seed:02x}" * 32)


def sign(message: str, account) -> str:
    """Sign ``message`` the way a wallet's personal_sign does."""
    signed = Account.sign_message(encode_defunct(text=message), account.key)
    return "0x" + bytes(signed.signature).hex()


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Merkle / Identity Factories
# =============================================================================

def make_leaf(
    issue_number: int = 1,
    wallet_address: Optional[str] = None,
    birth_issue_url: Optional[str] = None,
) -> MerkleLeaf:
    """Create a MerkleLeaf with a wallet derived from the issue number."""
    wallet = wallet_address or "0x" + f"{issue_number:040x}"
    url = birth_issue_url or f"https://github.com/Soul-Brews-Studio/oracle-v2/issues/{issue_number}"
    return MerkleLeaf(wallet_address=wallet, birth_issue_url=url, issue_number=issue_number)


def make_identity(
    display_name: str = "Aria",
    wallet_address: Optional[str] = None,
    github_username: Optional[str] = None,
    github_repo: Optional[str] = None,
    birth_issue: Optional[str] = None,
    approved: bool = False,
    repo_verified: bool = False,
) -> Identity:
    """Create an Identity with its kind already classified."""
    identity = Identity(
        display_name=display_name,
        wallet_address=wallet_address,
        github_username=github_username,
        github_repo=github_repo,
        birth_issue=birth_issue,
        wallet_verified=wallet_address is not None,
        repo_verified=repo_verified,
        approved=approved,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )
    identity.kind = classify_identity(identity)
    return identity


# =============================================================================
# GitHub
# =============================================================================

BIRTH_REPO = "Soul-Brews-Studio/aria-oracle"
BIRTH_ISSUE_URL = f"https://github.com/{BIRTH_REPO}/issues/1"


class FakeIssueSource(IssueSource):
    """
    In-memory IssueSource.

    Issues are keyed by lower-cased "owner/repo" and number. Setting
    ``unavailable`` makes every call fail as if GitHub were down.
    """

    def __init__(self):
        self.issues: dict[tuple[str, int], IssueInfo] = {}
        self.comments: dict[tuple[str, int], list[IssueComment]] = {}
        self.unavailable = False
        self.calls: list[str] = []

    @staticmethod
    def _key(ref: IssueRef) -> tuple[str, int]:
        return (ref.repo_key.lower(), ref.number)

    def add_issue(
        self,
        repo: str = BIRTH_REPO,
        number: int = 1,
        author: str = "nat",
        labels: Optional[list[str]] = None,
        title: str = "Birth: Aria",
        body: str = "**Name**: Aria\n\nAn Oracle is born.",
    ) -> None:
        self.issues[(repo.lower(), number)] = IssueInfo(
            author=author,
            title=title,
            body=body,
            labels=["birth-props"] if labels is None else labels,
        )

    def add_comment(self, author: str, body: str, repo: str = BIRTH_REPO, number: int = 1) -> None:
        self.comments.setdefault((repo.lower(), number), []).append(
            IssueComment(author=author, body=body)
        )

    def _check_available(self) -> None:
        if self.unavailable:
            raise UpstreamUnavailableException("GitHub is unavailable, try again later")

    def fetch_issue(self, ref: IssueRef) -> IssueInfo:
        self.calls.append(f"issue:{ref.url}")
        self._check_available()
        issue = self.issues.get(self._key(ref))
        if issue is None:
            raise IssueNotFoundException("Issue not found", details={"url": ref.url})
        return issue

    def fetch_comments(self, ref: IssueRef) -> list[IssueComment]:
        self.calls.append(f"comments:{ref.url}")
        self._check_available()
        if self._key(ref) not in self.issues:
            raise IssueNotFoundException("Issue not found", details={"url": ref.url})
        return list(self.comments.get(self._key(ref), []))
