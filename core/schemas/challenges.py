"""
Schemas & Canonicalization
File: challenges.py

Purpose: Ephemeral challenge records for the two verification protocols.

Challenges are immutable values. State changes produce a new value via
``model_copy``, which keeps compare-and-delete in the challenge store a
plain equality check.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class NonceChallenge(BaseModel):
    """A pending wallet sign-in challenge, keyed by lower-case address."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    address: str = Field(..., description="Canonical lower-case address (store key)")
    nonce: str = Field(..., description="Random hex nonce, at least 32 bits")
    message: str = Field(..., description="Exact text the wallet must sign")
    issued_at: datetime
    expires_at: datetime
    consumed: bool = False


class RepoChallengeState(str, Enum):
    """Lifecycle of a repository-ownership challenge."""

    PENDING = "pending"
    CONSUMED = "consumed"
    EXPIRED = "expired"
    INVALIDATED = "invalidated"

    @property
    def is_terminal(self) -> bool:
        return self is not RepoChallengeState.PENDING


class RepoChallenge(BaseModel):
    """A one-time code proving control of a repository's birth issue."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    repo_key: str = Field(..., description="owner/repo (store key)")
    code: str = Field(..., description="Random hex code to be posted as a comment")
    issue_url: str = Field(..., description="Canonical birth issue URL")
    issue_number: int = 1
    issue_author: str = Field(..., description="Login of the issue's original author")
    oracle_name: str | None = None
    issued_at: datetime
    expires_at: datetime
    state: RepoChallengeState = RepoChallengeState.PENDING

    @property
    def token(self) -> str:
        """The exact text that must appear in a comment."""
        return f"verify:{self.code}"

    def transition(self, state: RepoChallengeState) -> "RepoChallenge":
        """Return a copy in the given state."""
        return self.model_copy(update={"state": state})
