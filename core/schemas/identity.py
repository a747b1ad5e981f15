"""
Schemas & Canonicalization
File: identity.py

Purpose: The persistent Identity record and its tagged kind.

An Identity is created on the first successful verification through either
the wallet or the repository protocol. It is never deleted, only updated.
Its ``kind`` is resolved when the record is created or linked, never
re-derived at read sites.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class IdentityKind(str, Enum):
    """What an identity is, decided from which aspects are verified."""

    HUMAN = "human"
    ORACLE = "oracle"
    UNVERIFIED_ORACLE = "unverified_oracle"
    AGENT = "agent"
    UNKNOWN = "unknown"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_identity_id() -> str:
    return uuid.uuid4().hex[:15]


class Identity(BaseModel):
    """
    A participant in the network, anchored by a wallet and/or a GitHub account.

    Invariant: once verified, at least one of wallet_address and
    github_username is set.
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
    )

    id: str = Field(default_factory=new_identity_id, description="Opaque record id")
    display_name: str = Field(..., min_length=1, description="Human-readable name")
    wallet_address: str | None = Field(
        default=None,
        description="Canonical lower-case 0x address, unique across identities",
    )
    github_username: str | None = Field(
        default=None,
        description="GitHub login, unique across identities",
    )
    github_repo: str | None = Field(default=None, description="owner/repo")
    birth_issue: str | None = Field(
        default=None,
        description="Canonical URL of the repository's issue #1",
    )
    wallet_verified: bool = False
    repo_verified: bool = False
    approved: bool = False
    kind: IdentityKind = IdentityKind.UNKNOWN
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @property
    def birth_issue_number(self) -> int | None:
        """Issue number parsed from birth_issue, or None if absent."""
        if not self.birth_issue:
            return None
        tail = self.birth_issue.rstrip("/").rsplit("/", 1)[-1]
        return int(tail) if tail.isdigit() else None


def classify_identity(identity: Identity) -> IdentityKind:
    """
    Resolve the tagged kind of an identity from its verified aspects.

    Rules, first match wins:
    1. Birth issue proven through its repository -> ORACLE
    2. Birth issue only claimed -> UNVERIFIED_ORACLE
    3. GitHub login -> HUMAN
    4. Wallet -> AGENT
    5. Otherwise -> UNKNOWN
    """
    if identity.birth_issue:
        if identity.repo_verified:
            return IdentityKind.ORACLE
        return IdentityKind.UNVERIFIED_ORACLE
    if identity.github_username:
        return IdentityKind.HUMAN
    if identity.wallet_address:
        return IdentityKind.AGENT
    return IdentityKind.UNKNOWN
