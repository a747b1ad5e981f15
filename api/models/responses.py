"""
API Response Models

Pydantic models for API response serialization.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from core.schemas.identity import Identity


class _Response(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(BaseModel):
    """Response for GET /health endpoint."""

    ok: bool = True
    service: str = "oraclenet-identity"
    version: str = "v1"


class IdentityOut(_Response):
    """Public view of an Identity."""

    id: str
    display_name: str = Field(..., alias="displayName")
    kind: str
    wallet_address: str | None = Field(default=None, alias="walletAddress")
    github_username: str | None = Field(default=None, alias="githubUsername")
    github_repo: str | None = Field(default=None, alias="githubRepo")
    birth_issue: str | None = Field(default=None, alias="birthIssue")
    wallet_verified: bool = Field(..., alias="walletVerified")
    repo_verified: bool = Field(..., alias="repoVerified")
    approved: bool
    created_at: datetime = Field(..., alias="createdAt")

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityOut":
        return cls(
            id=identity.id,
            display_name=identity.display_name,
            kind=identity.kind.value,
            wallet_address=identity.wallet_address,
            github_username=identity.github_username,
            github_repo=identity.github_repo,
            birth_issue=identity.birth_issue,
            wallet_verified=identity.wallet_verified,
            repo_verified=identity.repo_verified,
            approved=identity.approved,
            created_at=identity.created_at,
        )


class NonceResponse(_Response):
    nonce: str
    message: str
    expires_at: datetime = Field(..., alias="expiresAt")


class WalletVerifyResponse(_Response):
    token: str
    identity: IdentityOut
    created: bool
    approved: bool


class WalletLinkResponse(_Response):
    linked: bool
    identity: IdentityOut | None = None
    token: str | None = None


class GithubStartResponse(_Response):
    code: str
    instruction: str
    expires_in: str = Field(..., alias="expiresIn")
    expires_at: datetime = Field(..., alias="expiresAt")
    issue_url: str = Field(..., alias="issueUrl")
    oracle_name: str | None = Field(default=None, alias="oracleName")


class GithubVerifyResponse(_Response):
    success: bool
    identity: IdentityOut | None = None
    created: bool | None = None
    approved: bool | None = None
    token: str | None = None
    error: str | None = None
    error_code: str | None = Field(default=None, alias="errorCode")
    hint: str | None = None


class MerkleRootResponse(_Response):
    root: str
    leaf_count: int = Field(..., alias="leafCount")


class MerkleProofResponse(_Response):
    root: str
    proof: list[str]
    leaf: dict[str, Any]
    leaf_hash: str = Field(..., alias="leafHash")
    leaf_index: int = Field(..., alias="leafIndex")


class MerkleTreeResponse(_Response):
    root: str
    leaf_count: int = Field(..., alias="leafCount")
    layers: list[list[str]]
    leaves: list[dict[str, Any]]


class MerkleVerifyResponse(_Response):
    valid: bool


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    details: dict[str, Any] = Field(default_factory=dict)
    retryable: bool = False


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = False
    error: ErrorDetail
