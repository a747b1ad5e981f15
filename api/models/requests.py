"""
API Request Models

Pydantic models for API request validation. Field names are camelCase on
the wire; snake_case is accepted as well.
"""

from pydantic import BaseModel, ConfigDict, Field


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NonceRequest(_Request):
    """Request body for POST /auth/wallet/nonce."""

    address: str = Field(..., description="Wallet address to challenge", min_length=1)


class WalletVerifyRequest(_Request):
    """Request body for POST /auth/wallet/verify."""

    address: str = Field(..., description="Wallet address that signed", min_length=1)
    signature: str = Field(..., description="0x-prefixed 65-byte signature", min_length=1)
    message: str | None = Field(
        default=None,
        description="Client copy of the signed message; must equal the issued one",
    )
    display_name: str | None = Field(default=None, alias="displayName", max_length=100)
    birth_issue: str | int | None = Field(
        default=None,
        alias="birthIssue",
        description="Birth issue URL, or an issue number in the default repository",
    )


class WalletLinkRequest(_Request):
    """Request body for POST /auth/wallet/link."""

    address: str = Field(..., min_length=1)
    signature: str = Field(..., min_length=1)
    target_name: str = Field(..., alias="targetName", min_length=1)
    message: str | None = None


class GithubStartRequest(_Request):
    """Request body for POST /auth/github/start."""

    issue_url: str = Field(..., alias="issueUrl", min_length=1)


class GithubVerifyRequest(_Request):
    """Request body for POST /auth/github/verify."""

    issue_url: str = Field(..., alias="issueUrl", min_length=1)
    code: str = Field(..., min_length=1, max_length=64)


class MerkleLeafModel(_Request):
    wallet_address: str = Field(..., alias="walletAddress")
    birth_issue_url: str = Field(..., alias="birthIssueURL")
    issue_number: int = Field(..., alias="issueNumber", ge=0)


class MerkleVerifyRequest(_Request):
    """Request body for POST /merkle/verify."""

    leaf: MerkleLeafModel
    proof: list[str] = Field(default_factory=list)
    root: str
