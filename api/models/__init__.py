"""API request and response models."""

from api.models.requests import (
    GithubStartRequest,
    GithubVerifyRequest,
    MerkleLeafModel,
    MerkleVerifyRequest,
    NonceRequest,
    WalletLinkRequest,
    WalletVerifyRequest,
)
from api.models.responses import (
    ErrorDetail,
    ErrorResponse,
    GithubStartResponse,
    GithubVerifyResponse,
    HealthResponse,
    IdentityOut,
    MerkleProofResponse,
    MerkleRootResponse,
    MerkleTreeResponse,
    MerkleVerifyResponse,
    NonceResponse,
    WalletLinkResponse,
    WalletVerifyResponse,
)

__all__ = [
    "GithubStartRequest",
    "GithubVerifyRequest",
    "MerkleLeafModel",
    "MerkleVerifyRequest",
    "NonceRequest",
    "WalletLinkRequest",
    "WalletVerifyRequest",
    "ErrorDetail",
    "ErrorResponse",
    "GithubStartResponse",
    "GithubVerifyResponse",
    "HealthResponse",
    "IdentityOut",
    "MerkleProofResponse",
    "MerkleRootResponse",
    "MerkleTreeResponse",
    "MerkleVerifyResponse",
    "NonceResponse",
    "WalletLinkResponse",
    "WalletVerifyResponse",
]
