"""
Schemas & Canonicalization
File: __init__.py

Purpose: Export the public API for the schemas module.
This is the main entry point for other modules to import schema definitions.
"""

# Canonical encoding API
from .canonical import (
    LEAF_ABI_TYPES,
    canonical_address,
    checksum_address,
    encode_leaf_tuple,
    ensure_utc,
    format_datetime_canonical,
    is_valid_address,
    parse_datetime_canonical,
)

# Challenge records
from .challenges import (
    NonceChallenge,
    RepoChallenge,
    RepoChallengeState,
)

# Error models and exceptions
from .errors import (
    CodeMismatchOrExpiredException,
    CommentAuthorMismatchException,
    CommentNotFoundException,
    ConflictingLinkException,
    ErrorCodes,
    IdentityNotFoundException,
    InvalidAddressException,
    InvalidIssueURLException,
    InvalidSignatureException,
    IssueNotFoundException,
    LeafNotFoundException,
    MissingLabelException,
    NonceNotFoundOrExpiredException,
    NonceReplayException,
    OracleNetError,
    OracleNetException,
    ProofVerificationFailedException,
    StorageException,
    UpstreamUnavailableException,
    WrongIssueNumberException,
)

# Identity records
from .identity import (
    Identity,
    IdentityKind,
    classify_identity,
)

__all__ = [
    # Canonical
    "LEAF_ABI_TYPES",
    "canonical_address",
    "checksum_address",
    "encode_leaf_tuple",
    "ensure_utc",
    "format_datetime_canonical",
    "is_valid_address",
    "parse_datetime_canonical",
    # Challenges
    "NonceChallenge",
    "RepoChallenge",
    "RepoChallengeState",
    # Errors
    "CodeMismatchOrExpiredException",
    "CommentAuthorMismatchException",
    "CommentNotFoundException",
    "ConflictingLinkException",
    "ErrorCodes",
    "IdentityNotFoundException",
    "InvalidAddressException",
    "InvalidIssueURLException",
    "InvalidSignatureException",
    "IssueNotFoundException",
    "LeafNotFoundException",
    "MissingLabelException",
    "NonceNotFoundOrExpiredException",
    "NonceReplayException",
    "OracleNetError",
    "OracleNetException",
    "ProofVerificationFailedException",
    "StorageException",
    "UpstreamUnavailableException",
    "WrongIssueNumberException",
    # Identity
    "Identity",
    "IdentityKind",
    "classify_identity",
]
