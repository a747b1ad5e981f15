"""
Schemas & Canonicalization
File: errors.py

Purpose: Standard error taxonomy for identity and provenance verification.
Defines both Pydantic models for structured error communication
and Python exceptions for control flow.

Validation failures are reported directly to the caller and never retried
server-side. Upstream (GitHub) failures are the only retryable kind.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes used across the service."""

    # Wallet & Signature Errors
    INVALID_ADDRESS = "INVALID_ADDRESS"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    NONCE_NOT_FOUND_OR_EXPIRED = "NONCE_NOT_FOUND_OR_EXPIRED"
    NONCE_REPLAY = "NONCE_REPLAY"

    # Repository Challenge Errors
    INVALID_ISSUE_URL = "INVALID_ISSUE_URL"
    ISSUE_NOT_FOUND = "ISSUE_NOT_FOUND"
    WRONG_ISSUE_NUMBER = "WRONG_ISSUE_NUMBER"
    MISSING_LABEL = "MISSING_LABEL"
    CODE_MISMATCH_OR_EXPIRED = "CODE_MISMATCH_OR_EXPIRED"
    COMMENT_AUTHOR_MISMATCH = "COMMENT_AUTHOR_MISMATCH"
    COMMENT_NOT_FOUND = "COMMENT_NOT_FOUND"

    # Identity Errors
    CONFLICTING_LINK = "CONFLICTING_LINK"
    IDENTITY_NOT_FOUND = "IDENTITY_NOT_FOUND"

    # Merkle & Commitment Errors
    LEAF_NOT_FOUND = "LEAF_NOT_FOUND"
    PROOF_VERIFICATION_FAILED = "PROOF_VERIFICATION_FAILED"

    # Infrastructure Errors
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    STORAGE_ERROR = "STORAGE_ERROR"


# =============================================================================
# Pydantic Error Models (Structured Communication)
# =============================================================================

class OracleNetError(BaseModel):
    """
    Base error model for structured error communication.

    Used for passing errors between layers without exceptions
    (e.g. typed repo-verification failures) and for serialization.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.INVALID_SIGNATURE],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the operation can be retried",
    )

    def to_exception(self) -> "OracleNetException":
        """Convert this error model to a raised exception."""
        return OracleNetException(
            message=self.message,
            code=self.code,
            details=self.details,
            retryable=self.retryable,
        )


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class OracleNetException(Exception):
    """
    Base exception for all identity and provenance errors.

    This exception carries structured error information and can be
    converted to/from OracleNetError models.
    """

    default_code = "ORACLENET_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_error_model(self) -> OracleNetError:
        """Convert this exception to an OracleNetError model."""
        return OracleNetError(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class _CodedException(OracleNetException):
    """Exception with a fixed code; subclasses only set ``default_code``."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=self.default_code,
            details=details,
            retryable=False,
        )


class InvalidAddressException(_CodedException):
    """Raised when an account identifier is not syntactically well-formed."""

    default_code = ErrorCodes.INVALID_ADDRESS

    def __init__(self, address: Any, details: dict[str, Any] | None = None) -> None:
        full_details = details or {}
        full_details["address"] = str(address)[:64]
        super().__init__(f"Invalid wallet address: {str(address)[:64]!r}", full_details)


class InvalidSignatureException(_CodedException):
    """Raised when a signature does not recover to the claimed address."""

    default_code = ErrorCodes.INVALID_SIGNATURE


class NonceNotFoundOrExpiredException(_CodedException):
    """Raised when no live sign-in challenge exists for an address."""

    default_code = ErrorCodes.NONCE_NOT_FOUND_OR_EXPIRED


class NonceReplayException(_CodedException):
    """Raised when a challenge was claimed by a concurrent request."""

    default_code = ErrorCodes.NONCE_REPLAY


class InvalidIssueURLException(_CodedException):
    """Raised when an issue URL cannot be parsed as owner/repo/issues/N."""

    default_code = ErrorCodes.INVALID_ISSUE_URL


class IssueNotFoundException(_CodedException):
    """Raised when the referenced GitHub issue does not exist."""

    default_code = ErrorCodes.ISSUE_NOT_FOUND


class WrongIssueNumberException(_CodedException):
    """Raised when a repo challenge targets any issue other than #1."""

    default_code = ErrorCodes.WRONG_ISSUE_NUMBER

    def __init__(self, number: int, details: dict[str, Any] | None = None) -> None:
        full_details = details or {}
        full_details["issue_number"] = number
        super().__init__(
            f"Only the birth issue (#1) can be used for verification, got #{number}",
            full_details,
        )


class MissingLabelException(_CodedException):
    """Raised when the birth issue lacks the required label."""

    default_code = ErrorCodes.MISSING_LABEL

    def __init__(self, label: str, details: dict[str, Any] | None = None) -> None:
        full_details = details or {}
        full_details["label"] = label
        super().__init__(f"Issue must have the '{label}' label", full_details)


class CodeMismatchOrExpiredException(_CodedException):
    """Raised when no pending repo challenge matches the submitted code."""

    default_code = ErrorCodes.CODE_MISMATCH_OR_EXPIRED


class CommentAuthorMismatchException(_CodedException):
    """Raised when the code was posted by someone other than the issue author."""

    default_code = ErrorCodes.COMMENT_AUTHOR_MISMATCH


class CommentNotFoundException(_CodedException):
    """Raised when no comment on the issue carries the verification code."""

    default_code = ErrorCodes.COMMENT_NOT_FOUND


class ConflictingLinkException(_CodedException):
    """Raised when linking would overwrite a different existing credential."""

    default_code = ErrorCodes.CONFLICTING_LINK


class IdentityNotFoundException(_CodedException):
    """Raised when a named identity does not exist."""

    default_code = ErrorCodes.IDENTITY_NOT_FOUND


class LeafNotFoundException(_CodedException):
    """Raised when a proof is requested for a leaf outside the tree."""

    default_code = ErrorCodes.LEAF_NOT_FOUND


class ProofVerificationFailedException(_CodedException):
    """Raised when a Merkle proof does not fold to the expected root."""

    default_code = ErrorCodes.PROOF_VERIFICATION_FAILED


class StorageException(_CodedException):
    """Raised when the identity or challenge store fails."""

    default_code = ErrorCodes.STORAGE_ERROR


class UpstreamUnavailableException(OracleNetException):
    """Raised when GitHub cannot be reached; the only retryable kind."""

    default_code = ErrorCodes.UPSTREAM_UNAVAILABLE

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if status_code is not None:
            full_details["status_code"] = status_code
        super().__init__(
            message=message,
            code=ErrorCodes.UPSTREAM_UNAVAILABLE,
            details=full_details,
            retryable=True,
        )

