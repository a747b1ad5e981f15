"""
Schemas & Canonicalization
File: canonical.py

Purpose: Deterministic encodings shared by the sign-in protocol and the
Merkle membership tree.

CRITICAL: All outputs from this module MUST be deterministic across runs.
An external verifier must be able to recompute every encoding here from
the documented rules alone.

Canonical Encoding Rules (Hard Contracts):
1. Address: "0x" + 40 lowercase hex characters
2. Leaf tuple: abi.encode(address wallet, string birthIssueURL, uint256 issueNumber)
3. Timestamps: ISO-8601 UTC with Z suffix, second precision
"""

import re
from datetime import datetime, timezone
from typing import Any

from eth_abi import encode as abi_encode
from eth_utils import is_checksum_address, is_checksum_formatted_address, to_checksum_address

from .errors import InvalidAddressException

# Solidity types of the leaf tuple, in encoding order
LEAF_ABI_TYPES: tuple[str, str, str] = ("address", "string", "uint256")

UINT256_MAX = 2**256 - 1

_HEX_ADDRESS = re.compile(r"0x[0-9a-fA-F]{40}")


def ensure_utc(dt: datetime) -> datetime:
    """
    Ensure a datetime is timezone-aware and in UTC.

    Rules:
        - If naive (no tzinfo): treat as UTC
        - If aware: convert to UTC
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_datetime_canonical(dt: datetime) -> str:
    """
    Format a datetime as ISO-8601 with Z suffix for UTC.

    Sub-second precision is dropped so the value survives a round trip
    through the signed sign-in message unchanged.

    Returns:
        ISO-8601 formatted string (e.g., "2026-01-27T21:35:00Z").
    """
    return ensure_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_datetime_canonical(value: str) -> datetime:
    """Parse a timestamp produced by format_datetime_canonical()."""
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)


def is_valid_address(value: Any) -> bool:
    """
    Return True if value is a well-formed account identifier.

    Mixed-case input must carry a valid EIP-55 checksum.
    """
    if not isinstance(value, str) or not _HEX_ADDRESS.fullmatch(value):
        return False
    if is_checksum_formatted_address(value) and not is_checksum_address(value):
        return False
    return True


def canonical_address(value: Any) -> str:
    """
    Canonicalize an account identifier to lower-case 0x-prefixed hex.

    Accepts all-lowercase, all-uppercase, or correctly checksummed input.
    A mixed-case string with a wrong checksum is rejected.

    Raises:
        InvalidAddressException: If the value is not a valid address
    """
    if not is_valid_address(value):
        raise InvalidAddressException(value)
    return value.lower()


def checksum_address(value: Any) -> str:
    """Return the EIP-55 mixed-case form of an address."""
    return to_checksum_address(canonical_address(value))


def encode_leaf_tuple(wallet: str, birth_issue_url: str, issue_number: int) -> bytes:
    """
    ABI-encode one membership leaf.

    Layout is the standard Solidity head/tail encoding of
    (address, string, uint256), identical to abi.encode() on-chain.

    Raises:
        InvalidAddressException: If wallet is not a valid address
        ValueError: If issue_number is outside the uint256 range
    """
    if isinstance(issue_number, bool) or not isinstance(issue_number, int):
        raise ValueError(f"Issue number must be an integer, got {issue_number!r}")
    if issue_number < 0 or issue_number > UINT256_MAX:
        raise ValueError(f"Issue number out of uint256 range: {issue_number}")
    return abi_encode(
        list(LEAF_ABI_TYPES),
        [checksum_address(wallet), birth_issue_url, issue_number],
    )
