"""
Hashing Utilities
Keccak-256 hashing and hex helpers for Merkle commitments.

This module provides:
- Keccak-256 hashing for raw bytes (the EVM hash, not NIST SHA3-256)
- Leaf hashing for the canonical (address, string, uint256) tuple
- Order-independent pair hashing for internal tree nodes
- Hex encoding/decoding with 0x prefix

Security/Determinism Notes:
- Leaves are double-hashed so a leaf preimage can never be a 64-byte
  internal node
- Pair hashing sorts its inputs, so proofs carry no left/right flags
- All operations are deterministic
"""
from __future__ import annotations

from eth_utils import keccak

from core.schemas.canonical import encode_leaf_tuple


def keccak256(data: bytes) -> bytes:
    """
    Compute the Keccak-256 hash of raw bytes.

    Example:
        >>> keccak256(b"").hex()
        'c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470'
    """
    return keccak(primitive=data)


def hash_leaf(wallet: str, birth_issue_url: str, issue_number: int) -> bytes:
    """
    Hash one membership leaf.

    Rule: leaf = keccak256(keccak256(abi.encode(wallet, birthIssueURL, issueNumber)))

    Raises:
        InvalidAddressException: If wallet is not a valid address
        ValueError: If issue_number is not a uint256
    """
    return keccak256(keccak256(encode_leaf_tuple(wallet, birth_issue_url, issue_number)))


def hash_pair(a: bytes, b: bytes) -> bytes:
    """
    Hash two sibling nodes into their parent.

    Rule: parent = keccak256(min(a, b) + max(a, b)), bytewise comparison.
    """
    if a <= b:
        return keccak256(a + b)
    return keccak256(b + a)


def to_hex(data: bytes) -> str:
    """
    Convert bytes to hexadecimal string with 0x prefix.

    Example:
        >>> to_hex(bytes.fromhex("deadbeef"))
        '0xdeadbeef'
    """
    return "0x" + data.hex()


def from_hex(hex_string: str) -> bytes:
    """
    Convert hexadecimal string (with 0x prefix) to bytes.

    Raises:
        ValueError: If string doesn't start with 0x, has odd length,
                   or contains invalid hex characters
    """
    if not isinstance(hex_string, str) or not hex_string.startswith("0x"):
        raise ValueError(
            f"Hex string must start with '0x' prefix, got: {str(hex_string)[:10]}..."
        )

    hex_content = hex_string[2:]

    if len(hex_content) % 2 != 0:
        raise ValueError(
            f"Hex string must have even length after 0x prefix, "
            f"got length {len(hex_content)}"
        )

    try:
        return bytes.fromhex(hex_content)
    except ValueError as e:
        raise ValueError(f"Invalid hex characters in string: {e}") from e


def from_hex32(hex_string: str) -> bytes:
    """Decode a 0x-prefixed hex string that must encode exactly 32 bytes."""
    data = from_hex(hex_string)
    if len(data) != 32:
        raise ValueError(f"Expected a 32-byte hash, got {len(data)} bytes")
    return data


__all__ = [
    "keccak256",
    "hash_leaf",
    "hash_pair",
    "to_hex",
    "from_hex",
    "from_hex32",
]
