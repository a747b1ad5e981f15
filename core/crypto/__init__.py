"""
Core cryptographic utilities.

Keccak-256 hashing for Merkle commitments and personal-message
signature recovery for wallet sign-in.
"""
from .hashing import (
    keccak256,
    hash_leaf,
    hash_pair,
    to_hex,
    from_hex,
    from_hex32,
)
from .signatures import (
    Signature,
    recover_signer,
    verify_personal_signature,
)

__all__ = [
    "keccak256",
    "hash_leaf",
    "hash_pair",
    "to_hex",
    "from_hex",
    "from_hex32",
    "Signature",
    "recover_signer",
    "verify_personal_signature",
]
