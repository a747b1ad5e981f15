"""
Wallet signature recovery.

Personal-message signatures (EIP-191 version 0x45, the scheme wallets use
for ``personal_sign``) are recovered to the signing account with eth_account.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from eth_account import Account
from eth_account.messages import encode_defunct

from core.crypto.hashing import from_hex
from core.schemas.canonical import canonical_address
from core.schemas.errors import InvalidSignatureException

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 65


@dataclass(frozen=True)
class Signature:
    """A 65-byte (r, s, v) personal-message signature."""
    raw: bytes
    scheme: str = "eip191"

    @classmethod
    def from_hex(cls, signature_hex: str) -> "Signature":
        try:
            raw = from_hex(signature_hex)
        except ValueError as e:
            raise InvalidSignatureException(f"Malformed signature: {e}") from e
        if len(raw) != SIGNATURE_LENGTH:
            raise InvalidSignatureException(
                f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(raw)}"
            )
        return cls(raw=raw)


def recover_signer(message: str, signature: Signature | str) -> str:
    """
    Recover the canonical (lower-case) address that signed ``message``.

    Raises:
        InvalidSignatureException: If the signature is malformed or unrecoverable
    """
    if isinstance(signature, str):
        signature = Signature.from_hex(signature)
    try:
        signer = Account.recover_message(encode_defunct(text=message), signature=signature.raw)
    except Exception as e:
        # eth_keys raises its own BadSignature/ValidationError types here
        raise InvalidSignatureException(f"Signature could not be recovered: {e}") from e
    return canonical_address(signer)


def verify_personal_signature(address: str, message: str, signature: Signature | str) -> bool:
    """
    Check that ``signature`` over ``message`` was produced by ``address``.

    Comparison is case-insensitive. Malformed signatures return False.

    Raises:
        InvalidAddressException: If address is not well-formed
    """
    expected = canonical_address(address)
    try:
        signer = recover_signer(message, signature)
    except InvalidSignatureException as e:
        logger.debug("Signature rejected for %s: %s", expected, e.message)
        return False
    return signer == expected
