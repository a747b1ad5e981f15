"""
Wallet signature verification and sign-in.

The signed text is never trusted verbatim from the client: the signer is
recovered over the message stored at issuance, so a victim cannot be
tricked into signing arbitrary text that later passes as a sign-in.

A challenge is claimed with an atomic compare-and-delete only after the
signature checks out. Failed attempts leave it in place so the holder
can retry until it expires. If a step after the claim fails, the
challenge is put back before the error propagates.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core.crypto.signatures import verify_personal_signature
from core.schemas.canonical import canonical_address
from core.schemas.challenges import NonceChallenge
from core.schemas.errors import (
    InvalidSignatureException,
    NonceNotFoundOrExpiredException,
    NonceReplayException,
)
from core.schemas.identity import Identity

from auth.message import parse_sign_in_message
from auth.nonce_store import NonceStore
from identity.resolver import IdentityResolver, WalletAspect
from identity.tokens import SessionTokenIssuer

logger = logging.getLogger(__name__)


class SignatureVerifier:
    """
    Checks wallet signatures against stored sign-in challenges.

    Example:
        >>> verifier = SignatureVerifier(nonce_store)
        >>> verifier.verify(address, challenge.message, signature)
        True
    """

    def __init__(self, nonce_store: NonceStore) -> None:
        self.nonce_store = nonce_store

    @staticmethod
    def recovers_to(address: str, message: str, signature: str) -> bool:
        """Pure check: does ``signature`` over ``message`` recover to ``address``?"""
        return verify_personal_signature(address, message, signature)

    def _check_client_message(self, challenge: NonceChallenge, message: str) -> None:
        if message == challenge.message:
            return
        parsed = parse_sign_in_message(message)
        if parsed is None:
            reason = "message is not a sign-in challenge"
        elif parsed.nonce != challenge.nonce:
            reason = "nonce does not match the issued challenge"
        elif parsed.issued_at != challenge.issued_at or parsed.expires_at != challenge.expires_at:
            reason = "issuance window does not match the issued challenge"
        else:
            reason = "message differs from the issued challenge"
        logger.warning("Rejected sign-in for %s: %s", challenge.address, reason)
        raise InvalidSignatureException(
            f"Signed message rejected: {reason}",
            details={"address": challenge.address},
        )

    def claim(
        self,
        address: str,
        signature: str,
        message: Optional[str] = None,
    ) -> NonceChallenge:
        """
        Verify a signature and consume the matching challenge.

        Args:
            address: Claimed signer
            signature: 0x-prefixed 65-byte signature
            message: Client's copy of the signed text; must equal the stored one

        Returns:
            The consumed challenge

        Raises:
            InvalidAddressException: If address is malformed
            NonceNotFoundOrExpiredException: If no live challenge exists
            InvalidSignatureException: If message or signature do not check out
            NonceReplayException: If a concurrent request claimed the challenge first
        """
        key = canonical_address(address)
        challenge = self.nonce_store.get(key)
        if challenge is None:
            raise NonceNotFoundOrExpiredException(
                "No pending sign-in challenge for this address. Request a new nonce.",
                details={"address": key},
            )

        if message is not None:
            self._check_client_message(challenge, message)

        if not self.recovers_to(key, challenge.message, signature):
            logger.warning("Invalid signature for %s", key)
            raise InvalidSignatureException(
                "Signature does not match address", details={"address": key}
            )

        if not self.nonce_store.consume(challenge):
            if self.nonce_store.get(key) is None and self.nonce_store.is_expired(challenge):
                logger.info("Sign-in challenge for %s expired during verification", key)
                raise NonceNotFoundOrExpiredException(
                    "Sign-in challenge expired. Request a new nonce.",
                    details={"address": key},
                )
            logger.warning("Replay blocked for %s", key)
            raise NonceReplayException(
                "Challenge was already used", details={"address": key}
            )
        return challenge

    def verify(self, address: str, message: Optional[str], signature: str) -> bool:
        """
        Verify and consume in one step.

        Returns True on success. Failures raise the typed exceptions
        documented on claim().
        """
        self.claim(address, signature, message)
        return True


@dataclass
class SignInResult:
    token: str
    identity: Identity
    created: bool

    @property
    def approved(self) -> bool:
        return self.identity.approved


@dataclass
class LinkResult:
    linked: bool
    identity: Identity
    token: str


class WalletSignInService:
    """Wallet sign-in and wallet-to-identity linking."""

    def __init__(
        self,
        nonce_store: NonceStore,
        resolver: IdentityResolver,
        token_issuer: SessionTokenIssuer,
    ) -> None:
        self.nonce_store = nonce_store
        self.verifier = SignatureVerifier(nonce_store)
        self.resolver = resolver
        self.token_issuer = token_issuer

    def issue_nonce(self, address: str) -> NonceChallenge:
        return self.nonce_store.issue_nonce(address)

    def sign_in(
        self,
        address: str,
        signature: str,
        message: Optional[str] = None,
        display_name: Optional[str] = None,
        birth_issue: Optional[str] = None,
    ) -> SignInResult:
        """
        Verify a signed challenge and resolve the wallet's identity.

        Raises:
            The exceptions of SignatureVerifier.claim(), and
            StorageException if the identity cannot be written
        """
        challenge = self.verifier.claim(address, signature, message)
        try:
            resolution = self.resolver.resolve_by_wallet(
                challenge.address, display_name=display_name, birth_issue=birth_issue
            )
        except Exception:
            self.nonce_store.restore(challenge)
            raise
        token = self.token_issuer.issue(resolution.identity)
        logger.info(
            "Wallet sign-in for %s (identity=%s, created=%s)",
            challenge.address, resolution.identity.id, resolution.created,
        )
        return SignInResult(token=token, identity=resolution.identity, created=resolution.created)

    def link(
        self,
        address: str,
        signature: str,
        target_name: str,
        message: Optional[str] = None,
    ) -> LinkResult:
        """
        Bind a verified wallet onto the identity named ``target_name``.

        Conflicts are checked before the challenge is claimed, and
        checked again by the resolver when the link is written.

        Raises:
            IdentityNotFoundException: If no identity has that name
            ConflictingLinkException: If either side is already bound elsewhere
        """
        aspect = WalletAspect(canonical_address(address))
        target = self.resolver.find_by_name(target_name)
        self.resolver.check_link(target, aspect)

        challenge = self.verifier.claim(address, signature, message)
        try:
            linked = self.resolver.link(self.resolver.find_by_name(target_name), aspect)
        except Exception:
            self.nonce_store.restore(challenge)
            raise
        return LinkResult(linked=True, identity=linked, token=self.token_issuer.issue(linked))
