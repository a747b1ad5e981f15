"""
Wallet sign-in challenges.

At most one challenge is outstanding per address: issuing a new one
replaces the previous. Challenges are single use and expire after the
configured TTL (5 minutes by default).
"""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from core.config.runtime import AuthConfig
from core.schemas.canonical import canonical_address
from core.schemas.challenges import NonceChallenge
from core.store import ChallengeStore, MemoryChallengeStore

from auth.message import SignInMessage

logger = logging.getLogger(__name__)

# 64 bits of entropy
NONCE_BYTES = 8


def generate_nonce(num_bytes: int = NONCE_BYTES) -> str:
    return secrets.token_hex(num_bytes)


class NonceStore:
    """
    Issues and single-use-tracks per-address sign-in challenges.

    Example:
        >>> nonces = NonceStore()
        >>> challenge = nonces.issue_nonce("0xAbC...")
        >>> print(challenge.message)
    """

    def __init__(
        self,
        store: Optional[ChallengeStore[NonceChallenge]] = None,
        config: Optional[AuthConfig] = None,
    ) -> None:
        self.store = store if store is not None else MemoryChallengeStore(name="nonces")
        self.config = config or AuthConfig()

    def issue_nonce(self, address: str) -> NonceChallenge:
        """
        Issue a fresh challenge for ``address``, replacing any pending one.

        Raises:
            InvalidAddressException: If address is malformed
        """
        key = canonical_address(address)
        now = int(self.store.now())
        expires = now + self.config.nonce_ttl_seconds
        issued_at = datetime.fromtimestamp(now, tz=timezone.utc)
        expires_at = datetime.fromtimestamp(expires, tz=timezone.utc)
        nonce = generate_nonce()

        message = SignInMessage(
            domain=self.config.domain,
            address=key,
            statement=self.config.statement,
            uri=self.config.uri,
            chain_id=self.config.chain_id,
            nonce=nonce,
            issued_at=issued_at,
            expires_at=expires_at,
        ).render()

        challenge = NonceChallenge(
            address=key,
            nonce=nonce,
            message=message,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        replaced = self.store.put(key, challenge, expires)
        if replaced is not None:
            logger.info("Superseded pending sign-in challenge for %s", key)
        logger.info("Issued sign-in challenge for %s", key)
        return challenge

    def get(self, address: str) -> Optional[NonceChallenge]:
        """The live challenge for address, or None."""
        return self.store.get(canonical_address(address))

    def is_expired(self, challenge: NonceChallenge) -> bool:
        return self.store.now() >= challenge.expires_at.timestamp()

    def consume(self, challenge: NonceChallenge) -> bool:
        """Atomically claim a challenge. Exactly one concurrent caller wins."""
        return self.store.compare_and_delete(challenge.address, challenge)

    def restore(self, challenge: NonceChallenge) -> bool:
        """
        Put a claimed challenge back after a downstream failure.

        Does nothing if a newer challenge was issued meanwhile or the
        original has expired.
        """
        restored = self.store.put_if_absent(
            challenge.address, challenge, challenge.expires_at.timestamp()
        )
        if restored:
            logger.info("Restored sign-in challenge for %s", challenge.address)
        return restored

    def sweep_expired(self) -> int:
        return self.store.sweep_expired()
