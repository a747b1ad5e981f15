"""Session token issuance."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError, jwt

from core.config.runtime import SessionConfig
from core.schemas.identity import Identity


class SessionTokenIssuer:
    """Mints bearer tokens for verified identities. Issuance is synchronous."""

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: str = "HS256",
        expiry_hours: int = 24,
        issuer: str = "oraclenet",
    ) -> None:
        # Without a configured secret, tokens only survive this process
        self._secret = secret or secrets.token_hex(32)
        self.algorithm = algorithm
        self.expiry_hours = expiry_hours
        self.issuer = issuer

    @classmethod
    def from_config(cls, config: SessionConfig) -> "SessionTokenIssuer":
        return cls(
            secret=config.secret,
            algorithm=config.algorithm,
            expiry_hours=config.expiry_hours,
            issuer=config.issuer,
        )

    def issue(self, identity: Identity, expires_delta: Optional[timedelta] = None) -> str:
        """Create a signed token for an identity."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": identity.id,
            "iss": self.issuer,
            "iat": now,
            "exp": now + (expires_delta or timedelta(hours=self.expiry_hours)),
            "kind": identity.kind.value,
            "name": identity.display_name,
            "wallet": identity.wallet_address,
            "github": identity.github_username,
            "approved": identity.approved,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def decode(self, token: str) -> Optional[dict[str, Any]]:
        """Decode and validate a token. Returns None if invalid or expired."""
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
            )
        except JWTError:
            return None
