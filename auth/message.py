"""
Sign-in message format.

EIP-4361 style text the wallet signs. The server always verifies against
the message it stored at issuance; parsing exists so a client-supplied
copy can be checked field by field and rejected with a precise reason.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.schemas.canonical import (
    checksum_address,
    format_datetime_canonical,
    parse_datetime_canonical,
)

_HEADER_SUFFIX = " wants you to sign in with your Ethereum account:"

_FIELD_RE = re.compile(r"^(URI|Version|Chain ID|Nonce|Issued At|Expiration Time): (.+)$")


@dataclass(frozen=True)
class SignInMessage:
    """Structured fields of a sign-in message."""
    domain: str
    address: str
    statement: str
    uri: str
    chain_id: int
    nonce: str
    issued_at: datetime
    expires_at: datetime
    version: str = "1"

    def render(self) -> str:
        return (
            f"{self.domain}{_HEADER_SUFFIX}\n"
            f"{checksum_address(self.address)}\n"
            f"\n"
            f"{self.statement}\n"
            f"\n"
            f"URI: {self.uri}\n"
            f"Version: {self.version}\n"
            f"Chain ID: {self.chain_id}\n"
            f"Nonce: {self.nonce}\n"
            f"Issued At: {format_datetime_canonical(self.issued_at)}\n"
            f"Expiration Time: {format_datetime_canonical(self.expires_at)}"
        )


def parse_sign_in_message(text: str) -> Optional[SignInMessage]:
    """
    Parse a rendered sign-in message.

    Returns None if the text does not have the expected shape.
    """
    lines = text.split("\n")
    if len(lines) < 5 or not lines[0].endswith(_HEADER_SUFFIX):
        return None

    fields: dict[str, str] = {}
    for line in lines[3:]:
        match = _FIELD_RE.match(line)
        if match:
            fields[match.group(1)] = match.group(2)

    required = ("URI", "Version", "Chain ID", "Nonce", "Issued At", "Expiration Time")
    if any(name not in fields for name in required):
        return None

    try:
        return SignInMessage(
            domain=lines[0][: -len(_HEADER_SUFFIX)],
            address=lines[1].strip().lower(),
            statement=lines[3],
            uri=fields["URI"],
            chain_id=int(fields["Chain ID"]),
            nonce=fields["Nonce"],
            issued_at=parse_datetime_canonical(fields["Issued At"]),
            expires_at=parse_datetime_canonical(fields["Expiration Time"]),
            version=fields["Version"],
        )
    except ValueError:
        return None
