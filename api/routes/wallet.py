"""
Wallet Routes

Nonce issuance, signature sign-in and wallet linking.
"""

import logging

from fastapi import APIRouter, Depends

from api.deps import Services, get_services
from api.models.requests import NonceRequest, WalletLinkRequest, WalletVerifyRequest
from api.models.responses import (
    IdentityOut,
    NonceResponse,
    WalletLinkResponse,
    WalletVerifyResponse,
)
from auth.github_source import normalize_birth_issue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/wallet", tags=["wallet"])


@router.post("/nonce", response_model=NonceResponse)
def issue_nonce(
    request: NonceRequest,
    services: Services = Depends(get_services),
) -> NonceResponse:
    """
    Issue a sign-in challenge for a wallet.

    Any pending challenge for the same address is replaced. The returned
    message is the exact text the wallet must sign.
    """
    challenge = services.wallet.issue_nonce(request.address)
    return NonceResponse(
        nonce=challenge.nonce,
        message=challenge.message,
        expires_at=challenge.expires_at,
    )


@router.post("/verify", response_model=WalletVerifyResponse)
def verify_wallet(
    request: WalletVerifyRequest,
    services: Services = Depends(get_services),
) -> WalletVerifyResponse:
    """Verify a signed challenge, resolve the identity and mint a session token."""
    birth_issue = normalize_birth_issue(
        request.birth_issue, services.config.auth.default_birth_repo
    )
    result = services.wallet.sign_in(
        request.address,
        request.signature,
        message=request.message,
        display_name=request.display_name,
        birth_issue=birth_issue,
    )
    return WalletVerifyResponse(
        token=result.token,
        identity=IdentityOut.from_identity(result.identity),
        created=result.created,
        approved=result.approved,
    )


@router.post("/link", response_model=WalletLinkResponse)
def link_wallet(
    request: WalletLinkRequest,
    services: Services = Depends(get_services),
) -> WalletLinkResponse:
    """Bind a verified wallet onto an existing identity by name."""
    result = services.wallet.link(
        request.address,
        request.signature,
        request.target_name,
        message=request.message,
    )
    return WalletLinkResponse(
        linked=result.linked,
        identity=IdentityOut.from_identity(result.identity),
        token=result.token,
    )
