"""
GitHub Routes

Repository ownership challenge: issue a code, then verify the comment.
Typed verification failures are returned with HTTP 200 and
``success: false`` so clients can show the hint and retry.
"""

import logging

from fastapi import APIRouter, Depends

from api.deps import Services, get_services
from api.models.requests import GithubStartRequest, GithubVerifyRequest
from api.models.responses import GithubStartResponse, GithubVerifyResponse, IdentityOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/github", tags=["github"])


@router.post("/start", response_model=GithubStartResponse)
def start_challenge(
    request: GithubStartRequest,
    services: Services = Depends(get_services),
) -> GithubStartResponse:
    """Issue a verification code for the repository of a birth issue."""
    started = services.repo_challenge.start(request.issue_url)
    return GithubStartResponse(
        code=started.code,
        instruction=started.instruction,
        expires_in=started.expires_in,
        expires_at=started.expires_at,
        issue_url=started.issue_url,
        oracle_name=started.oracle_name,
    )


@router.post("/verify", response_model=GithubVerifyResponse)
def verify_challenge(
    request: GithubVerifyRequest,
    services: Services = Depends(get_services),
) -> GithubVerifyResponse:
    """Check the birth issue for the code posted by the issue author."""
    result = services.repo_challenge.verify(request.issue_url, request.code)
    if not result.success:
        return GithubVerifyResponse(
            success=False,
            error=result.error,
            error_code=result.error_code,
            hint=result.hint,
        )
    return GithubVerifyResponse(
        success=True,
        identity=IdentityOut.from_identity(result.identity),
        created=result.created,
        approved=result.approved,
        token=services.tokens.issue(result.identity),
    )
