"""Email verification API endpoints."""

from fastapi import APIRouter, Depends, Request

from app.dependencies import get_account_service
from app.errors import result_error
from app.rate_limit import limiter
from app.schemas.accounts import AccountEnvelope, AccountResponse
from app.schemas.auth import EmailRequest, MessageResponse
from app.services.accounts import AccountService

router = APIRouter(prefix="/api/verify", tags=["Verification"])


@router.post("/resend", response_model=MessageResponse)
@limiter.limit("3/minute")
def resend_verification(
    request: Request,
    body: EmailRequest,
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Send a new verification link to an unverified account."""
    service.resend_verification(body.email)
    return MessageResponse(
        message="If an unverified account exists with that email, a new verification link has been sent."
    )


@router.get("/{token}", response_model=AccountEnvelope)
def verify_account(
    token: str,
    service: AccountService = Depends(get_account_service),
) -> AccountEnvelope:
    """Activate an account with its verification token."""
    result = service.consume_verification(token)
    if not result.success:
        raise result_error(result)
    return AccountEnvelope(
        message="Account verified successfully",
        account=AccountResponse.from_account(result.account),
    )
