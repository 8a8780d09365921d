"""Authentication and password reset API endpoints."""

from fastapi import APIRouter, Depends, Request

from app.dependencies import get_account_service
from app.errors import api_error, result_error
from app.rate_limit import limiter
from app.schemas.accounts import AccountResponse
from app.schemas.auth import (
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResetPasswordRequest,
    ResetTokenInfoResponse,
)
from app.services.accounts import AccountService
from app.services.jwt import get_jwt_service

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

RESET_REQUESTED_MESSAGE = "If an account exists with that email, a password reset link has been sent."


@router.post("/login", response_model=LoginResponse)
@limiter.limit("10/minute")
def login(
    request: Request,
    body: LoginRequest,
    service: AccountService = Depends(get_account_service),
) -> LoginResponse:
    """Authenticate and receive the account with an access token."""
    result = service.authenticate(body.email, body.password)
    if not result.success:
        raise result_error(result)

    account = result.account
    token = get_jwt_service().create_token(account_id=account.id, email=account.email)
    return LoginResponse(message="Login successful", token=token, account=AccountResponse.from_account(account))


@router.post("/logout", response_model=MessageResponse)
def logout() -> MessageResponse:
    """Access tokens are stateless; clients discard theirs."""
    return MessageResponse(message="Logout successful")


@router.post("/password-reset/request", response_model=MessageResponse)
@limiter.limit("3/minute")
def request_password_reset(
    request: Request,
    body: EmailRequest,
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Email a reset link. The response does not reveal whether the address is registered."""
    result = service.request_password_reset(body.email)
    if not result.success:
        raise result_error(result)
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.get("/password-reset/verify/{token}", response_model=ResetTokenInfoResponse)
def verify_reset_token(
    token: str,
    service: AccountService = Depends(get_account_service),
) -> ResetTokenInfoResponse:
    """Check a reset token without consuming it."""
    result = service.verify_reset_token(token)
    if not result.success:
        raise result_error(result)
    return ResetTokenInfoResponse(email=result.account.email, name=result.account.name)


@router.post("/password-reset/reset/{token}", response_model=MessageResponse)
@limiter.limit("5/minute")
def reset_password(
    request: Request,
    token: str,
    body: ResetPasswordRequest,
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Set a new password using a reset token."""
    if body.password != body.confirm_password:
        raise api_error(400, "PASSWORD_MISMATCH", "Passwords do not match")

    result = service.consume_password_reset(token, body.password)
    if not result.success:
        raise result_error(result)
    return MessageResponse(message="Password has been reset. You can now log in with your new password.")
