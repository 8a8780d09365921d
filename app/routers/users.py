"""Account and profile API endpoints."""

from fastapi import APIRouter, Depends, Query, Request

from app.dependencies import (
    CurrentAccount,
    get_account_service,
    get_current_account,
    get_profile_service,
    require_self,
)
from app.errors import api_error, result_error
from app.models.account import Account
from app.rate_limit import limiter
from app.schemas.accounts import (
    AccountEnvelope,
    AccountListResponse,
    AccountResponse,
    AccountStats,
    AccountStatsResponse,
    CreateAccountRequest,
    Pagination,
    PasswordCheckResponse,
    UpdateAccountRequest,
    VerifyPasswordRequest,
)
from app.schemas.auth import MessageResponse
from app.services.accounts import AccountService
from app.services.profiles import ProfileService

router = APIRouter(prefix="/api/users", tags=["Users"])


def _get_or_404(service: ProfileService, account_id: str) -> Account:
    account = service.get_account(account_id)
    if not account:
        raise api_error(404, "NOT_FOUND", "User not found")
    return account


@router.post("", response_model=AccountEnvelope, status_code=201)
@limiter.limit("5/minute")
def create_user(
    request: Request,
    body: CreateAccountRequest,
    service: AccountService = Depends(get_account_service),
) -> AccountEnvelope:
    """Register a new account. It stays inactive until the emailed link is followed."""
    result = service.register(body.name, body.email, body.password, **body.profile())
    if not result.success:
        raise result_error(result)
    return AccountEnvelope(
        message="User created. Check your email to activate your account.",
        account=AccountResponse.from_account(result.account),
    )


@router.get("", response_model=AccountListResponse)
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current: CurrentAccount = Depends(get_current_account),
    service: ProfileService = Depends(get_profile_service),
) -> AccountListResponse:
    """List active accounts, newest first."""
    items, pagination = service.list_accounts(page=page, limit=limit)
    return AccountListResponse(
        users=[AccountResponse.from_account(account) for account in items],
        pagination=Pagination(**pagination),
    )


@router.get("/email/{email}", response_model=AccountEnvelope)
def get_user_by_email(
    email: str,
    current: CurrentAccount = Depends(get_current_account),
    service: ProfileService = Depends(get_profile_service),
) -> AccountEnvelope:
    account = service.get_account_by_email(email)
    if not account:
        raise api_error(404, "NOT_FOUND", "User not found")
    return AccountEnvelope(message="User found", account=AccountResponse.from_account(account))


@router.get("/{account_id}", response_model=AccountEnvelope)
def get_user(
    account_id: str,
    current: CurrentAccount = Depends(get_current_account),
    service: ProfileService = Depends(get_profile_service),
) -> AccountEnvelope:
    account = _get_or_404(service, account_id)
    return AccountEnvelope(message="User found", account=AccountResponse.from_account(account))


@router.put("/{account_id}", response_model=AccountEnvelope)
def update_user(
    account_id: str,
    body: UpdateAccountRequest,
    current: CurrentAccount = Depends(get_current_account),
    service: ProfileService = Depends(get_profile_service),
) -> AccountEnvelope:
    """Update the caller's own profile."""
    require_self(account_id, current)
    account = _get_or_404(service, account_id)
    result = service.update_account(account, body.changes())
    if not result.success:
        raise result_error(result)
    return AccountEnvelope(message="User updated", account=AccountResponse.from_account(result.account))


@router.delete("/{account_id}", response_model=MessageResponse)
def deactivate_user(
    account_id: str,
    current: CurrentAccount = Depends(get_current_account),
    service: ProfileService = Depends(get_profile_service),
) -> MessageResponse:
    """Soft delete the caller's own account."""
    require_self(account_id, current)
    account = _get_or_404(service, account_id)
    service.deactivate_account(account)
    return MessageResponse(message="User deactivated")


@router.post("/{account_id}/verify-password", response_model=PasswordCheckResponse)
def verify_password(
    account_id: str,
    body: VerifyPasswordRequest,
    current: CurrentAccount = Depends(get_current_account),
    service: ProfileService = Depends(get_profile_service),
) -> PasswordCheckResponse:
    """Confirm the caller's current password, e.g. before a sensitive change."""
    require_self(account_id, current)
    account = _get_or_404(service, account_id)
    return PasswordCheckResponse(valid=service.check_password(account, body.password))


@router.get("/{account_id}/stats", response_model=AccountStatsResponse)
def get_user_stats(
    account_id: str,
    current: CurrentAccount = Depends(get_current_account),
    service: ProfileService = Depends(get_profile_service),
) -> AccountStatsResponse:
    """BMI and body measurements of an account."""
    account = _get_or_404(service, account_id)
    return AccountStatsResponse(user_id=account.id, stats=AccountStats(**service.get_stats(account)))
