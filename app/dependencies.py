"""FastAPI dependencies: authentication and service wiring."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.account import utcnow
from app.repositories.accounts import AccountStore
from app.services.accounts import AccountService
from app.services.jwt import get_jwt_service
from app.services.notifier import Dispatch, Notifier, get_dispatcher, get_notifier
from app.services.profiles import ProfileService


@dataclass
class CurrentAccount:
    """Authenticated account context."""

    account_id: str
    email: str


def get_clock() -> Callable[[], datetime]:
    """Time source for token deadlines and timestamps."""
    return utcnow


def get_account_store(db: Session = Depends(get_db)) -> AccountStore:
    return AccountStore(db)


def get_account_service(
    store: AccountStore = Depends(get_account_store),
    notifier: Notifier = Depends(get_notifier),
    clock: Callable[[], datetime] = Depends(get_clock),
    dispatch: Dispatch = Depends(get_dispatcher),
) -> AccountService:
    return AccountService(store, notifier, clock=clock, dispatch=dispatch)


def get_profile_service(
    store: AccountStore = Depends(get_account_store),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> ProfileService:
    return ProfileService(store, clock=clock)


def get_current_account(request: Request) -> CurrentAccount:
    """Extract and validate the account from a Bearer token. Raises 401 if invalid."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail={"code": "UNAUTHORIZED", "message": "Not authenticated"})

    payload = get_jwt_service().decode_token(auth_header[7:])
    if not payload:
        raise HTTPException(
            status_code=401, detail={"code": "UNAUTHORIZED", "message": "Invalid or expired token"}
        )

    return CurrentAccount(account_id=payload["sub"], email=payload["email"])


def require_self(account_id: str, current: CurrentAccount) -> None:
    """Only the account owner may modify an account."""
    if current.account_id != account_id:
        raise HTTPException(
            status_code=403, detail={"code": "FORBIDDEN", "message": "You can only modify your own account"}
        )
