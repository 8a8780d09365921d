"""Account persistence.

Every lookup names its scope. ``*_unrestricted`` lookups see inactive accounts
and are only used by the verification, reset and login paths; ``find_active_*``
lookups only see verified accounts and back the profile endpoints. Soft-deleted
accounts are invisible to both.

Token consumption is a single conditional ``UPDATE`` keyed on the token and
its deadline, so two requests presenting the same token cannot both succeed.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.account import Account
from app.validation import normalize_email


class DuplicateEmailError(Exception):
    """Raised when an insert collides with an existing email."""


class AccountStore:
    """SQLAlchemy-backed account table access."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _visible(self):
        return self.db.query(Account).filter(Account.deactivated_at.is_(None))

    # --- Lookups ---

    def email_taken(self, email: str) -> bool:
        """True if any account, including soft-deleted ones, holds this email."""
        return self.db.query(Account.id).filter(Account.email == normalize_email(email)).first() is not None

    def find_by_email_unrestricted(self, email: str) -> Account | None:
        return self._visible().filter(Account.email == normalize_email(email)).first()

    def find_by_id_unrestricted(self, account_id: str) -> Account | None:
        return self._visible().filter(Account.id == account_id).first()

    def find_by_verification_token_unrestricted(self, token: str) -> Account | None:
        return self._visible().filter(Account.verification_token == token).first()

    def find_by_reset_token_unrestricted(self, token: str) -> Account | None:
        return self._visible().filter(Account.password_reset_token == token).first()

    def find_active_by_id(self, account_id: str) -> Account | None:
        return self._visible().filter(Account.id == account_id, Account.is_active.is_(True)).first()

    def find_active_by_email(self, email: str) -> Account | None:
        return (
            self._visible()
            .filter(Account.email == normalize_email(email), Account.is_active.is_(True))
            .first()
        )

    def list_active(self, offset: int, limit: int) -> tuple[list[Account], int]:
        """Active accounts, newest first. Returns (items, total_count)."""
        query = self._visible().filter(Account.is_active.is_(True))
        total = query.with_entities(func.count(Account.id)).scalar() or 0
        items = query.order_by(Account.created_at.desc()).offset(offset).limit(limit).all()
        return items, total

    # --- Mutations ---

    def create(self, **fields: Any) -> Account:
        """Insert a new account. Raises DuplicateEmailError on an email collision."""
        fields["email"] = normalize_email(fields["email"])
        account = Account(**fields)
        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateEmailError(fields["email"]) from exc
        self.db.refresh(account)
        return account

    def set_verification_token(self, account_id: str, token: str, expires: datetime, now: datetime) -> bool:
        """Replace the verification token of an inactive account."""
        stmt = (
            update(Account)
            .where(Account.id == account_id, Account.is_active.is_(False), Account.deactivated_at.is_(None))
            .values(verification_token=token, verification_expires=expires, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return self._execute(stmt)

    def activate(self, token: str, now: datetime) -> bool:
        """Activate the inactive account holding an unexpired ``token``, clearing it.

        Returns False if no row matched, i.e. the token was consumed, replaced or
        expired in the meantime.
        """
        stmt = (
            update(Account)
            .where(
                Account.verification_token == token,
                Account.verification_expires >= now,
                Account.is_active.is_(False),
                Account.deactivated_at.is_(None),
            )
            .values(
                is_active=True,
                verified_at=now,
                updated_at=now,
                verification_token=None,
                verification_expires=None,
            )
            .execution_options(synchronize_session=False)
        )
        return self._execute(stmt)

    def set_reset_token(self, account_id: str, token: str, expires: datetime, now: datetime) -> bool:
        """Open a reset window, superseding any earlier reset token."""
        stmt = (
            update(Account)
            .where(Account.id == account_id, Account.deactivated_at.is_(None))
            .values(password_reset_token=token, password_reset_expires=expires, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return self._execute(stmt)

    def rotate_password(self, token: str, password_hash: str, now: datetime) -> bool:
        """Swap the password of the account holding an unexpired reset ``token``, clearing it."""
        stmt = (
            update(Account)
            .where(
                Account.password_reset_token == token,
                Account.password_reset_expires >= now,
                Account.deactivated_at.is_(None),
            )
            .values(
                password_hash=password_hash,
                password_reset_token=None,
                password_reset_expires=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return self._execute(stmt)

    def update_fields(self, account: Account, fields: dict[str, Any], now: datetime) -> Account:
        for key, value in fields.items():
            setattr(account, key, value)
        account.updated_at = now
        self.db.commit()
        self.db.refresh(account)
        return account

    def deactivate(self, account: Account, now: datetime) -> None:
        account.deactivated_at = now
        account.updated_at = now
        self.db.commit()

    def _execute(self, stmt) -> bool:
        result = self.db.execute(stmt)
        self.db.commit()
        return result.rowcount == 1
