"""Account verification, login and password reset."""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Any

from app.models.account import Account, utcnow
from app.repositories.accounts import AccountStore, DuplicateEmailError
from app.services.notifier import Dispatch, EmailResult, Notifier, send_now
from app.services.passwords import check_password, hash_password, validate_password
from app.services.tokens import TokenIssuer, TokenKind

logger = logging.getLogger("nutriscan.accounts")


@lru_cache
def _dummy_password_hash() -> str:
    """Hash compared against when the email is unknown, so both login failures cost one bcrypt check."""
    return hash_password(secrets.token_hex(16))


class ErrorCode(str, Enum):
    TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    ALREADY_ACTIVE = "ALREADY_ACTIVE"
    ACCOUNT_NOT_ACTIVATED = "ACCOUNT_NOT_ACTIVATED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    PASSWORD_POLICY_VIOLATION = "PASSWORD_POLICY_VIOLATION"
    EMAIL_CONFLICT = "EMAIL_CONFLICT"


@dataclass
class AccountResult:
    """Result of an account operation."""

    success: bool
    error_code: ErrorCode | None = None
    error: str | None = None
    account: Account | None = None
    details: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls, account: Account | None = None) -> "AccountResult":
        return cls(success=True, account=account)

    @classmethod
    def fail(cls, code: ErrorCode, error: str, details: list[str] | None = None) -> "AccountResult":
        return cls(success=False, error_code=code, error=error, details=details or [])


def _token_not_found() -> AccountResult:
    return AccountResult.fail(ErrorCode.TOKEN_NOT_FOUND, "Invalid or already used token")


def _token_expired() -> AccountResult:
    return AccountResult.fail(ErrorCode.TOKEN_EXPIRED, "Token has expired. Please request a new one.")


class AccountService:
    """Guards the pending -> active and open-reset -> closed transitions of an account."""

    def __init__(
        self,
        store: AccountStore,
        notifier: Notifier,
        issuer: TokenIssuer | None = None,
        clock: Callable[[], datetime] = utcnow,
        dispatch: Dispatch = send_now,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.issuer = issuer or TokenIssuer()
        self.clock = clock
        self.dispatch = dispatch

    # --- Registration and verification ---

    def register(self, name: str, email: str, password: str, **profile: Any) -> AccountResult:
        """Create an inactive account and email it a verification link."""
        violations = validate_password(password)
        if violations:
            return AccountResult.fail(
                ErrorCode.PASSWORD_POLICY_VIOLATION, "Password does not meet requirements", violations
            )

        if self.store.email_taken(email):
            return AccountResult.fail(ErrorCode.EMAIL_CONFLICT, "An account with this email already exists")

        now = self.clock()
        token = self.issuer.issue()
        try:
            account = self.store.create(
                name=name.strip(),
                email=email,
                password_hash=hash_password(password),
                is_active=False,
                verification_token=token,
                verification_expires=self.issuer.expiry_for(TokenKind.VERIFICATION, now),
                created_at=now,
                updated_at=now,
                **profile,
            )
        except DuplicateEmailError:
            return AccountResult.fail(ErrorCode.EMAIL_CONFLICT, "An account with this email already exists")

        logger.info("Registered account %s", account.id)
        self._notify(self.notifier.send_welcome, account, token)
        return AccountResult.ok(account)

    def resend_verification(self, email: str) -> AccountResult:
        """Issue a fresh verification token for an inactive account.

        Unknown and already active addresses get the same success result.
        """
        account = self.store.find_by_email_unrestricted(email)
        if not account or account.is_active:
            return AccountResult.ok()

        now = self.clock()
        token = self.issuer.issue()
        expires = self.issuer.expiry_for(TokenKind.VERIFICATION, now)
        if self.store.set_verification_token(account.id, token, expires, now):
            logger.info("Reissued verification token for account %s", account.id)
            self._notify(self.notifier.send_welcome, account, token)
        return AccountResult.ok()

    def consume_verification(self, token: str) -> AccountResult:
        """Activate the account holding ``token``."""
        if not token:
            return _token_not_found()

        account = self.store.find_by_verification_token_unrestricted(token)
        if not account:
            return _token_not_found()

        now = self.clock()
        if account.verification_expires is None or now > account.verification_expires:
            return _token_expired()

        if account.is_active:
            return AccountResult.fail(ErrorCode.ALREADY_ACTIVE, "Account is already activated")

        if not self.store.activate(token, now):
            # Consumed or replaced by a concurrent request
            return _token_not_found()

        account = self.store.find_by_id_unrestricted(account.id)
        logger.info("Activated account %s", account.id)
        self._notify(self.notifier.send_account_activated, account)
        return AccountResult.ok(account)

    # --- Login ---

    def authenticate(self, email: str, password: str) -> AccountResult:
        """Check credentials. Unknown email and wrong password fail identically."""
        account = self.store.find_by_email_unrestricted(email)
        if not account:
            check_password(password, _dummy_password_hash())
            return AccountResult.fail(ErrorCode.INVALID_CREDENTIALS, "Invalid email or password")

        if not account.is_active:
            return AccountResult.fail(
                ErrorCode.ACCOUNT_NOT_ACTIVATED,
                "Account not activated. Please check your email to activate your account.",
            )

        if not check_password(password, account.password_hash):
            return AccountResult.fail(ErrorCode.INVALID_CREDENTIALS, "Invalid email or password")

        return AccountResult.ok(account)

    # --- Password reset ---

    def request_password_reset(self, email: str) -> AccountResult:
        """Open a reset window for an active account.

        Unknown addresses get the same success result; inactive accounts are refused.
        """
        account = self.store.find_by_email_unrestricted(email)
        if not account:
            return AccountResult.ok()

        if not account.is_active:
            return AccountResult.fail(
                ErrorCode.ACCOUNT_NOT_ACTIVATED,
                "Account not activated. Please verify your email before resetting your password.",
            )

        now = self.clock()
        token = self.issuer.issue()
        expires = self.issuer.expiry_for(TokenKind.PASSWORD_RESET, now)
        if self.store.set_reset_token(account.id, token, expires, now):
            logger.info("Opened password reset for account %s", account.id)
            self._notify(self.notifier.send_password_reset, account, token)
        return AccountResult.ok()

    def verify_reset_token(self, token: str) -> AccountResult:
        """Read-only check that ``token`` can still be used to reset a password."""
        if not token:
            return _token_not_found()

        account = self.store.find_by_reset_token_unrestricted(token)
        if not account or account.password_reset_expires is None or self.clock() > account.password_reset_expires:
            return AccountResult.fail(ErrorCode.TOKEN_NOT_FOUND, "Invalid or expired reset link")
        return AccountResult.ok(account)

    def consume_password_reset(self, token: str, new_password: str) -> AccountResult:
        """Replace the password of the account holding ``token``."""
        if not token:
            return _token_not_found()

        account = self.store.find_by_reset_token_unrestricted(token)
        if not account:
            return _token_not_found()

        now = self.clock()
        if account.password_reset_expires is None or now > account.password_reset_expires:
            return _token_expired()

        violations = validate_password(new_password)
        if violations:
            return AccountResult.fail(
                ErrorCode.PASSWORD_POLICY_VIOLATION, "Password does not meet requirements", violations
            )

        if not self.store.rotate_password(token, hash_password(new_password), now):
            return _token_not_found()

        account = self.store.find_by_id_unrestricted(account.id)
        logger.info("Password reset completed for account %s", account.id)
        self._notify(self.notifier.send_password_reset_confirmation, account)
        return AccountResult.ok(account)

    def _notify(self, send: Callable[..., EmailResult], account: Account, *args: str) -> None:
        """Hand an email to the dispatcher. Only plain values leave the session."""
        self.dispatch(deliver_email, send, account.id, account.email, account.name, *args)


def deliver_email(send: Callable[..., EmailResult], account_id: str, email: str, name: str, *args: str) -> None:
    """Send an email without letting delivery problems reach the caller."""
    try:
        result = send(email, name, *args)
    except Exception:
        logger.exception("Notifier raised while emailing account %s", account_id)
        return
    if not result.success:
        logger.warning("Email to account %s was not delivered: %s", account_id, result.error)
