"""Opaque token issuance for email verification and password reset."""

import secrets
from datetime import datetime, timedelta
from enum import Enum

from app.config import get_settings

TOKEN_BYTES = 32


class TokenKind(str, Enum):
    VERIFICATION = "verification"
    PASSWORD_RESET = "password_reset"


class TokenIssuer:
    """Generates 64-character hex bearer tokens and their expiry timestamps."""

    def __init__(self, verification_ttl: timedelta | None = None, reset_ttl: timedelta | None = None) -> None:
        settings = get_settings()
        self.verification_ttl = verification_ttl or timedelta(hours=settings.VERIFICATION_TOKEN_TTL_HOURS)
        self.reset_ttl = reset_ttl or timedelta(minutes=settings.PASSWORD_RESET_TTL_MINUTES)

    def issue(self) -> str:
        """Return a fresh token with 256 bits of entropy."""
        return secrets.token_hex(TOKEN_BYTES)

    def expiry_for(self, kind: TokenKind, now: datetime) -> datetime:
        """Return the deadline for a token of ``kind`` issued at ``now``."""
        if kind is TokenKind.VERIFICATION:
            return now + self.verification_ttl
        return now + self.reset_ttl
