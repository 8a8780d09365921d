"""Configuration settings for NutriScan API."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./nutriscan.db")
    DATABASE_TIMEOUT_SECONDS: float = float(os.getenv("DATABASE_TIMEOUT_SECONDS", "10"))

    # JWT
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", secrets.token_urlsafe(32))
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_MINUTES: int = int(os.getenv("JWT_EXPIRE_MINUTES", "480"))

    # Passwords and tokens
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    VERIFICATION_TOKEN_TTL_HOURS: int = int(os.getenv("VERIFICATION_TOKEN_TTL_HOURS", "24"))
    PASSWORD_RESET_TTL_MINUTES: int = int(os.getenv("PASSWORD_RESET_TTL_MINUTES", "60"))

    # Email
    RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "")
    RESEND_API_URL: str = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
    FROM_EMAIL: str = os.getenv("FROM_EMAIL", "noreply@nutriscan.app")
    APP_URL: str = os.getenv("APP_URL", "http://localhost:3009")
    EMAIL_TIMEOUT_SECONDS: float = float(os.getenv("EMAIL_TIMEOUT_SECONDS", "10"))

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if not os.getenv("JWT_SECRET_KEY"):
            errors.append("JWT_SECRET_KEY is not set - using auto-generated key (not persistent across restarts)")
        if not self.RESEND_API_KEY:
            errors.append("RESEND_API_KEY is not set - emails are simulated and only logged")
        if self.APP_ENV == "production" and self.DEBUG:
            errors.append("DEBUG is enabled in production - internal error details will be exposed")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
