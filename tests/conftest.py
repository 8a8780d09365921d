"""Pytest configuration and fixtures."""

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import get_settings
from app.database import Base, get_db
from app.models.account import Account, utcnow
from app.repositories.accounts import AccountStore
from app.services.accounts import AccountService
from app.services.notifier import EmailResult

VALID_PASSWORD = "Abcdef1!"

# Cheap hashing for tests
get_settings().BCRYPT_ROUNDS = 4


class Clock:
    """Controllable time source."""

    def __init__(self) -> None:
        self.now = utcnow()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class SentEmail:
    kind: str
    email: str
    name: str
    token: str | None = None


@dataclass
class RecordingNotifier:
    """Notifier double that records every email instead of sending it."""

    sent: list[SentEmail] = field(default_factory=list)
    fail: bool = False
    delay: float = 0.0

    def _record(self, kind: str, email: str, name: str, token: str | None = None) -> EmailResult:
        if self.delay:
            time.sleep(self.delay)
        self.sent.append(SentEmail(kind, email, name, token))
        if self.fail:
            return EmailResult(success=False, error="delivery failed")
        return EmailResult(success=True, message_id=f"msg-{len(self.sent)}")

    def send_welcome(self, email: str, name: str, token: str) -> EmailResult:
        return self._record("welcome", email, name, token)

    def send_account_activated(self, email: str, name: str) -> EmailResult:
        return self._record("activated", email, name)

    def send_password_reset(self, email: str, name: str, token: str) -> EmailResult:
        return self._record("password_reset", email, name, token)

    def send_password_reset_confirmation(self, email: str, name: str) -> EmailResult:
        return self._record("password_reset_confirmation", email, name)

    def last_token(self, kind: str) -> str:
        return [mail for mail in self.sent if mail.kind == kind][-1].token


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="clock")
def clock_fixture() -> Clock:
    return Clock()


@pytest.fixture(name="notifier")
def notifier_fixture() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture(name="service")
def service_fixture(db_session: Session, notifier: RecordingNotifier, clock: Clock) -> AccountService:
    return AccountService(AccountStore(db_session), notifier, clock=clock)


@pytest.fixture(name="client")
def client_fixture(db_session: Session, notifier: RecordingNotifier, clock: Clock):
    """Create a test client with overridden DB, notifier, dispatcher and clock, and disabled rate limiting."""
    from app.dependencies import get_clock
    from app.rate_limit import limiter
    from app.services.notifier import get_dispatcher, get_notifier, send_now
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_clock] = lambda: clock
    # Inline sends so tests can read emails right after a request
    app.dependency_overrides[get_dispatcher] = lambda: send_now
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="pending_account")
def pending_account_fixture(service: AccountService, notifier: RecordingNotifier) -> dict:
    """A registered but unverified account. Returns its id, email and verification token."""
    result = service.register("Test User", "test@example.com", VALID_PASSWORD, weight_kg=70, height_cm=175)
    return {
        "id": result.account.id,
        "email": "test@example.com",
        "password": VALID_PASSWORD,
        "token": notifier.last_token("welcome"),
    }


@pytest.fixture(name="active_account")
def active_account_fixture(service: AccountService, pending_account: dict) -> dict:
    """A verified account."""
    result = service.consume_verification(pending_account["token"])
    assert result.success
    return pending_account


@pytest.fixture(name="auth_headers")
def auth_headers_fixture(active_account: dict) -> dict:
    """Bearer header for the active account."""
    from app.services.jwt import get_jwt_service

    token = get_jwt_service().create_token(account_id=active_account["id"], email=active_account["email"])
    return {"Authorization": f"Bearer {token}"}


def reload(db_session: Session, account_id: str) -> Account:
    """Fetch an account fresh from the database."""
    db_session.expire_all()
    return db_session.get(Account, account_id)
