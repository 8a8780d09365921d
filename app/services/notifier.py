"""Transactional email delivery.

Emails are rendered from Jinja2 templates and posted to a Resend-compatible
HTTP API. Sending is best-effort: every failure is logged and reported in the
returned ``EmailResult``, never raised. Request handlers pass sends to an
``EmailDispatcher`` so delivery time never shows up in response times.
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.config import get_settings

logger = logging.getLogger("nutriscan.email")

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"


@dataclass
class EmailResult:
    """Outcome of a send attempt."""

    success: bool
    message_id: str | None = None
    error: str | None = None
    simulated: bool = False


class Notifier(Protocol):
    def send_welcome(self, email: str, name: str, token: str) -> EmailResult: ...

    def send_account_activated(self, email: str, name: str) -> EmailResult: ...

    def send_password_reset(self, email: str, name: str, token: str) -> EmailResult: ...

    def send_password_reset_confirmation(self, email: str, name: str) -> EmailResult: ...


class EmailNotifier:
    """Sends the account lifecycle emails. Simulates delivery when no API key is configured."""

    def __init__(
        self,
        api_key: str | None = None,
        client: httpx.Client | None = None,
        app_url: str | None = None,
        from_email: str | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = settings.RESEND_API_KEY if api_key is None else api_key
        self.api_url = settings.RESEND_API_URL
        self.app_url = (app_url or settings.APP_URL).rstrip("/")
        self.from_email = from_email or settings.FROM_EMAIL
        self.client = client or httpx.Client(timeout=settings.EMAIL_TIMEOUT_SECONDS)
        self.templates = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html"]),
        )

    def verification_url(self, token: str) -> str:
        return f"{self.app_url}/api/verify/{token}"

    def reset_url(self, token: str) -> str:
        return f"{self.app_url}/api/auth/password-reset/verify/{token}"

    def send_welcome(self, email: str, name: str, token: str) -> EmailResult:
        return self._send(
            email,
            "Welcome to NutriScan! Please verify your account",
            "welcome.html",
            name=name,
            action_url=self.verification_url(token),
        )

    def send_account_activated(self, email: str, name: str) -> EmailResult:
        return self._send(
            email,
            "Your NutriScan account is active",
            "account_activated.html",
            name=name,
            app_url=self.app_url,
        )

    def send_password_reset(self, email: str, name: str, token: str) -> EmailResult:
        return self._send(
            email,
            "Reset your NutriScan password",
            "password_reset.html",
            name=name,
            action_url=self.reset_url(token),
        )

    def send_password_reset_confirmation(self, email: str, name: str) -> EmailResult:
        return self._send(
            email,
            "Your NutriScan password was changed",
            "password_reset_confirmation.html",
            name=name,
        )

    def _send(self, to: str, subject: str, template: str, **context: str) -> EmailResult:
        html = self.templates.get_template(template).render(subject=subject, **context)

        if not self.api_key:
            logger.info("Simulated email '%s' to %s (RESEND_API_KEY not set)", template, to)
            return EmailResult(success=True, simulated=True)

        try:
            response = self.client.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"from": self.from_email, "to": [to], "subject": subject, "html": html},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Failed to send email '%s' to %s: %s", template, to, exc)
            return EmailResult(success=False, error=str(exc))

        message_id = None
        try:
            body = response.json()
        except ValueError:
            logger.warning("Email API returned a non-JSON body for '%s'", template)
        else:
            if isinstance(body, dict):
                message_id = body.get("id")
            else:
                logger.warning("Email API returned an unexpected body for '%s'", template)

        logger.info("Sent email '%s' to %s (id=%s)", template, to, message_id)
        return EmailResult(success=True, message_id=message_id)


Dispatch = Callable[..., None]


def send_now(fn: Callable[..., None], *args: Any) -> None:
    """Run a send inline."""
    fn(*args)


class EmailDispatcher:
    """Runs sends on a small worker pool so response times do not depend on the email API."""

    def __init__(self, max_workers: int = 4) -> None:
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="nutriscan-email")

    def __call__(self, fn: Callable[..., None], *args: Any) -> None:
        self.executor.submit(fn, *args)

    def shutdown(self) -> None:
        """Wait for queued sends to finish."""
        self.executor.shutdown(wait=True)


_notifier: EmailNotifier | None = None
_dispatcher: EmailDispatcher | None = None


def get_notifier() -> Notifier:
    """Get singleton email notifier instance."""
    global _notifier
    if _notifier is None:
        _notifier = EmailNotifier()
    return _notifier


def get_dispatcher() -> Dispatch:
    """Get singleton email dispatcher instance."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = EmailDispatcher()
    return _dispatcher


def shutdown_dispatcher() -> None:
    """Drain pending sends. A later get_dispatcher() starts a fresh pool."""
    global _dispatcher
    if _dispatcher is not None:
        _dispatcher.shutdown()
        _dispatcher = None
