"""Tests for email rendering and delivery."""

import json

import httpx

from app.services.notifier import EmailNotifier

TOKEN = "ab" * 32


def make_notifier(handler, api_key: str = "re_test") -> tuple[EmailNotifier, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.Client(transport=httpx.MockTransport(record))
    notifier = EmailNotifier(
        api_key=api_key,
        client=client,
        app_url="https://nutriscan.test/",
        from_email="NutriScan <noreply@nutriscan.test>",
    )
    return notifier, requests


class TestEmailNotifier:
    """Tests for EmailNotifier."""

    def test_welcome_email_posts_to_api(self):
        notifier, requests = make_notifier(lambda request: httpx.Response(200, json={"id": "email-123"}))

        result = notifier.send_welcome("user@example.com", "Ana", TOKEN)

        assert result.success is True
        assert result.message_id == "email-123"
        assert len(requests) == 1
        request = requests[0]
        assert request.headers["Authorization"] == "Bearer re_test"
        payload = json.loads(request.content)
        assert payload["to"] == ["user@example.com"]
        assert payload["from"] == "NutriScan <noreply@nutriscan.test>"
        assert f"https://nutriscan.test/api/verify/{TOKEN}" in payload["html"]
        assert "Ana" in payload["html"]

    def test_reset_email_links_to_reset_check(self):
        notifier, requests = make_notifier(lambda request: httpx.Response(200, json={"id": "email-456"}))

        notifier.send_password_reset("user@example.com", "Ana", TOKEN)

        html = json.loads(requests[0].content)["html"]
        assert f"https://nutriscan.test/api/auth/password-reset/verify/{TOKEN}" in html

    def test_names_are_escaped(self):
        notifier, requests = make_notifier(lambda request: httpx.Response(200, json={"id": "x"}))

        notifier.send_account_activated("user@example.com", "<script>alert(1)</script>")

        html = json.loads(requests[0].content)["html"]
        assert "<script>" not in html
        assert "&lt;script&gt;" in html

    def test_api_error_is_reported_not_raised(self):
        notifier, _ = make_notifier(lambda request: httpx.Response(422, json={"message": "invalid"}))

        result = notifier.send_password_reset_confirmation("user@example.com", "Ana")

        assert result.success is False
        assert result.error

    def test_transport_error_is_reported_not_raised(self):
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        notifier, _ = make_notifier(fail)

        result = notifier.send_welcome("user@example.com", "Ana", TOKEN)

        assert result.success is False
        assert "connection refused" in result.error

    def test_non_json_body_still_succeeds(self):
        notifier, _ = make_notifier(lambda request: httpx.Response(200, text="ok"))

        result = notifier.send_account_activated("user@example.com", "Ana")

        assert result.success is True
        assert result.message_id is None

    def test_unexpected_json_body_still_succeeds(self):
        notifier, _ = make_notifier(lambda request: httpx.Response(200, json=["queued"]))

        result = notifier.send_welcome("user@example.com", "Ana", TOKEN)

        assert result.success is True
        assert result.message_id is None

    def test_simulated_without_api_key(self):
        notifier, requests = make_notifier(lambda request: httpx.Response(500), api_key="")

        result = notifier.send_welcome("user@example.com", "Ana", TOKEN)

        assert result.success is True
        assert result.simulated is True
        assert requests == []
