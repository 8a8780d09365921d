"""Tests for token issuance, the password policy and hashing."""

import re
from datetime import datetime, timedelta

import pytest

from app.services.bmi import calculate_bmi, weight_status
from app.services.passwords import check_password, hash_password, validate_password
from app.services.tokens import TokenIssuer, TokenKind


class TestTokenIssuer:
    """Tests for opaque token generation."""

    def test_token_is_64_hex_chars(self):
        token = TokenIssuer().issue()
        assert re.fullmatch(r"[0-9a-f]{64}", token)

    def test_tokens_are_unique(self):
        issuer = TokenIssuer()
        tokens = {issuer.issue() for _ in range(1000)}
        assert len(tokens) == 1000

    def test_expiry_windows(self):
        issuer = TokenIssuer()
        now = datetime(2026, 1, 1, 12, 0, 0)
        assert issuer.expiry_for(TokenKind.VERIFICATION, now) == now + timedelta(hours=24)
        assert issuer.expiry_for(TokenKind.PASSWORD_RESET, now) == now + timedelta(hours=1)

    def test_custom_windows(self):
        issuer = TokenIssuer(verification_ttl=timedelta(hours=2), reset_ttl=timedelta(minutes=15))
        now = datetime(2026, 1, 1)
        assert issuer.expiry_for(TokenKind.VERIFICATION, now) == now + timedelta(hours=2)
        assert issuer.expiry_for(TokenKind.PASSWORD_RESET, now) == now + timedelta(minutes=15)


class TestPasswordPolicy:
    """Tests for the five password rules."""

    def test_accepts_compliant_password(self):
        assert validate_password("Abcdef1!") == []

    def test_rejects_short_password_missing_classes(self):
        errors = validate_password("abc")
        assert "Password must be at least 8 characters long" in errors
        assert "Password must contain at least one uppercase letter" in errors
        assert "Password must contain at least one digit" in errors
        assert "Password must contain at least one special character" in errors
        assert len(errors) == 4

    @pytest.mark.parametrize(
        "password, rule",
        [
            ("Abcde1!", "at least 8 characters"),
            ("ABCDEF1!", "lowercase"),
            ("abcdef1!", "uppercase"),
            ("Abcdefg!", "digit"),
            ("Abcdefg1", "special character"),
        ],
    )
    def test_each_rule_fails_alone(self, password: str, rule: str):
        errors = validate_password(password)
        assert len(errors) == 1
        assert rule in errors[0]

    @pytest.mark.parametrize("password", ["", None])
    def test_missing_password(self, password):
        assert validate_password(password) == ["Password is required"]


class TestHashing:
    """Tests for bcrypt hashing."""

    def test_hash_round_trip(self):
        hashed = hash_password("Abcdef1!")
        assert hashed.startswith("$2")
        assert check_password("Abcdef1!", hashed)
        assert not check_password("Abcdef1?", hashed)

    def test_hashes_are_salted(self):
        assert hash_password("Abcdef1!") != hash_password("Abcdef1!")

    def test_malformed_hash_does_not_match(self):
        assert check_password("Abcdef1!", "not-a-bcrypt-hash") is False


class TestBMI:
    """Tests for BMI calculation and weight bands."""

    def test_normal_weight(self):
        bmi = calculate_bmi(70, 175)
        assert bmi == 22.86
        assert weight_status(bmi) == "normal weight"

    @pytest.mark.parametrize(
        "weight, height, status",
        [
            (50, 180, "underweight"),
            (85, 175, "overweight"),
            (110, 170, "obese"),
        ],
    )
    def test_bands(self, weight: float, height: float, status: str):
        assert weight_status(calculate_bmi(weight, height)) == status

    def test_band_edges(self):
        assert weight_status(18.5) == "normal weight"
        assert weight_status(25) == "overweight"
        assert weight_status(30) == "obese"

    def test_missing_measurements(self):
        assert calculate_bmi(None, 175) is None
        assert calculate_bmi(70, None) is None
        assert weight_status(None) is None
