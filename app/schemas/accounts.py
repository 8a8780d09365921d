"""Pydantic schemas for account and profile endpoints."""

from datetime import datetime
from typing import Annotated
from urllib.parse import urlparse

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.account import Account
from app.services.bmi import calculate_bmi, weight_status
from app.validation import is_valid_email, normalize_email


def _check_name(value: str) -> str:
    value = value.strip()
    if len(value) < 2:
        raise ValueError("Name must be at least 2 characters long")
    if len(value) > 255:
        raise ValueError("Name cannot exceed 255 characters")
    return value


def _check_image_url(value: str | None) -> str | None:
    if value is None:
        return value
    value = value.strip()
    if not value:
        return None
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Profile image URL is not valid")
    return value


Name = Annotated[str, AfterValidator(_check_name)]
ImageUrl = Annotated[str | None, AfterValidator(_check_image_url)]
Age = Annotated[int, Field(ge=1, le=150)]
WeightKg = Annotated[float, Field(gt=0, le=1000)]
HeightCm = Annotated[float, Field(gt=0, le=300)]


class CreateAccountRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Name
    email: str
    password: str
    profile_image_url: ImageUrl = None
    age: Age | None = None
    weight_kg: WeightKg | None = None
    height_cm: HeightCm | None = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        if not is_valid_email(value):
            raise ValueError("Email address is not valid")
        return normalize_email(value)

    def profile(self) -> dict:
        """Optional profile fields, as stored on the account."""
        return self.model_dump(include={"profile_image_url", "age", "weight_kg", "height_cm"})


class UpdateAccountRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Name | None = None
    password: str | None = None
    profile_image_url: ImageUrl = None
    age: Age | None = None
    weight_kg: WeightKg | None = None
    height_cm: HeightCm | None = None

    @model_validator(mode="after")
    def check_not_empty(self) -> "UpdateAccountRequest":
        if not self.changes():
            raise ValueError("At least one field must be provided")
        return self

    def changes(self) -> dict:
        """Fields present in the request. Name and password cannot be cleared."""
        return {
            key: getattr(self, key)
            for key in self.model_fields_set
            if not (key in ("name", "password") and getattr(self, key) is None)
        }


class VerifyPasswordRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    password: str = Field(min_length=1)


class AccountResponse(BaseModel):
    id: str
    name: str
    email: str
    profile_image_url: str | None = None
    age: int | None = None
    weight_kg: float | None = None
    height_cm: float | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    verified_at: datetime | None = None
    bmi: float | None = None
    weight_status: str | None = None

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        bmi = calculate_bmi(account.weight_kg, account.height_cm)
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            profile_image_url=account.profile_image_url,
            age=account.age,
            weight_kg=account.weight_kg,
            height_cm=account.height_cm,
            is_active=account.is_active,
            created_at=account.created_at,
            updated_at=account.updated_at,
            verified_at=account.verified_at,
            bmi=bmi,
            weight_status=weight_status(bmi),
        )


class AccountEnvelope(BaseModel):
    success: bool = True
    message: str
    account: AccountResponse


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AccountListResponse(BaseModel):
    success: bool = True
    users: list[AccountResponse]
    pagination: Pagination


class PasswordCheckResponse(BaseModel):
    success: bool = True
    valid: bool


class AccountStats(BaseModel):
    bmi: float | None
    weight_status: str | None
    age: int | None
    weight_kg: float | None
    height_cm: float | None


class AccountStatsResponse(BaseModel):
    success: bool = True
    user_id: str
    stats: AccountStats
