"""Pydantic schemas for authentication, verification and password reset endpoints."""

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.accounts import AccountResponse


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1)


class EmailRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str = Field(min_length=1, max_length=255)


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    password: str = Field(min_length=1)
    confirm_password: str = Field(alias="confirmPassword", min_length=1)


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class LoginResponse(BaseModel):
    success: bool = True
    message: str
    token: str
    account: AccountResponse


class ResetTokenInfoResponse(BaseModel):
    success: bool = True
    email: str
    name: str
