"""Pydantic schemas for registration and login payloads and responses."""

from pydantic import BaseModel, ConfigDict, Field

from otpauth.schemas.common import ApiResponse, EmailPayload


class UserCreate(EmailPayload):
    """Payload for registration requests; `otpToken` comes from /verify-otp."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    password: str | None = None
    otp_token: str | None = Field(default=None, alias="otpToken")


class UserLogin(EmailPayload):
    """Payload for login attempts."""

    password: str | None = None


class UserSummary(BaseModel):
    """Public view of an account; the password hash is never part of it."""

    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(ApiResponse):
    user: UserSummary
