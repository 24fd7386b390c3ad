"""Pydantic schemas for OTP issuance and verification."""

from pydantic import ConfigDict, Field

from otpauth.schemas.common import ApiResponse, EmailPayload


class OTPRequest(EmailPayload):
    """Payload used to request a new OTP for a specific email."""


class OTPVerify(EmailPayload):
    """Payload used when submitting a received OTP code for validation."""

    code: str | None = None


class OTPVerifyResponse(ApiResponse):
    """Successful verification carries the proof token needed to register."""

    model_config = ConfigDict(populate_by_name=True)

    otp_token: str = Field(alias="otpToken")
