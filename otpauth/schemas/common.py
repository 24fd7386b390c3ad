"""Shared lightweight schemas."""

from pydantic import BaseModel, EmailStr, TypeAdapter, ValidationError, field_validator

_email_format = TypeAdapter(EmailStr)


class ApiResponse(BaseModel):
    """Standard response envelope returned by every endpoint."""

    success: bool
    message: str


class EmailPayload(BaseModel):
    """Base for request bodies keyed by email.

    Blank addresses count as missing. Anything else must parse as an email
    address, but the trimmed input is kept as sent: `EmailStr` would lowercase
    the domain, and the address is a case-sensitive key.
    """

    email: str | None = None

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_missing(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("email")
    @classmethod
    def check_email_format(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            _email_format.validate_python(value)
        except ValidationError as exc:
            raise ValueError("value is not a valid email address") from exc
        return value
