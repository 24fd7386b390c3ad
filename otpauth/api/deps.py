"""Dependency providers used by FastAPI endpoints.

These helpers expose database sessions, the OTP store, the email sender and
composed services through FastAPI's dependency injection system so route
handlers remain thin.
"""

from functools import lru_cache
from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from otpauth.core.config import settings
from otpauth.db.session import get_session
from otpauth.services.accounts import AccountStore
from otpauth.services.auth import AuthService
from otpauth.services.email import EmailSender, send_otp_email
from otpauth.services.otp import InMemoryOTPStore, OTPService, OTPStore, RedisOTPStore, get_redis_client


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async SQLAlchemy session tied to the shared engine."""

    async for session in get_session():
        yield session


@lru_cache
def _memory_otp_store() -> InMemoryOTPStore:
    return InMemoryOTPStore()


def get_otp_store() -> OTPStore:
    """Return the OTP store selected by `OTP_BACKEND`."""
    if settings.OTP_BACKEND == "memory":
        return _memory_otp_store()
    return RedisOTPStore(get_redis_client(), retention_seconds=settings.OTP_RECORD_RETENTION_SECONDS)


def get_otp_service(store: OTPStore = Depends(get_otp_store)) -> OTPService:
    return OTPService(store)


def get_email_sender() -> EmailSender:
    return send_otp_email


async def get_auth_service(
    session: AsyncSession = Depends(get_db_session),
    otp_service: OTPService = Depends(get_otp_service),
) -> AsyncGenerator[AuthService, None]:
    """Assemble AuthService with its database-backed account store and the OTP service.

    Dependencies:
    - `AsyncSession` from `get_db_session` for account persistence.
    - `OTPService` from `get_otp_service` for proof-token checks and cleanup.
    """

    yield AuthService(accounts=AccountStore(session), otp_service=otp_service)
