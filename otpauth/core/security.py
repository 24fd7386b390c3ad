"""Password hashing and random secret helpers."""

import secrets

from passlib.context import CryptContext

from otpauth.core.config import settings

OTP_MIN = 100000
OTP_MAX = 999999

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def generate_otp() -> str:
    """Return a six digit code drawn uniformly from 100000..999999 inclusive."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def generate_proof_token() -> str:
    """Return 128 bits of randomness, hex encoded."""
    return secrets.token_hex(16)


def tokens_match(expected: str | None, provided: str) -> bool:
    if not expected:
        return False
    return secrets.compare_digest(expected.encode(), provided.encode())
