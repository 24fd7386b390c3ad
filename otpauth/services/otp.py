"""OTP issuance and verification backed by Redis or an in-process table.

One record is kept per email. Issuing replaces the record outright,
verifying flips it to verified in place and attaches a fresh proof token,
and registration deletes it. Expired records are not purged here; they are
rejected when somebody tries to verify them.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from otpauth.core.config import settings
from otpauth.core.exceptions import ExpiredError, MismatchError, NotFoundError, StoreError, ValidationError
from otpauth.core.security import generate_otp, generate_proof_token

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_redis_client: Optional[Redis] = None


def get_redis_client() -> Redis:
    """Return a lazily initialized Redis client shared across the service."""
    global _redis_client
    if _redis_client is None:
        _redis_client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


async def close_redis_client() -> None:
    """Close the shared Redis client; invoked during application shutdown."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OTPRecord:
    email: str
    code: str
    expires_at: datetime
    verified: bool = False
    proof_token: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def same_issuance(self, other: "OTPRecord") -> bool:
        return self.code == other.code and self.expires_at == other.expires_at

    def mark_verified(self, proof_token: str) -> "OTPRecord":
        return replace(self, verified=True, proof_token=proof_token)


class OTPStore(Protocol):
    """Per-email OTP persistence with atomic per-key operations."""

    async def get(self, email: str) -> Optional[OTPRecord]:
        ...

    async def upsert(self, record: OTPRecord) -> None:
        """Replace whatever is stored for `record.email`."""
        ...

    async def mark_verified(self, expected: OTPRecord, proof_token: str) -> bool:
        """Set verified + token only if the stored record is still `expected`'s issuance."""
        ...

    async def delete(self, email: str) -> None:
        ...


class InMemoryOTPStore:
    """Process-local store; every read-modify-write runs under one lock."""

    def __init__(self) -> None:
        self._records: dict[str, OTPRecord] = {}
        self._lock = asyncio.Lock()

    async def get(self, email: str) -> Optional[OTPRecord]:
        async with self._lock:
            return self._records.get(email)

    async def upsert(self, record: OTPRecord) -> None:
        async with self._lock:
            self._records[record.email] = record

    async def mark_verified(self, expected: OTPRecord, proof_token: str) -> bool:
        async with self._lock:
            current = self._records.get(expected.email)
            if current is None or not current.same_issuance(expected):
                return False
            self._records[expected.email] = current.mark_verified(proof_token)
            return True

    async def delete(self, email: str) -> None:
        async with self._lock:
            self._records.pop(email, None)

    def __len__(self) -> int:
        return len(self._records)


def _otp_key(email: str) -> str:
    """Generate the Redis key that scopes an OTP to a user's email."""
    return f"otp:{email}"


def _to_hash(record: OTPRecord) -> dict[str, str]:
    return {
        "code": record.code,
        "expires_at": record.expires_at.isoformat(),
        "verified": "1" if record.verified else "0",
        "proof_token": record.proof_token or "",
    }


def _from_hash(email: str, data: dict[str, str]) -> Optional[OTPRecord]:
    if not data:
        return None
    return OTPRecord(
        email=email,
        code=data["code"],
        expires_at=datetime.fromisoformat(data["expires_at"]),
        verified=data.get("verified") == "1",
        proof_token=data.get("proof_token") or None,
    )


class RedisOTPStore:
    """Records live in one Redis hash per email under `otp:<email>`."""

    def __init__(self, redis_client: Redis, retention_seconds: int | None = None):
        self.redis = redis_client
        self.retention_seconds = retention_seconds

    async def get(self, email: str) -> Optional[OTPRecord]:
        try:
            data = await self.redis.hgetall(_otp_key(email))
        except RedisError as exc:
            raise StoreError(f"Failed to read OTP record: {exc}") from exc
        return _from_hash(email, data)

    async def upsert(self, record: OTPRecord) -> None:
        key = _otp_key(record.email)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.delete(key)
                pipe.hset(key, mapping=_to_hash(record))
                if self.retention_seconds:
                    pipe.expire(key, self.retention_seconds)
                await pipe.execute()
        except RedisError as exc:
            raise StoreError(f"Failed to store OTP record: {exc}") from exc

    async def mark_verified(self, expected: OTPRecord, proof_token: str) -> bool:
        key = _otp_key(expected.email)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(key)
                        current = _from_hash(expected.email, await pipe.hgetall(key))
                        if current is None or not current.same_issuance(expected):
                            return False
                        pipe.multi()
                        pipe.hset(key, mapping={"verified": "1", "proof_token": proof_token})
                        await pipe.execute()
                        return True
                    except WatchError:
                        continue
        except RedisError as exc:
            raise StoreError(f"Failed to update OTP record: {exc}") from exc

    async def delete(self, email: str) -> None:
        try:
            await self.redis.delete(_otp_key(email))
        except RedisError as exc:
            raise StoreError(f"Failed to delete OTP record: {exc}") from exc


class OTPService:
    """Issue and verify OTP codes on top of an `OTPStore`."""

    def __init__(
        self,
        store: OTPStore,
        expire_seconds: int = settings.OTP_EXPIRE_SECONDS,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.ttl = timedelta(seconds=expire_seconds)
        self.clock = clock

    async def issue(self, email: str | None) -> str:
        """Create or fully replace the OTP record for `email` and return its code."""

        if not email:
            raise ValidationError("Email is required.")

        record = OTPRecord(email=email, code=generate_otp(), expires_at=self.clock() + self.ttl)
        await self.store.upsert(record)
        logger.info("Issued OTP for %s (expires %s)", email, record.expires_at.isoformat())
        return record.code

    async def verify(self, email: str | None, code: str | None) -> str:
        """Check `code` against the stored record and return a new proof token.

        Checks run in order and the first failure wins: missing input, no
        record, expired, wrong code. Verifying again with the same code is
        allowed and replaces the previous token.
        """

        if not email or not code:
            raise ValidationError("Email and OTP are required.")

        while True:
            record = await self.store.get(email)
            if record is None:
                raise NotFoundError("No OTP sent.")
            if record.is_expired(self.clock()):
                raise ExpiredError("OTP expired.")
            if code != record.code:
                raise MismatchError("Invalid OTP.")

            token = generate_proof_token()
            if await self.store.mark_verified(record, token):
                logger.info("Verified OTP for %s", email)
                return token
            # Re-issued or consumed between read and write; judge against what is stored now.
            logger.debug("OTP record for %s changed during verification, re-checking", email)

    async def get_record(self, email: str) -> Optional[OTPRecord]:
        return await self.store.get(email)

    async def invalidate(self, email: str) -> None:
        """Remove the record for `email`; used once registration consumed it."""
        await self.store.delete(email)
