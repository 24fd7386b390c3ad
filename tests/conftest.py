import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("OTP_BACKEND", "memory")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timedelta, timezone  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402

from otpauth.api import deps  # noqa: E402
from otpauth.db import models  # noqa: E402,F401
from otpauth.db.base import Base  # noqa: E402
from otpauth.main import create_application  # noqa: E402
from otpauth.services.accounts import AccountStore  # noqa: E402
from otpauth.services.auth import AuthService  # noqa: E402
from otpauth.services.otp import InMemoryOTPStore, OTPService  # noqa: E402


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class Outbox:
    """Email sender double that records what would have been mailed."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    async def send(self, email: str, otp_code: str) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append((email, otp_code))

    def last_code(self, email: str) -> str:
        return [code for to, code in self.sent if to == email][-1]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def otp_store() -> InMemoryOTPStore:
    return InMemoryOTPStore()


@pytest.fixture
def otp_service(otp_store, clock) -> OTPService:
    return OTPService(otp_store, expire_seconds=300, clock=clock)


@pytest.fixture
def outbox() -> Outbox:
    return Outbox()


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'accounts.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def auth_service(session, otp_service) -> AuthService:
    return AuthService(accounts=AccountStore(session), otp_service=otp_service)


@pytest.fixture
def app(session_factory, otp_service, outbox):
    application = create_application()

    async def _session_override():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[deps.get_db_session] = _session_override
    application.dependency_overrides[deps.get_otp_service] = lambda: otp_service
    application.dependency_overrides[deps.get_email_sender] = lambda: outbox.send
    return application


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
