"""SQLAlchemy-backed credential store."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from otpauth.core.exceptions import DuplicateAccountError, StoreError
from otpauth.db.models.account import Account

logger = logging.getLogger(__name__)


class AccountStore:
    """Reads and inserts accounts; the unique index on email guards concurrent inserts."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> Account | None:
        try:
            return await self.session.scalar(select(Account).where(Account.email == email))
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to load account: {exc}") from exc

    async def create(self, name: str, email: str, password_hash: str) -> Account:
        """Insert a new account, turning a unique-email violation into `DuplicateAccountError`."""

        account = Account(name=name, email=email, password_hash=password_hash)
        self.session.add(account)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.info("Rejected duplicate account insert for %s", email)
            raise DuplicateAccountError("User already exists.") from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreError(f"Failed to create account: {exc}") from exc

        # Committed; expire_on_commit=False and eager_defaults leave every column loaded.
        return account
