"""Registration and login logic tying OTP proof tokens to account creation."""

import logging

from otpauth.core.exceptions import (
    DuplicateAccountError,
    MismatchError,
    NotFoundError,
    OtpFailureReason,
    OtpNotVerifiedError,
    StoreError,
    ValidationError,
)
from otpauth.core.security import get_password_hash, tokens_match, verify_password
from otpauth.db.models.account import Account
from otpauth.schemas.auth import UserSummary
from otpauth.services.accounts import AccountStore
from otpauth.services.otp import OTPService

logger = logging.getLogger(__name__)


class AuthService:
    """High-level service used by API routes; holds the account store and OTP service."""

    def __init__(self, accounts: AccountStore, otp_service: OTPService):
        self.accounts = accounts
        self.otp_service = otp_service

    async def _check_proof_token(self, email: str, otp_token: str) -> None:
        record = await self.otp_service.get_record(email)
        if record is None:
            reason = OtpFailureReason.NO_RECORD
        elif not record.verified:
            reason = OtpFailureReason.NOT_VERIFIED
        elif not tokens_match(record.proof_token, otp_token):
            reason = OtpFailureReason.TOKEN_MISMATCH
        else:
            return
        logger.info("Registration for %s rejected: %s", email, reason.value)
        raise OtpNotVerifiedError(reason)

    async def register(
        self,
        name: str | None,
        email: str | None,
        password: str | None,
        otp_token: str | None,
    ) -> Account:
        """Create an account for an email whose OTP was verified, then drop the OTP record.

        The account insert and the OTP delete hit different stores and are not
        one transaction. If the delete fails the registration still stands: the
        leftover record can never register again because the account exists.
        """

        if not (name and email and password and otp_token):
            raise ValidationError("All fields are required.")

        await self._check_proof_token(email, otp_token)

        if await self.accounts.get_by_email(email):
            raise DuplicateAccountError("User already exists.")

        account = await self.accounts.create(name=name, email=email, password_hash=get_password_hash(password))

        try:
            await self.otp_service.invalidate(email)
        except StoreError:
            logger.exception("Account %s created but its OTP record could not be deleted", email)

        logger.info("User registered: %s", email)
        return account

    async def login(self, email: str | None, password: str | None) -> UserSummary:
        """Check credentials and return the public account summary."""

        if not email or not password:
            raise ValidationError("Email and password are required.")

        account = await self.accounts.get_by_email(email)
        if account is None:
            raise NotFoundError("User not found.")

        if not verify_password(password, account.password_hash):
            raise MismatchError("Incorrect password.")

        return UserSummary.model_validate(account)
