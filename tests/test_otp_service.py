import pytest

from otpauth.core.exceptions import ExpiredError, MismatchError, NotFoundError, ValidationError
from otpauth.services.otp import InMemoryOTPStore, OTPRecord, OTPService


async def test_issue_creates_six_digit_code(otp_service, otp_store, clock):
    code = await otp_service.issue("a@x.com")

    assert len(code) == 6 and code.isdigit()
    assert 100000 <= int(code) <= 999999

    record = await otp_store.get("a@x.com")
    assert record.code == code
    assert (record.expires_at - clock.now).total_seconds() == 300
    assert record.verified is False
    assert record.proof_token is None


@pytest.mark.parametrize("email", [None, ""])
async def test_issue_requires_email(otp_service, otp_store, email):
    with pytest.raises(ValidationError) as excinfo:
        await otp_service.issue(email)
    assert excinfo.value.message == "Email is required."
    assert len(otp_store) == 0


async def test_reissue_overwrites_verified_record(otp_service, otp_store, clock):
    first = await otp_service.issue("a@x.com")
    await otp_service.verify("a@x.com", first)

    clock.advance(60)
    second = await otp_service.issue("a@x.com")

    assert len(otp_store) == 1
    record = await otp_store.get("a@x.com")
    assert record.code == second
    assert record.verified is False
    assert record.proof_token is None
    assert (record.expires_at - clock.now).total_seconds() == 300


async def test_verify_marks_record_and_returns_token(otp_service, otp_store):
    code = await otp_service.issue("a@x.com")

    token = await otp_service.verify("a@x.com", code)

    assert len(token) == 32
    int(token, 16)
    record = await otp_store.get("a@x.com")
    assert record.verified is True
    assert record.proof_token == token


async def test_reverify_supersedes_previous_token(otp_service, otp_store):
    code = await otp_service.issue("a@x.com")

    first = await otp_service.verify("a@x.com", code)
    second = await otp_service.verify("a@x.com", code)

    assert first != second
    assert (await otp_store.get("a@x.com")).proof_token == second


@pytest.mark.parametrize("email, code", [(None, "123456"), ("a@x.com", None), ("", ""), ("a@x.com", "")])
async def test_verify_requires_email_and_code(otp_service, email, code):
    with pytest.raises(ValidationError) as excinfo:
        await otp_service.verify(email, code)
    assert excinfo.value.message == "Email and OTP are required."


async def test_verify_without_record(otp_service):
    with pytest.raises(NotFoundError) as excinfo:
        await otp_service.verify("nobody@x.com", "123456")
    assert excinfo.value.message == "No OTP sent."


async def test_verify_after_expiry_fails_even_with_correct_code(otp_service, clock):
    code = await otp_service.issue("a@x.com")
    clock.advance(301)

    with pytest.raises(ExpiredError) as excinfo:
        await otp_service.verify("a@x.com", code)
    assert excinfo.value.message == "OTP expired."


async def test_verify_exactly_at_expiry_succeeds(otp_service, clock):
    code = await otp_service.issue("a@x.com")
    clock.advance(300)

    assert await otp_service.verify("a@x.com", code)


async def test_expiry_is_checked_before_code(otp_service, clock):
    await otp_service.issue("a@x.com")
    clock.advance(600)

    with pytest.raises(ExpiredError):
        await otp_service.verify("a@x.com", "not-the-code")


async def test_wrong_code_leaves_record_unchanged(otp_service, otp_store):
    code = await otp_service.issue("a@x.com")
    token = await otp_service.verify("a@x.com", code)
    before = await otp_store.get("a@x.com")

    wrong = "100000" if code != "100000" else "100001"
    with pytest.raises(MismatchError) as excinfo:
        await otp_service.verify("a@x.com", wrong)

    assert excinfo.value.message == "Invalid OTP."
    after = await otp_store.get("a@x.com")
    assert after == before
    assert after.proof_token == token


async def test_code_comparison_is_exact(otp_service):
    code = await otp_service.issue("a@x.com")

    with pytest.raises(MismatchError):
        await otp_service.verify("a@x.com", f" {code}")


async def test_verification_is_scoped_to_email(otp_service):
    code = await otp_service.issue("a@x.com")
    await otp_service.issue("b@x.com")

    with pytest.raises(NotFoundError):
        await otp_service.verify("c@x.com", code)


class ReissuingStore(InMemoryOTPStore):
    """Simulates a /send-otp landing between verify's read and its write."""

    def __init__(self, replacement: OTPRecord):
        super().__init__()
        self.replacement = replacement

    async def mark_verified(self, expected, proof_token):
        if self.replacement is not None:
            await self.upsert(self.replacement)
            self.replacement = None
        return await super().mark_verified(expected, proof_token)


async def test_concurrent_reissue_is_not_marked_verified(clock):
    replacement = OTPRecord(email="a@x.com", code="999999", expires_at=clock.now)
    store = ReissuingStore(replacement)
    service = OTPService(store, expire_seconds=300, clock=clock)
    await store.upsert(OTPRecord(email="a@x.com", code="111111", expires_at=clock.now))

    with pytest.raises(MismatchError):
        await service.verify("a@x.com", "111111")

    record = await store.get("a@x.com")
    assert record.code == "999999"
    assert record.verified is False
    assert record.proof_token is None


async def test_invalidate_removes_record(otp_service, otp_store):
    code = await otp_service.issue("a@x.com")
    await otp_service.invalidate("a@x.com")

    assert await otp_service.get_record("a@x.com") is None
    with pytest.raises(NotFoundError):
        await otp_service.verify("a@x.com", code)
