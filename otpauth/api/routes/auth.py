"""HTTP route handlers for OTP issuance, verification, registration and login."""

from fastapi import APIRouter, BackgroundTasks, Body, Depends

from otpauth.api import deps
from otpauth.schemas.auth import LoginResponse, UserCreate, UserLogin
from otpauth.schemas.common import ApiResponse
from otpauth.schemas.otp import OTPRequest, OTPVerify, OTPVerifyResponse
from otpauth.services.auth import AuthService
from otpauth.services.email import EmailSender, deliver_otp_email
from otpauth.services.otp import OTPService

router = APIRouter(tags=["authentication"])

# A request without a body is handled as `{}` so the missing-field messages apply.


@router.post("/send-otp", response_model=ApiResponse)
async def send_otp(
    background_tasks: BackgroundTasks,
    payload: OTPRequest = Body(default_factory=OTPRequest),
    otp_service: OTPService = Depends(deps.get_otp_service),
    email_sender: EmailSender = Depends(deps.get_email_sender),
) -> ApiResponse:
    """Issue a fresh OTP and mail it after the response has been sent."""

    code = await otp_service.issue(payload.email)
    background_tasks.add_task(deliver_otp_email, payload.email, code, email_sender)
    return ApiResponse(success=True, message="OTP is being sent. Please check your email.")


@router.post("/verify-otp", response_model=OTPVerifyResponse)
async def verify_otp(
    payload: OTPVerify = Body(default_factory=OTPVerify),
    otp_service: OTPService = Depends(deps.get_otp_service),
) -> OTPVerifyResponse:
    """Confirm the submitted code and hand back the proof token for /register."""

    token = await otp_service.verify(payload.email, payload.code)
    return OTPVerifyResponse(success=True, message="OTP verified.", otp_token=token)


@router.post("/register", response_model=ApiResponse)
async def register_user(
    payload: UserCreate = Body(default_factory=UserCreate),
    auth_service: AuthService = Depends(deps.get_auth_service),
) -> ApiResponse:
    await auth_service.register(payload.name, payload.email, payload.password, payload.otp_token)
    return ApiResponse(success=True, message="Registration successful.")


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: UserLogin = Body(default_factory=UserLogin),
    auth_service: AuthService = Depends(deps.get_auth_service),
) -> LoginResponse:
    user = await auth_service.login(payload.email, payload.password)
    return LoginResponse(success=True, message="Login successful.", user=user)
