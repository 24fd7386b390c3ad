from otpauth.schemas.auth import LoginResponse, UserCreate, UserLogin, UserSummary
from otpauth.schemas.common import ApiResponse
from otpauth.schemas.otp import OTPRequest, OTPVerify, OTPVerifyResponse

__all__ = [
    "ApiResponse",
    "LoginResponse",
    "OTPRequest",
    "OTPVerify",
    "OTPVerifyResponse",
    "UserCreate",
    "UserLogin",
    "UserSummary",
]
