from datetime import date
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


# 登入 / 註冊
class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    token2fa: Optional[str] = Field(None, description="Google Authenticator 驗證碼")
    captcha_token: Optional[str] = None


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    nickname: Optional[str] = None
    phone: Optional[str] = None


# 忘記密碼 (OTP)
class ForgotPasswordRequest(BaseModel):
    email: str = ""


class VerifyOtpRequest(BaseModel):
    otp: str = ""


class ResetPasswordRequest(BaseModel):
    new_password: str = ""
    confirm_password: str = ""


class PasswordStrengthRequest(BaseModel):
    password: str = ""


# 回應
class AuthResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    user: Optional[dict] = None
    requires_2fa: bool = False


class OtpStatus(BaseModel):
    email: str
    seconds_left: int
    remaining: str
    input_disabled: bool
    can_resend: bool
    verified: bool


# 會員中心
class NicknameUpdate(BaseModel):
    nickname: str = ""


class ProfileUpdate(BaseModel):
    name: str = ""
    phone: Optional[str] = None
    birthday: Optional[date] = None
    gender: Optional[str] = None


class PasswordUpdate(BaseModel):
    current_password: str = ""
    new_password: str = ""
    confirm_password: str = ""


class TwoFactorVerifyRequest(BaseModel):
    token: str = ""


class TwoFactorDisableRequest(BaseModel):
    password: str = ""


class TwoFactorStatus(BaseModel):
    enabled: bool = False
    has_backup_codes: bool = False


class TwoFactorSetup(BaseModel):
    qr_code: Optional[str] = None
    secret: Optional[str] = None
    backup_codes: List[str] = []
