import logging
import re
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import RedirectResponse

from core.backend import BackendClient, provide_backend
from core.config import get_config
from core.exceptions import BackendError, FormValidationError
from core.images import read_image_upload
from core.session import SessionState, provide_session

from User import api
from User.dto import (
    LoginRequest, RegisterRequest, AuthResponse,
    ForgotPasswordRequest, VerifyOtpRequest, ResetPasswordRequest,
    PasswordStrengthRequest, OtpStatus,
    NicknameUpdate, ProfileUpdate, PasswordUpdate,
    TwoFactorVerifyRequest, TwoFactorDisableRequest, TwoFactorStatus, TwoFactorSetup,
)
from User.otp import OtpFlow, is_valid_otp
from User.password import check_password_strength, password_update_error

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)

account_router = APIRouter(
    prefix="/account",
    tags=["account"]
)


# --- 認證相依函式 ---
async def get_current_user(session: SessionState = Depends(provide_session)) -> dict:
    if not session.authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="請先登入",
        )
    return session.user


async def get_optional_user(session: SessionState = Depends(provide_session)) -> Optional[dict]:
    return session.user if session.authenticated else None


async def reload_user(backend: BackendClient, session: SessionState) -> Optional[dict]:
    """從後端重新取得登入者 (cookie 失效時視為登出)"""
    try:
        data = await api.fetch_me(backend, session)
    except BackendError as e:
        if e.status_code == status.HTTP_401_UNAUTHORIZED:
            session.logout()
            return None
        raise

    user = data.get("user") if data.get("success") else None
    if user:
        session.login(user)
    else:
        session.logout()
    return user


# ==================== 登入 / 註冊 / 登出 ====================

@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    data = await api.login(backend, session, body.email, body.password, body.token2fa, body.captcha_token)

    # 後端以 401 + {success: false, requires2FA: true} 要求驗證碼，也照樣依 body 判斷
    user = data.get("user")
    if not data.get("success") or not user:
        return AuthResponse(
            success=False,
            requires_2fa=bool(data.get("requires2FA")),
            message=data.get("message") or "登入失敗",
        )

    session.login(user)
    logger.info(f"登入成功: user_id={session.user_id}")
    return AuthResponse(success=True, user=user, message=data.get("message") or "登入成功")


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    strength = check_password_strength(body.password)
    if not strength["is_valid"]:
        raise FormValidationError(strength["message"], "password")

    data = await api.register(backend, session, body.model_dump(exclude_none=True))
    if not data.get("success"):
        raise FormValidationError(data.get("message") or "註冊失敗")
    return AuthResponse(success=True, message=data.get("message") or "註冊成功，請登入")


@router.post("/logout", response_model=AuthResponse)
async def logout(
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    try:
        await api.logout(backend, session)
    except BackendError as e:
        # 後端失敗也要清掉本地狀態
        logger.warning(f"後端登出失敗: {e.message}")
    finally:
        session.logout()
    return AuthResponse(success=True, message="已登出")


@router.get("/me", response_model=AuthResponse)
async def read_me(
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    user = session.user if session.authenticated else await reload_user(backend, session)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="請先登入")
    return AuthResponse(success=True, user=user)


@router.post("/reload", response_model=AuthResponse)
async def reload_me(
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    user = await reload_user(backend, session)
    return AuthResponse(success=user is not None, user=user)


@router.get("/google")
async def google_login(
    redirect: Optional[str] = Query(None),
    backend: BackendClient = Depends(provide_backend),
):
    return RedirectResponse(api.google_login_url(backend, redirect), status_code=status.HTTP_302_FOUND)


@router.post("/password-strength")
async def password_strength(body: PasswordStrengthRequest):
    return check_password_strength(body.password)


# ==================== 忘記密碼 (OTP) ====================

def _require_flow(session: SessionState) -> OtpFlow:
    if session.otp is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="請先發送驗證碼")
    return session.otp


@router.post("/forgot-password", response_model=OtpStatus)
async def forgot_password(
    body: ForgotPasswordRequest,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    email = body.email.strip()
    if not email:
        raise FormValidationError("Email 為必填欄位", "email")
    if not EMAIL_PATTERN.match(email):
        raise FormValidationError("Email 格式不正確", "email")

    await api.forgot_password(backend, session, email)
    session.otp = OtpFlow(email, ttl_seconds=get_config().otp_ttl_seconds)
    logger.info(f"OTP 已發送: {email}")
    return session.otp.to_dict()


@router.get("/otp", response_model=OtpStatus)
async def otp_status(session: SessionState = Depends(provide_session)):
    return _require_flow(session).to_dict()


@router.post("/verify-otp", response_model=OtpStatus)
async def verify_otp(
    body: VerifyOtpRequest,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    flow = _require_flow(session)
    otp = body.otp.strip()
    if not is_valid_otp(otp):
        raise FormValidationError("請輸入完整的 6 位數驗證碼", "otp")
    if flow.expired:
        raise FormValidationError("驗證碼已過期，請重新發送", "otp")

    data = await api.verify_otp(backend, session, flow.email, otp)
    if not (data.get("success") and data.get("verified", True)):
        raise FormValidationError(data.get("message") or "驗證碼錯誤，請重新輸入", "otp")

    flow.mark_verified(otp)
    return flow.to_dict()


@router.post("/resend-otp", response_model=OtpStatus)
async def resend_otp(
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    flow = _require_flow(session)
    if not flow.can_resend:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"請在 {flow.format_remaining()} 後再重新發送",
        )

    await api.forgot_password(backend, session, flow.email)
    flow.restart()
    return flow.to_dict()


@router.post("/reset-password", response_model=AuthResponse)
async def reset_password(
    body: ResetPasswordRequest,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    flow = _require_flow(session)
    if not flow.verified:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="請先完成驗證碼驗證")

    if not body.new_password:
        raise FormValidationError("新密碼為必填欄位", "new_password")
    strength = check_password_strength(body.new_password)
    if not strength["is_valid"]:
        raise FormValidationError(strength["message"], "new_password")
    if not body.confirm_password:
        raise FormValidationError("請確認密碼", "confirm_password")
    if body.new_password != body.confirm_password:
        raise FormValidationError("密碼不一致", "confirm_password")

    data = await api.reset_password(backend, session, flow.email, flow.verified_otp, body.new_password)
    if not data.get("success"):
        # 流程保留，使用者可以改密碼再送一次
        raise FormValidationError(data.get("message") or "重置失敗，請稍後再試", "new_password")

    session.otp = None
    return AuthResponse(success=True, message=data.get("message") or "密碼已重設")


# ==================== 會員中心 ====================

def _account_result(data: dict, success_message: str, failure_message: str, field: Optional[str] = None) -> dict:
    if not data.get("success"):
        raise FormValidationError(data.get("message") or failure_message, field)
    return {"success": True, "message": success_message}


@account_router.put("/nickname", response_model=AuthResponse)
async def update_nickname(
    body: NicknameUpdate,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    nickname = body.nickname.strip()
    if not nickname:
        raise FormValidationError("暱稱不能為空", "nickname")

    data = await api.update_nickname(backend, session, nickname)
    result = _account_result(data, "暱稱更新成功！", "更新失敗，請稍後再試", "nickname")
    session.update_user({"nickname": nickname})
    return AuthResponse(user=session.user, **result)


@account_router.put("/profile", response_model=AuthResponse)
async def update_profile(
    body: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    name = body.name.strip()
    if not name:
        raise FormValidationError("姓名不能為空", "name")
    if body.birthday and body.birthday > date.today():
        raise FormValidationError("生日不能是未來日期", "birthday")

    profile = {
        "name": name,
        "phone": body.phone or "",
        "birthday": body.birthday.isoformat() if body.birthday else "",
        "gender": body.gender or "",
    }
    data = await api.update_profile(backend, session, profile)
    result = _account_result(data, "個人資料更新成功！", "更新失敗，請稍後再試")
    session.update_user(profile)
    return AuthResponse(user=session.user, **result)


@account_router.put("/password", response_model=AuthResponse)
async def update_password(
    body: PasswordUpdate,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    error = password_update_error(body.current_password, body.new_password, body.confirm_password)
    if error:
        raise FormValidationError(error, "new_password")

    data = await api.update_password(
        backend, session, body.current_password, body.new_password, body.confirm_password
    )
    return AuthResponse(**_account_result(data, "密碼更新成功！", "更新失敗，請稍後再試"))


@account_router.post("/avatar", response_model=AuthResponse)
async def upload_avatar(
    avatar: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    filename, contents, content_type = await read_image_upload(avatar, get_config().max_upload_bytes)
    data = await api.upload_avatar(backend, session, filename, contents, content_type)
    result = _account_result(data, "頭像上傳成功！", "上傳失敗")
    session.update_user({"avatar": data.get("avatarUrl")})
    logger.info(f"頭像已更新: user_id={session.user_id}")
    return AuthResponse(user=session.user, **result)


@account_router.delete("/avatar")
async def delete_avatar(
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """刪除前先開確認對話框"""
    if not current_user.get("avatar"):
        raise FormValidationError("目前沒有頭像", "avatar")

    async def delete():
        data = await api.delete_avatar(backend, session)
        result = _account_result(data, "頭像已刪除！", "刪除失敗")
        session.update_user({"avatar": None})
        return {**result, "user": session.user}

    dialog = session.dialogs.open(
        "刪除頭像",
        "確定要刪除頭像嗎？",
        action=delete,
        confirm_text="刪除",
        key="account:avatar",
    )
    return {"requires_confirmation": True, "dialog": dialog.to_dict()}


# --- Google Authenticator ---

@account_router.get("/2fa", response_model=TwoFactorStatus)
async def two_factor_status(
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    data = await api.two_factor_status(backend, session)
    if not data.get("success"):
        raise BackendError(status.HTTP_502_BAD_GATEWAY, data.get("message") or "無法取得 2FA 狀態")
    return TwoFactorStatus(enabled=bool(data.get("enabled")), has_backup_codes=bool(data.get("hasBackupCodes")))


@account_router.post("/2fa/enable", response_model=TwoFactorSetup)
async def enable_two_factor(
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """產生 QR code 與備用碼 (輸入驗證碼後才真正啟用)"""
    data = await api.enable_two_factor(backend, session)
    _account_result(data, "", "啟用失敗")
    return TwoFactorSetup(
        qr_code=data.get("qrCode"),
        secret=data.get("secret"),
        backup_codes=data.get("backupCodes") or [],
    )


@account_router.post("/2fa/verify", response_model=AuthResponse)
async def verify_two_factor(
    body: TwoFactorVerifyRequest,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    token = body.token.strip()
    if not is_valid_otp(token):
        raise FormValidationError("請輸入 6 位數驗證碼", "token")

    data = await api.verify_two_factor(backend, session, token)
    return AuthResponse(**_account_result(data, "Google Authenticator 已成功啟用！", "驗證失敗", "token"))


@account_router.post("/2fa/disable", response_model=AuthResponse)
async def disable_two_factor(
    body: TwoFactorDisableRequest,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    if not body.password:
        raise FormValidationError("請輸入密碼以確認身分", "password")

    data = await api.disable_two_factor(backend, session, body.password)
    return AuthResponse(**_account_result(data, "Google Authenticator 已停用", "停用失敗", "password"))
