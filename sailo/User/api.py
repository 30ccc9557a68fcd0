from typing import Any, Dict, Optional
from urllib.parse import quote

from core.backend import BackendClient

AUTH_PREFIX = "/api/v2/auth"
USER_PREFIX = "/api/v2/user"
TWO_FACTOR_PREFIX = f"{AUTH_PREFIX}/2fa"


# ==================== 認證 ====================
# 表單類呼叫不論狀態碼都回傳後端 JSON，由呼叫端看 success / requires2FA 分支

async def login(
    backend: BackendClient,
    session,
    email: str,
    password: str,
    token2fa: Optional[str] = None,
    captcha_token: Optional[str] = None,
) -> Dict[str, Any]:
    """登入 (成功時後端以 Set-Cookie 發出 token)"""
    return await backend.post(
        f"{AUTH_PREFIX}/login",
        session,
        json={"email": email, "password": password, "token2fa": token2fa, "captchaToken": captcha_token},
        raise_for_status=False,
    )


async def register(backend: BackendClient, session, user_data: Dict[str, Any]) -> Dict[str, Any]:
    return await backend.post(f"{AUTH_PREFIX}/register", session, json=user_data, raise_for_status=False)


async def logout(backend: BackendClient, session) -> Dict[str, Any]:
    return await backend.post(f"{AUTH_PREFIX}/logout", session)


async def fetch_me(backend: BackendClient, session) -> Dict[str, Any]:
    """目前登入者 (401 時先 refresh 再試一次)"""
    return await backend.get(f"{AUTH_PREFIX}/me", session, retry_on_401=True)


async def refresh(backend: BackendClient, session) -> bool:
    return await backend.refresh(session)


async def forgot_password(backend: BackendClient, session, email: str) -> Dict[str, Any]:
    return await backend.post(f"{AUTH_PREFIX}/forgot-password", session, json={"email": email})


async def verify_otp(backend: BackendClient, session, email: str, otp: str) -> Dict[str, Any]:
    return await backend.post(
        f"{AUTH_PREFIX}/verify-otp",
        session,
        json={"email": email, "otp": otp},
        raise_for_status=False,
    )


async def reset_password(
    backend: BackendClient, session, email: str, otp: str, new_password: str
) -> Dict[str, Any]:
    return await backend.post(
        f"{AUTH_PREFIX}/reset-password",
        session,
        json={"email": email, "otp": otp, "newPassword": new_password},
        raise_for_status=False,
    )


def google_login_url(backend: BackendClient, redirect: Optional[str] = None) -> str:
    url = backend.url_for(f"{AUTH_PREFIX}/google")
    if redirect:
        url = f"{url}?redirect={quote(redirect, safe='')}"
    return url


# ==================== 會員資料 ====================

async def _account_call(backend: BackendClient, method: str, path: str, session, **kwargs) -> Dict[str, Any]:
    return await backend.request(method, path, session, retry_on_401=True, raise_for_status=False, **kwargs)


async def update_nickname(backend: BackendClient, session, nickname: str) -> Dict[str, Any]:
    return await _account_call(backend, "PUT", f"{USER_PREFIX}/update-nickname", session, json={"nickname": nickname})


async def update_profile(backend: BackendClient, session, profile: Dict[str, Any]) -> Dict[str, Any]:
    return await _account_call(backend, "PUT", f"{USER_PREFIX}/update-profile", session, json=profile)


async def update_password(
    backend: BackendClient, session, current_password: str, new_password: str, confirm_password: str
) -> Dict[str, Any]:
    return await _account_call(
        backend,
        "PUT",
        f"{USER_PREFIX}/update-password",
        session,
        json={
            "currentPassword": current_password,
            "newPassword": new_password,
            "confirmPassword": confirm_password,
        },
    )


async def upload_avatar(
    backend: BackendClient, session, filename: str, contents: bytes, content_type: str
) -> Dict[str, Any]:
    """頭像上傳 (multipart，欄位名 avatar；失敗時丟出 BackendError)"""
    return await backend.post(
        f"{USER_PREFIX}/upload-avatar",
        session,
        files={"avatar": (filename, contents, content_type)},
    )


async def delete_avatar(backend: BackendClient, session) -> Dict[str, Any]:
    return await _account_call(backend, "DELETE", f"{USER_PREFIX}/delete-avatar", session)


# ==================== Google Authenticator (2FA) ====================

async def two_factor_status(backend: BackendClient, session) -> Dict[str, Any]:
    return await _account_call(backend, "GET", f"{TWO_FACTOR_PREFIX}/status", session)


async def enable_two_factor(backend: BackendClient, session) -> Dict[str, Any]:
    return await _account_call(backend, "POST", f"{TWO_FACTOR_PREFIX}/enable", session)


async def verify_two_factor(backend: BackendClient, session, token: str) -> Dict[str, Any]:
    return await _account_call(backend, "POST", f"{TWO_FACTOR_PREFIX}/verify", session, json={"token": token})


async def disable_two_factor(backend: BackendClient, session, password: str) -> Dict[str, Any]:
    return await _account_call(backend, "POST", f"{TWO_FACTOR_PREFIX}/disable", session, json={"password": password})
