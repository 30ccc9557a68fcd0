import io

import pytest
from PIL import Image

from core.session import sessions
from User.otp import OtpFlow, is_valid_otp
from User.password import check_password_strength

AUTH = "/api/v2/auth"
USER_API = "/api/v2/user"


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


# ==================== 密碼強度 ====================

@pytest.mark.parametrize("password, strength, valid", [
    ("short", "weak", False),
    ("abcdefgh", "weak", False),
    ("Abcdefgh12", "medium", True),
    ("Abcdefgh12#$", "strong", True),
])
def test_password_strength(password, strength, valid):
    result = check_password_strength(password)
    assert result["strength"] == strength
    assert result["is_valid"] is valid


def test_short_password_message():
    result = check_password_strength("abc")
    assert result["label"] == "太短"
    assert result["message"] == "密碼至少需要 8 個字元"


# ==================== OTP 倒數 ====================

def test_otp_countdown():
    clock = FakeClock()
    flow = OtpFlow("a@sailo.tw", ttl_seconds=600, clock=clock)
    assert flow.format_remaining() == "10:00"
    assert not flow.can_resend
    assert not flow.input_disabled

    clock.now += 539
    assert flow.format_remaining() == "1:01"

    clock.now += 61
    assert flow.expired
    assert flow.input_disabled
    assert flow.can_resend

    flow.restart()
    assert flow.seconds_left == 600


def test_otp_format():
    assert is_valid_otp("012345")
    assert not is_valid_otp("12345")
    assert not is_valid_otp("12a456")
    assert not is_valid_otp(None)


# ==================== 登入 / 登出 ====================

def test_login_sets_session_cookie_and_user(client, login):
    session = login()

    assert session.user_id == 7
    assert dict(session.backend_cookies) == {"accessToken": "abc"}
    assert client.get("/auth/me").json()["user"]["user_id"] == 7
    # 後端 cookie 不會出現在瀏覽器端
    assert "accessToken" not in client.cookies


@pytest.mark.parametrize("status", [200, 401])
def test_login_requires_2fa(client, fake, status):
    fake.route("POST", f"{AUTH}/login", status=status, body={"success": False, "requires2FA": True, "message": "請輸入驗證碼"})

    body = client.post("/auth/login", json={"email": "traveler@sailo.tw", "password": "x"}).json()

    assert body["success"] is False
    assert body["requires_2fa"] is True
    assert sessions.authenticated() == []


def test_wrong_password_comes_back_as_form_answer(client, fake):
    fake.route("POST", f"{AUTH}/login", status=401, body={"success": False, "message": "帳號或密碼錯誤"})

    response = client.post("/auth/login", json={"email": "traveler@sailo.tw", "password": "x"})

    assert response.status_code == 200
    assert response.json() == {"success": False, "message": "帳號或密碼錯誤", "user": None, "requires_2fa": False}


def test_logout_clears_even_when_backend_fails(client, fake, login):
    session = login()
    session.handoff.put("open_trip_id", 3)
    fake.route("POST", f"{AUTH}/logout", status=500, body={"success": False, "message": "error"})

    assert client.post("/auth/logout").json()["success"] is True
    assert not session.authenticated
    assert dict(session.backend_cookies) == {}
    assert session.handoff.pending() == {}


def test_me_falls_back_to_backend(client, fake):
    fake.route("GET", f"{AUTH}/me", body={"success": True, "user": {"id": 3, "email": "b@sailo.tw"}})

    body = client.get("/auth/me").json()

    assert body["user"]["id"] == 3
    assert len(sessions.authenticated()) == 1


def test_me_401_is_logged_out(client, fake):
    fake.route("GET", f"{AUTH}/me", status=401, body={"success": False, "message": "Unauthorized"})
    fake.route("POST", f"{AUTH}/refresh", status=401, body={"success": False})

    assert client.get("/auth/me").status_code == 401


def test_register_checks_strength_first(client, fake):
    body = client.post("/auth/register", json={"email": "new@sailo.tw", "password": "abcdefgh"})

    assert body.status_code == 400
    assert body.json()["field"] == "password"
    assert fake.requests == []


def test_register_failure_message_from_backend(client, fake):
    fake.route("POST", f"{AUTH}/register", status=409, body={"success": False, "message": "此 Email 已被註冊"})

    response = client.post("/auth/register", json={"email": "new@sailo.tw", "password": "Abcdefgh12#$"})

    assert response.status_code == 400
    assert response.json()["message"] == "此 Email 已被註冊"


def test_google_redirect(client):
    response = client.get("/auth/google", params={"redirect": "/site/blog"}, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "http://backend.test/api/v2/auth/google?redirect=%2Fsite%2Fblog"


# ==================== 忘記密碼 ====================

def test_forgot_password_validation(client, fake):
    assert client.post("/auth/forgot-password", json={"email": " "}).json()["message"] == "Email 為必填欄位"
    assert client.post("/auth/forgot-password", json={"email": "nope"}).json()["message"] == "Email 格式不正確"
    assert fake.requests == []


def test_reset_flow(client, fake):
    fake.route("POST", f"{AUTH}/forgot-password", body={"success": True})
    fake.route("POST", f"{AUTH}/verify-otp", body={"success": True, "verified": True})
    fake.route("POST", f"{AUTH}/reset-password", body={"success": True, "message": "密碼已重設"})

    status = client.post("/auth/forgot-password", json={"email": "a@sailo.tw"}).json()
    assert status["remaining"] == "10:00"
    assert status["can_resend"] is False
    assert client.post("/auth/resend-otp").status_code == 409

    early = client.post("/auth/reset-password", json={"new_password": "Abcdefgh12#$", "confirm_password": "Abcdefgh12#$"})
    assert early.status_code == 409

    short = client.post("/auth/verify-otp", json={"otp": "123"})
    assert short.json()["message"] == "請輸入完整的 6 位數驗證碼"

    assert client.post("/auth/verify-otp", json={"otp": "123456"}).json()["verified"] is True

    mismatch = client.post("/auth/reset-password", json={"new_password": "Abcdefgh12#$", "confirm_password": "Abcdefgh12#%"})
    assert mismatch.json()["message"] == "密碼不一致"

    done = client.post("/auth/reset-password", json={"new_password": "Abcdefgh12#$", "confirm_password": "Abcdefgh12#$"})
    assert done.json()["success"] is True

    sent = fake.body(fake.calls("POST", f"{AUTH}/reset-password")[0])
    assert sent == {"email": "a@sailo.tw", "otp": "123456", "newPassword": "Abcdefgh12#$"}
    assert client.get("/auth/otp").status_code == 409


def test_wrong_otp_message(client, fake):
    fake.route("POST", f"{AUTH}/forgot-password", body={"success": True})
    fake.route("POST", f"{AUTH}/verify-otp", body={"success": False})
    client.post("/auth/forgot-password", json={"email": "a@sailo.tw"})

    body = client.post("/auth/verify-otp", json={"otp": "654321"}).json()

    assert body["message"] == "驗證碼錯誤，請重新輸入"


def test_failed_reset_keeps_the_flow(client, fake):
    fake.route("POST", f"{AUTH}/forgot-password", body={"success": True})
    fake.route("POST", f"{AUTH}/verify-otp", body={"success": True, "verified": True})
    fake.route("POST", f"{AUTH}/reset-password", status=400, body={"success": False, "message": "驗證碼已失效"})
    client.post("/auth/forgot-password", json={"email": "a@sailo.tw"})
    client.post("/auth/verify-otp", json={"otp": "123456"})

    response = client.post(
        "/auth/reset-password", json={"new_password": "Abcdefgh12#$", "confirm_password": "Abcdefgh12#$"}
    )

    assert response.status_code == 400
    assert response.json()["message"] == "驗證碼已失效"
    assert client.get("/auth/otp").json()["verified"] is True


def test_wrong_otp_with_error_status(client, fake):
    fake.route("POST", f"{AUTH}/forgot-password", body={"success": True})
    fake.route("POST", f"{AUTH}/verify-otp", status=400, body={"success": False, "message": "驗證碼錯誤"})
    client.post("/auth/forgot-password", json={"email": "a@sailo.tw"})

    response = client.post("/auth/verify-otp", json={"otp": "654321"})

    assert response.status_code == 400
    assert response.json()["message"] == "驗證碼錯誤"


# ==================== 會員中心 ====================

def _png() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), "blue").save(buffer, format="PNG")
    return buffer.getvalue()


def test_account_requires_login(client, fake):
    assert client.put("/account/nickname", json={"nickname": "新名字"}).status_code == 401
    assert client.get("/account/2fa").status_code == 401
    assert fake.requests == []


def test_update_nickname_refreshes_session_user(client, fake, login):
    session = login()
    fake.route("PUT", f"{USER_API}/update-nickname", body={"success": True})

    assert client.put("/account/nickname", json={"nickname": "  "}).json()["message"] == "暱稱不能為空"

    body = client.put("/account/nickname", json={"nickname": " 大旅人 "}).json()

    assert body["message"] == "暱稱更新成功！"
    assert body["user"]["nickname"] == "大旅人"
    assert session.user["nickname"] == "大旅人"
    assert session.user["email"] == "traveler@sailo.tw"
    assert fake.body(fake.calls("PUT", f"{USER_API}/update-nickname")[0]) == {"nickname": "大旅人"}


def test_update_profile(client, fake, login):
    session = login()
    fake.route("PUT", f"{USER_API}/update-profile", body={"success": True})

    future = client.put("/account/profile", json={"name": "小明", "birthday": "2999-01-01"})
    assert future.json()["message"] == "生日不能是未來日期"

    body = client.put("/account/profile", json={"name": "小明", "birthday": "1990-05-20", "gender": "male"}).json()

    assert body["success"] is True
    sent = fake.body(fake.calls("PUT", f"{USER_API}/update-profile")[0])
    assert sent == {"name": "小明", "phone": "", "birthday": "1990-05-20", "gender": "male"}
    assert session.user["birthday"] == "1990-05-20"


def test_profile_failure_keeps_session_user(client, fake, login):
    session = login()
    fake.route("PUT", f"{USER_API}/update-profile", status=400, body={"success": False, "message": "電話格式錯誤"})

    response = client.put("/account/profile", json={"name": "小明", "phone": "abc"})

    assert response.status_code == 400
    assert response.json()["message"] == "電話格式錯誤"
    assert "name" not in session.user


@pytest.mark.parametrize("form, message", [
    ({"current_password": "", "new_password": "abc12345", "confirm_password": "abc12345"}, "請填寫所有欄位"),
    ({"current_password": "old", "new_password": "abc12345", "confirm_password": "abc12346"}, "新密碼與確認密碼不一致"),
    ({"current_password": "old", "new_password": "abc123", "confirm_password": "abc123"}, "新密碼至少需要 8 個字元"),
    ({"current_password": "old", "new_password": "abcdefgh", "confirm_password": "abcdefgh"}, "密碼必須包含至少一個字母和一個數字"),
])
def test_update_password_validation(client, fake, login, form, message):
    login()

    response = client.put("/account/password", json=form)

    assert response.status_code == 400
    assert response.json()["message"] == message
    assert fake.calls("PUT", f"{USER_API}/update-password") == []


def test_update_password_sends_backend_field_names(client, fake, login):
    login()
    fake.route("PUT", f"{USER_API}/update-password", body={"success": True})

    body = client.put(
        "/account/password",
        json={"current_password": "old", "new_password": "abc12345", "confirm_password": "abc12345"},
    ).json()

    assert body["message"] == "密碼更新成功！"
    sent = fake.body(fake.calls("PUT", f"{USER_API}/update-password")[0])
    assert sent == {"currentPassword": "old", "newPassword": "abc12345", "confirmPassword": "abc12345"}


def test_avatar_upload_and_delete(client, fake, login):
    session = login()
    fake.route("POST", f"{USER_API}/upload-avatar", body={"success": True, "avatarUrl": "https://cdn/a.png"})
    fake.route("DELETE", f"{USER_API}/delete-avatar", body={"success": True})

    assert client.delete("/account/avatar").json()["message"] == "目前沒有頭像"

    bad = client.post("/account/avatar", files={"avatar": ("a.png", b"nope", "image/png")})
    assert bad.status_code == 400
    assert fake.calls("POST", f"{USER_API}/upload-avatar") == []

    uploaded = client.post("/account/avatar", files={"avatar": ("a.png", _png(), "image/png")}).json()
    assert uploaded["user"]["avatar"] == "https://cdn/a.png"
    assert b'name="avatar"; filename="a.png"' in fake.calls("POST", f"{USER_API}/upload-avatar")[0].content

    dialog = client.delete("/account/avatar").json()["dialog"]
    assert fake.calls("DELETE", f"{USER_API}/delete-avatar") == []

    result = client.post(f"/session/dialogs/{dialog['dialog_id']}/confirm").json()["result"]
    assert result["message"] == "頭像已刪除！"
    assert session.user["avatar"] is None


def test_two_factor_setup(client, fake, login):
    login()
    fake.route("GET", f"{AUTH}/2fa/status", body={"success": True, "enabled": False, "hasBackupCodes": False})
    fake.route("POST", f"{AUTH}/2fa/enable", body={
        "success": True, "qrCode": "data:image/png;base64,xx", "secret": "ABC", "backupCodes": ["1111", "2222"],
    })
    fake.route("POST", f"{AUTH}/2fa/verify", body={"success": True})

    assert client.get("/account/2fa").json() == {"enabled": False, "has_backup_codes": False}
    setup = client.post("/account/2fa/enable").json()
    assert setup == {"qr_code": "data:image/png;base64,xx", "secret": "ABC", "backup_codes": ["1111", "2222"]}

    assert client.post("/account/2fa/verify", json={"token": "12"}).json()["message"] == "請輸入 6 位數驗證碼"
    done = client.post("/account/2fa/verify", json={"token": "123456"}).json()
    assert done["message"] == "Google Authenticator 已成功啟用！"
    assert fake.body(fake.calls("POST", f"{AUTH}/2fa/verify")[0]) == {"token": "123456"}


def test_two_factor_disable_wrong_password(client, fake, login):
    login()
    fake.route("POST", f"{AUTH}/2fa/disable", status=400, body={"success": False, "message": "密碼錯誤"})

    assert client.post("/account/2fa/disable", json={"password": ""}).json()["message"] == "請輸入密碼以確認身分"

    response = client.post("/account/2fa/disable", json={"password": "wrong"})
    assert response.status_code == 400
    assert response.json()["message"] == "密碼錯誤"
