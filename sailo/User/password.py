import re
from typing import Any, Dict, Optional

MIN_PASSWORD_LENGTH = 8
SPECIAL_CHARS = re.compile(r"""[!@#$%^&*()_+\-=\[\]{};':"\\|,.<>/?]""")


def check_password_strength(password: str) -> Dict[str, Any]:
    """
    密碼強度檢查

    評分: 長度 >= 12 +2 / >= 10 +1, 小寫 +1, 大寫 +1, 數字 +1, 特殊字元 +2
    score >= 6 強, >= 4 中等 (可用), 其餘為弱 (不可用)
    """
    result = {
        "is_valid": False,
        "strength": "weak",
        "label": "弱",
        "message": "",
        "score": 0,
    }

    if not password or len(password) < MIN_PASSWORD_LENGTH:
        result["message"] = "密碼至少需要 8 個字元"
        result["label"] = "太短"
        return result

    score = 0
    if len(password) >= 12:
        score += 2
    elif len(password) >= 10:
        score += 1
    if re.search(r"[a-z]", password):
        score += 1
    if re.search(r"[A-Z]", password):
        score += 1
    if re.search(r"\d", password):
        score += 1
    if SPECIAL_CHARS.search(password):
        score += 2

    result["score"] = score

    if score >= 6:
        result.update(strength="strong", label="強", is_valid=True, message="強密碼！非常安全")
    elif score >= 4:
        result.update(
            strength="medium",
            label="中等",
            is_valid=True,
            message="中等強度，建議加入更多字元類型",
        )
    else:
        result["message"] = "密碼強度不足，請包含大小寫字母、數字與特殊字元"

    return result


def password_update_error(current: str, new: str, confirm: str) -> Optional[str]:
    """會員中心改密碼的表單檢查，通過時回傳 None"""
    if not current or not new or not confirm:
        return "請填寫所有欄位"
    if new != confirm:
        return "新密碼與確認密碼不一致"
    if len(new) < MIN_PASSWORD_LENGTH:
        return "新密碼至少需要 8 個字元"
    if not re.search(r"[a-zA-Z]", new) or not re.search(r"\d", new):
        return "密碼必須包含至少一個字母和一個數字"
    return None
