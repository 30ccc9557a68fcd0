import math
import re
import time
from typing import Callable, Optional

OTP_PATTERN = re.compile(r"^\d{6}$")


class OtpFlow:
    """
    忘記密碼 OTP 流程狀態

    寄出驗證碼後開始 10 分鐘倒數；倒數結束後不能再輸入，
    只能重新發送 (倒數中不能重新發送)。
    """

    def __init__(self, email: str, ttl_seconds: int = 600, clock: Callable[[], float] = time.monotonic):
        self.email = email
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self.issued_at = clock()
        self.verified_otp: Optional[str] = None

    @property
    def seconds_left(self) -> int:
        remaining = self.ttl_seconds - (self._clock() - self.issued_at)
        return max(0, math.ceil(remaining))

    @property
    def expired(self) -> bool:
        return self.seconds_left == 0

    @property
    def input_disabled(self) -> bool:
        return self.expired

    @property
    def can_resend(self) -> bool:
        return self.expired

    @property
    def verified(self) -> bool:
        return self.verified_otp is not None

    def restart(self) -> None:
        self.issued_at = self._clock()
        self.verified_otp = None

    def mark_verified(self, otp: str) -> None:
        self.verified_otp = otp

    def format_remaining(self) -> str:
        mins, secs = divmod(self.seconds_left, 60)
        return f"{mins}:{secs:02d}"

    def to_dict(self) -> dict:
        return {
            "email": self.email,
            "seconds_left": self.seconds_left,
            "remaining": self.format_remaining(),
            "input_disabled": self.input_disabled,
            "can_resend": self.can_resend,
            "verified": self.verified,
        }


def is_valid_otp(otp: str) -> bool:
    return bool(OTP_PATTERN.match(otp or ""))
