import logging
import secrets
import time
from typing import Any, Dict, List, Optional

import httpx
from fastapi import Request, Response

from core.config import get_config
from core.handoff import HandoffStore
from core.pagination import Pager
from core.ui import DialogRegistry, ScrollLock
from Favorite.index import FavoritesIndex
from Place.search import PlaceSearchState
from User.otp import OtpFlow

logger = logging.getLogger(__name__)


class SessionState:
    """瀏覽器 session 一份的用戶端狀態"""

    def __init__(self, sid: str, config=None):
        config = config or get_config()
        self.sid = sid
        self.user: Optional[Dict[str, Any]] = None
        self.backend_cookies = httpx.Cookies()
        self.handoff = HandoffStore()
        self.favorites = FavoritesIndex()
        self.scroll_lock = ScrollLock()
        self.dialogs = DialogRegistry(self.scroll_lock, transition_ms=config.modal_transition_ms)
        self.feeds: Dict[str, Pager] = {}
        self.place_search = PlaceSearchState()
        self.otp: Optional[OtpFlow] = None
        self.trip_draft: Optional[Dict[str, Any]] = None
        self.last_seen = time.monotonic()

    @property
    def user_id(self) -> Optional[int]:
        if not self.user:
            return None
        return self.user.get("user_id") or self.user.get("id")

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None

    def touch(self) -> None:
        self.last_seen = time.monotonic()

    def login(self, user: Dict[str, Any]) -> None:
        self.user = user
        # 換帳號時舊的收藏索引不能沿用
        self.favorites.clear()

    def update_user(self, changes: Dict[str, Any]) -> None:
        """個人資料修改成功後，把變更合併進目前的登入者"""
        self.user = {**(self.user or {}), **changes}

    def logout(self) -> None:
        self.user = None
        self.backend_cookies.clear()
        self.handoff.clear()
        self.favorites.clear()
        self.dialogs.clear()
        self.feeds.clear()
        self.otp = None
        self.trip_draft = None


class SessionRegistry:
    """記憶體內的 session 表 (單一行程部署)"""

    def __init__(self):
        self._sessions: Dict[str, SessionState] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, sid: Optional[str]) -> Optional[SessionState]:
        if not sid:
            return None
        return self._sessions.get(sid)

    def create(self, config=None) -> SessionState:
        sid = secrets.token_urlsafe(32)
        state = SessionState(sid, config)
        self._sessions[sid] = state
        return state

    def get_or_create(self, sid: Optional[str], config=None) -> SessionState:
        return self.get(sid) or self.create(config)

    def drop(self, sid: str) -> None:
        self._sessions.pop(sid, None)

    def purge_expired(self, ttl_seconds: float, now: Optional[float] = None) -> int:
        now = time.monotonic() if now is None else now
        expired = [sid for sid, s in self._sessions.items() if now - s.last_seen > ttl_seconds]
        for sid in expired:
            self._sessions[sid].logout()
            del self._sessions[sid]
        if expired:
            logger.info(f"閒置 session 清除: {len(expired)} 個")
        return len(expired)

    def authenticated(self) -> List[SessionState]:
        return [s for s in self._sessions.values() if s.authenticated]

    def clear(self) -> None:
        self._sessions.clear()


sessions = SessionRegistry()


async def provide_session(request: Request, response: Response) -> SessionState:
    config = get_config()
    sid = request.cookies.get(config.session_cookie_name)
    state = sessions.get(sid)
    if state is None:
        state = sessions.create(config)
        response.set_cookie(
            config.session_cookie_name,
            state.sid,
            httponly=True,
            samesite="lax",
            secure=config.session_cookie_secure,
            max_age=config.session_ttl_minutes * 60,
        )
    state.touch()
    return state
