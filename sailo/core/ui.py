import asyncio
import uuid
from contextlib import contextmanager
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

DialogAction = Callable[[], Awaitable[Any]]


# ==================== 背景捲動鎖 ====================

class ScrollLockHandle:
    """acquire() 回傳的釋放把手，重複 release 不會多扣"""

    def __init__(self, lock: "ScrollLock"):
        self._lock = lock
        self.released = False

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        self._lock._release()


class ScrollLock:
    """
    以參考計數管理的背景捲動鎖

    多個對話框同時開啟時，要全部關閉後才會解除鎖定。
    """

    def __init__(self):
        self._count = 0

    @property
    def locked(self) -> bool:
        return self._count > 0

    @property
    def depth(self) -> int:
        return self._count

    def acquire(self) -> ScrollLockHandle:
        self._count += 1
        return ScrollLockHandle(self)

    def _release(self) -> None:
        if self._count > 0:
            self._count -= 1

    @contextmanager
    def scoped(self):
        handle = self.acquire()
        try:
            yield handle
        finally:
            handle.release()


# ==================== 對話框狀態機 ====================

class DialogState(str, Enum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"
    CLOSING = "closing"


class DialogStateError(Exception):
    pass


class Dialog:
    """
    確認/通知對話框

    closed -> opening -> open -> closing -> closed
    確認時先等關閉動畫結束，再執行待處理的動作。
    """

    def __init__(
        self,
        scroll_lock: ScrollLock,
        title: str,
        message: str,
        action: Optional[DialogAction] = None,
        kind: str = "confirm",
        confirm_text: str = "確定",
        cancel_text: Optional[str] = "取消",
        transition_ms: int = 200,
        key: Optional[str] = None,
    ):
        self.id = uuid.uuid4().hex[:12]
        self.key = key
        self.title = title
        self.message = message
        self.kind = kind
        self.confirm_text = confirm_text
        self.cancel_text = cancel_text
        self.state = DialogState.CLOSED
        self.outcome: Optional[str] = None

        self._action = action
        self._scroll_lock = scroll_lock
        self._handle: Optional[ScrollLockHandle] = None
        self._transition_ms = transition_ms
        self._opened_once = False

    def _expect(self, *states: DialogState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise DialogStateError(f"dialog {self.id} is {self.state.value}, expected {allowed}")

    def open(self) -> None:
        self._expect(DialogState.CLOSED)
        if self._opened_once:
            raise DialogStateError(f"dialog {self.id} was already used")
        self._opened_once = True
        self.state = DialogState.OPENING
        self._handle = self._scroll_lock.acquire()

    def shown(self) -> None:
        self._expect(DialogState.OPENING)
        self.state = DialogState.OPEN

    async def _close(self, outcome: str) -> None:
        self._expect(DialogState.OPEN)
        self.state = DialogState.CLOSING
        self.outcome = outcome
        try:
            if self._transition_ms > 0:
                await asyncio.sleep(self._transition_ms / 1000)
        finally:
            self.state = DialogState.CLOSED
            if self._handle is not None:
                self._handle.release()

    async def confirm(self) -> Any:
        await self._close("confirmed")
        if self._action is not None:
            return await self._action()
        return None

    async def cancel(self) -> None:
        await self._close("cancelled")

    async def backdrop_click(self) -> None:
        # 點背景 = 取消
        await self.cancel()

    def dismiss(self) -> None:
        """不等動畫直接關閉 (登出等整批清除時使用)"""
        if self.state != DialogState.CLOSED:
            self.state = DialogState.CLOSED
            self.outcome = self.outcome or "dismissed"
            if self._handle is not None:
                self._handle.release()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dialog_id": self.id,
            "kind": self.kind,
            "title": self.title,
            "message": self.message,
            "confirm_text": self.confirm_text,
            "cancel_text": self.cancel_text,
            "state": self.state.value,
        }


class DialogRegistry:
    """session 內開啟中的對話框"""

    def __init__(self, scroll_lock: ScrollLock, transition_ms: int = 200):
        self.scroll_lock = scroll_lock
        self.transition_ms = transition_ms
        self._dialogs: Dict[str, Dialog] = {}

    def open(
        self,
        title: str,
        message: str,
        action: Optional[DialogAction] = None,
        kind: str = "confirm",
        confirm_text: str = "確定",
        cancel_text: Optional[str] = "取消",
        key: Optional[str] = None,
    ) -> Dialog:
        """
        開啟對話框並鎖住捲動

        key 相同且尚未關閉的對話框直接沿用，重複點擊不會疊出第二個對話框
        (也不會多佔一次捲動鎖)
        """
        if key is not None:
            existing = self.find(key)
            if existing is not None:
                return existing

        dialog = Dialog(
            self.scroll_lock,
            title,
            message,
            action=action,
            kind=kind,
            confirm_text=confirm_text,
            cancel_text=cancel_text,
            transition_ms=self.transition_ms,
            key=key,
        )
        dialog.open()
        dialog.shown()
        self._dialogs[dialog.id] = dialog
        return dialog

    def notify(self, title: str, message: str) -> Dialog:
        return self.open(title, message, kind="notification", cancel_text=None)

    def get(self, dialog_id: str) -> Dialog:
        return self._dialogs[dialog_id]

    def find(self, key: str) -> Optional[Dialog]:
        for dialog in self._dialogs.values():
            if dialog.key == key and dialog.state == DialogState.OPEN:
                return dialog
        return None

    def active(self) -> List[Dialog]:
        return [d for d in self._dialogs.values() if d.state != DialogState.CLOSED]

    async def resolve(self, dialog_id: str, how: str) -> Any:
        dialog = self.get(dialog_id)
        try:
            if how == "confirm":
                return await dialog.confirm()
            if how == "backdrop":
                return await dialog.backdrop_click()
            return await dialog.cancel()
        finally:
            if dialog.state == DialogState.CLOSED:
                self._dialogs.pop(dialog_id, None)

    def clear(self) -> None:
        for dialog in self._dialogs.values():
            dialog.dismiss()
        self._dialogs.clear()
