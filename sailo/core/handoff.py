from typing import Any, Dict

# 頁面之間一次性傳遞的值 (取代瀏覽器 sessionStorage 旗標)
#   open_trip_id       : 行程複製/開啟後，行程頁第一次載入時要打開的行程
#   from_post_create   : 從發文頁跳轉過來，返回鍵要回到部落格首頁
#   following_page_tab : 追蹤頁要預設開啟的分頁
HANDOFF_TYPES = {
    "open_trip_id": int,
    "from_post_create": bool,
    "following_page_tab": str,
}

FOLLOWING_TABS = ("followers", "following")


class HandoffStore:
    """單次使用的跨頁面交接值 (讀取即刪除)"""

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def _check(self, key: str, value: Any) -> None:
        expected = HANDOFF_TYPES.get(key)
        if expected is None:
            raise KeyError(f"unknown handoff key: {key}")
        # bool 是 int 的子類別，要另外擋
        if expected is int and isinstance(value, bool):
            raise TypeError(f"{key} must be int")
        if not isinstance(value, expected):
            raise TypeError(f"{key} must be {expected.__name__}")
        if key == "following_page_tab" and value not in FOLLOWING_TABS:
            raise ValueError(f"following_page_tab must be one of {FOLLOWING_TABS}")

    def put(self, key: str, value: Any) -> None:
        self._check(key, value)
        self._values[key] = value

    def peek(self, key: str, default: Any = None) -> Any:
        if key not in HANDOFF_TYPES:
            raise KeyError(f"unknown handoff key: {key}")
        return self._values.get(key, default)

    def take(self, key: str, default: Any = None) -> Any:
        if key not in HANDOFF_TYPES:
            raise KeyError(f"unknown handoff key: {key}")
        return self._values.pop(key, default)

    def pending(self) -> Dict[str, Any]:
        return dict(self._values)

    def clear(self) -> None:
        self._values.clear()
