import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# page -> (items, pagination)   pagination: {"page": int, "totalPages": int, ...}
PageFetcher = Callable[[int], Awaitable[Tuple[List[Dict[str, Any]], Dict[str, Any]]]]


class RequestSequencer:
    """單調遞增的請求序號，回應的序號不是最新的就丟掉"""

    def __init__(self):
        self._current = 0

    def issue(self) -> int:
        self._current += 1
        return self._current

    def is_current(self, token: int) -> bool:
        return token == self._current

    def invalidate(self) -> None:
        self._current += 1


class Pager:
    """
    無限捲動分頁狀態

    - load_more() 在 loading_more / loading / 沒有下一頁 時直接返回，
      旗標在第一個 await 之前就設好，同一輪事件迴圈內的重複觸發只會送出一次請求
    - reset() 之後，先前還在路上的回應一律丟棄
    """

    def __init__(self, fetch_page: PageFetcher):
        self._fetch_page = fetch_page
        self._sequencer = RequestSequencer()
        self.items: List[Dict[str, Any]] = []
        self.page = 0
        self.has_more = True
        self.loading = False
        self.loading_more = False
        self.pagination: Optional[Dict[str, Any]] = None

    def reset(self, fetch_page: Optional[PageFetcher] = None) -> None:
        self._sequencer.invalidate()
        if fetch_page is not None:
            self._fetch_page = fetch_page
        self.items = []
        self.page = 0
        self.has_more = True
        self.loading = False
        self.loading_more = False
        self.pagination = None

    def _apply(self, page: int, items: List[Dict[str, Any]], pagination: Dict[str, Any], append: bool) -> None:
        self.items = self.items + list(items) if append else list(items)
        self.page = page
        self.pagination = pagination
        self.has_more = pagination.get("page", page) < pagination.get("totalPages", 0)

    async def load_first(self) -> bool:
        token = self._sequencer.issue()
        self.loading = True
        self.items = []
        try:
            items, pagination = await self._fetch_page(1)
        except Exception:
            if self._sequencer.is_current(token):
                self.items = []
                self.has_more = False
            raise
        finally:
            if self._sequencer.is_current(token):
                self.loading = False

        if not self._sequencer.is_current(token):
            logger.info("第 1 頁回應已過期，捨棄")
            return False

        self._apply(1, items, pagination, append=False)
        return True

    async def load_more(self) -> bool:
        if self.loading_more or not self.has_more or self.loading:
            return False

        self.loading_more = True
        token = self._sequencer.issue()
        next_page = self.page + 1
        try:
            items, pagination = await self._fetch_page(next_page)
        finally:
            if self._sequencer.is_current(token):
                self.loading_more = False

        if not self._sequencer.is_current(token):
            logger.info(f"第 {next_page} 頁回應已過期，捨棄")
            return False

        self._apply(next_page, items, pagination, append=True)
        return True

    def snapshot(self) -> Dict[str, Any]:
        return {
            "items": self.items,
            "page": self.page,
            "has_more": self.has_more,
            "loading": self.loading,
            "loading_more": self.loading_more,
            "pagination": self.pagination,
        }
