from typing import Any, Dict, List, Optional

from core.pagination import RequestSequencer

PLACE_CATEGORIES = ("景點", "餐廳", "住宿")


class PlaceSearchState:
    """景點搜尋彈窗的結果 (只保留最新一次搜尋的回應)"""

    def __init__(self):
        self.sequencer = RequestSequencer()
        self.results: List[Dict[str, Any]] = []
        self.filters: Dict[str, Optional[str]] = {}
        self.searched = False
        self.loading = False

    def begin(self, filters: Dict[str, Optional[str]]) -> int:
        self.loading = True
        self.searched = True
        self.filters = filters
        return self.sequencer.issue()

    def finish(self, token: int, results: List[Dict[str, Any]]) -> bool:
        if not self.sequencer.is_current(token):
            return False
        self.results = results
        self.loading = False
        return True

    def fail(self, token: int) -> None:
        if self.sequencer.is_current(token):
            self.results = []
            self.loading = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "searched": self.searched,
            "loading": self.loading,
            "filters": self.filters,
            "places": self.results,
            "total": len(self.results),
        }
