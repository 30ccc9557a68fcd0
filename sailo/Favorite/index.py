from typing import Any, Dict, Iterable, List, Set


class FavoritesIndex:
    """
    使用者收藏的記憶體索引

    只在第一次使用或明確的新增/移除之後更新，
    判斷「是否已收藏」時不必再把所有清單重新掃一遍。
    """

    def __init__(self):
        self.trip_ids: Set[int] = set()
        self.trips_loaded = False
        self.place_lists: Dict[int, Set[int]] = {}
        self.list_meta: Dict[int, Dict[str, Any]] = {}
        self.places_loaded = False

    # ==================== 行程收藏 ====================

    def load_trips(self, favorites: Iterable[Dict[str, Any]]) -> None:
        self.trip_ids = {int(f["trip_id"]) for f in favorites if f.get("trip_id") is not None}
        self.trips_loaded = True

    def is_trip_favorited(self, trip_id: int) -> bool:
        return int(trip_id) in self.trip_ids

    def mark_trip(self, trip_id: int, favorited: bool) -> None:
        if favorited:
            self.trip_ids.add(int(trip_id))
        else:
            self.trip_ids.discard(int(trip_id))

    # ==================== 景點收藏清單 ====================

    def load_place_list(self, meta: Dict[str, Any], places: Iterable[Dict[str, Any]]) -> None:
        list_id = int(meta["list_id"])
        self.list_meta[list_id] = meta
        self.place_lists[list_id] = {int(p["place_id"]) for p in places if p.get("place_id") is not None}

    def finish_place_loading(self) -> None:
        self.places_loaded = True

    def is_place_favorited(self, place_id: int) -> bool:
        place_id = int(place_id)
        return any(place_id in ids for ids in self.place_lists.values())

    def lists_for_place(self, place_id: int) -> List[Dict[str, Any]]:
        place_id = int(place_id)
        return [
            {**meta, "checked": place_id in self.place_lists.get(list_id, set())}
            for list_id, meta in self.list_meta.items()
        ]

    def mark_place(self, list_id: int, place_id: int, favorited: bool) -> None:
        ids = self.place_lists.setdefault(int(list_id), set())
        if favorited:
            ids.add(int(place_id))
        else:
            ids.discard(int(place_id))

    def drop_list(self, list_id: int) -> None:
        self.place_lists.pop(int(list_id), None)
        self.list_meta.pop(int(list_id), None)

    def invalidate_places(self) -> None:
        self.place_lists.clear()
        self.list_meta.clear()
        self.places_loaded = False

    def clear(self) -> None:
        self.trip_ids.clear()
        self.trips_loaded = False
        self.invalidate_places()
