import asyncio
import logging
from typing import Any, Dict, Optional

from core.backend import BackendClient
from core.session import SessionState
from core.ui import Dialog

from Favorite import api

logger = logging.getLogger(__name__)

FAVORITE_ADDED = "收藏成功!"
FAVORITE_REMOVED = "已取消收藏"


# ==================== 行程收藏 ====================

async def ensure_trip_index(backend: BackendClient, session: SessionState) -> None:
    """第一次使用時才向後端讀取收藏的行程"""
    index = session.favorites
    if index.trips_loaded:
        return
    data = await api.get_trip_favorites(backend, session, session.user_id)
    index.load_trips(data.get("data") or [])
    logger.info(f"行程收藏已載入: user={session.user_id} count={len(index.trip_ids)}")


def _open_unfavorite_dialog(backend: BackendClient, session: SessionState, trip_id: int) -> Dialog:
    async def unfavorite():
        await api.remove_trip_favorite(backend, session, session.user_id, trip_id)
        session.favorites.mark_trip(trip_id, False)
        return {"success": True, "favorited": False, "message": FAVORITE_REMOVED, "trip_id": trip_id}

    return session.dialogs.open(
        "取消收藏",
        "確定要取消收藏這個行程嗎?",
        action=unfavorite,
        confirm_text="取消收藏",
        key=f"trip-favorite:{trip_id}",
    )


async def toggle_trip(backend: BackendClient, session: SessionState, trip_id: int) -> Dict[str, Any]:
    """
    未收藏 -> 直接加入收藏
    已收藏 -> 開確認對話框，確認後才移除
    """
    await ensure_trip_index(backend, session)

    if session.favorites.is_trip_favorited(trip_id):
        dialog = _open_unfavorite_dialog(backend, session, trip_id)
        return {"requires_confirmation": True, "dialog": dialog.to_dict()}

    await api.add_trip_favorite(backend, session, session.user_id, trip_id)
    session.favorites.mark_trip(trip_id, True)
    return {"success": True, "favorited": True, "message": FAVORITE_ADDED, "trip_id": trip_id}


async def remove_trip(backend: BackendClient, session: SessionState, trip_id: int) -> Dialog:
    await ensure_trip_index(backend, session)
    return _open_unfavorite_dialog(backend, session, trip_id)


# ==================== 景點收藏清單 ====================

async def ensure_place_index(backend: BackendClient, session: SessionState) -> None:
    index = session.favorites
    if index.places_loaded:
        return

    data = await api.get_place_lists(backend, session, session.user_id)
    lists = data.get("favorites") if data.get("success") else None
    lists = lists or []

    results = await asyncio.gather(
        *(api.get_list_places(backend, session, meta["list_id"]) for meta in lists)
    )
    for meta, places_data in zip(lists, results):
        places = places_data.get("places") if places_data.get("success") else None
        index.load_place_list(meta, places or [])
    index.finish_place_loading()


async def lists_for_place(backend: BackendClient, session: SessionState, place_id: int) -> Dict[str, Any]:
    await ensure_place_index(backend, session)
    index = session.favorites
    return {
        "place_id": place_id,
        "is_favorited": index.is_place_favorited(place_id),
        "lists": index.lists_for_place(place_id),
    }


async def toggle_place(
    backend: BackendClient, session: SessionState, list_id: int, place_id: int
) -> Dict[str, Any]:
    await ensure_place_index(backend, session)
    data = await api.toggle_place(backend, session, list_id, place_id)
    if not data.get("success"):
        return {"success": False, "message": data.get("message") or "操作失敗"}

    action = data.get("action")
    if action in ("added", "removed"):
        session.favorites.mark_place(list_id, place_id, action == "added")
    else:
        # 後端沒有說明結果時，下次重新讀取
        session.favorites.invalidate_places()

    return {
        "success": True,
        "action": action,
        "is_favorited": session.favorites.is_place_favorited(place_id),
    }


async def create_list(
    backend: BackendClient, session: SessionState, name: str, description: Optional[str] = None
) -> Dict[str, Any]:
    data = await api.create_list(backend, session, session.user_id, name.strip(), description)
    if data.get("success"):
        session.favorites.invalidate_places()
    return data


def open_delete_list_dialog(backend: BackendClient, session: SessionState, list_id: int) -> Dialog:
    async def delete():
        data = await api.delete_list(backend, session, session.user_id, list_id)
        if data.get("success"):
            session.favorites.drop_list(list_id)
        return {"success": bool(data.get("success")), "message": data.get("message"), "list_id": list_id}

    return session.dialogs.open(
        "刪除清單",
        "確定要刪除這個收藏清單嗎？",
        action=delete,
        confirm_text="刪除",
        key=f"favorite-list:{list_id}",
    )
