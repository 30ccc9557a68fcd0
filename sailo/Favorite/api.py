from typing import Any, Dict, Optional

from core.backend import BackendClient

TRIP_FAVORITE_PREFIX = "/api/trip-favorites"
PLACE_FAVORITE_PREFIX = "/api/favorites"


# ==================== 行程收藏 ====================

async def add_trip_favorite(backend: BackendClient, session, user_id: int, trip_id: int) -> Dict[str, Any]:
    """已經收藏過 (訊息含「已收藏」) 也當成成功"""
    return await backend.post(
        TRIP_FAVORITE_PREFIX,
        session,
        json={"user_id": user_id, "trip_id": trip_id},
        tolerate_favorited=True,
    )


async def remove_trip_favorite(backend: BackendClient, session, user_id: int, trip_id: int) -> Dict[str, Any]:
    return await backend.delete(f"{TRIP_FAVORITE_PREFIX}/{user_id}/{trip_id}", session)


async def get_trip_favorites(backend: BackendClient, session, user_id: int) -> Dict[str, Any]:
    return await backend.get(f"{TRIP_FAVORITE_PREFIX}/user/{user_id}", session)


# ==================== 景點收藏清單 ====================

async def get_place_lists(backend: BackendClient, session, user_id: int) -> Dict[str, Any]:
    """{success, favorites: [{list_id, name, ...}]}"""
    return await backend.get(f"{PLACE_FAVORITE_PREFIX}/{user_id}", session)


async def get_list_places(backend: BackendClient, session, list_id: int) -> Dict[str, Any]:
    """{success, places: [...]}"""
    return await backend.get(f"{PLACE_FAVORITE_PREFIX}/list/{list_id}", session)


async def toggle_place(backend: BackendClient, session, list_id: int, place_id: int) -> Dict[str, Any]:
    """{success, action: "added" | "removed"}"""
    return await backend.post(
        f"{PLACE_FAVORITE_PREFIX}/toggle", session, json={"listId": list_id, "placeId": place_id}
    )


async def create_list(
    backend: BackendClient, session, user_id: int, name: str, description: Optional[str] = None
) -> Dict[str, Any]:
    return await backend.post(
        f"{PLACE_FAVORITE_PREFIX}/list/create",
        session,
        json={"userId": user_id, "name": name, "description": description},
    )


async def delete_list(backend: BackendClient, session, user_id: int, list_id: int) -> Dict[str, Any]:
    return await backend.delete(f"{PLACE_FAVORITE_PREFIX}/{user_id}/list/{list_id}", session)
