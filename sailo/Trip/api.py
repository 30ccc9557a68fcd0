from typing import Any, Dict, Optional

from core.backend import BackendClient

TRIP_PREFIX = "/api/trip-management/trips"
UPLOAD_PREFIX = "/api/trip-upload"


# ==================== 行程 ====================

async def create_trip(backend: BackendClient, session, payload: Dict[str, Any]) -> Dict[str, Any]:
    """建立行程 -> data: {trip_id, days_created}"""
    return await backend.post(TRIP_PREFIX, session, json=payload)


async def get_user_trips(backend: BackendClient, session, user_id: int, sort: str = "created_at") -> Dict[str, Any]:
    return await backend.get(f"{TRIP_PREFIX}/user/{user_id}", session, params={"sort": sort})


async def get_trip_detail(backend: BackendClient, session, trip_id: int) -> Dict[str, Any]:
    """data: {trip, days: [{trip_day_id, day_number, date, items}]}"""
    return await backend.get(f"{TRIP_PREFIX}/{trip_id}", session)


async def update_trip(backend: BackendClient, session, trip_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    return await backend.put(f"{TRIP_PREFIX}/{trip_id}", session, json=payload)


async def delete_trip(backend: BackendClient, session, trip_id: int) -> Dict[str, Any]:
    return await backend.delete(f"{TRIP_PREFIX}/{trip_id}", session)


async def copy_trip(backend: BackendClient, session, trip_id: int, user_id: int) -> Dict[str, Any]:
    """複製行程 -> data: {trip_id} (新行程)"""
    return await backend.post(f"{TRIP_PREFIX}/{trip_id}/copy", session, json={"user_id": user_id})


async def search_trips(
    backend: BackendClient,
    session,
    keyword: Optional[str] = None,
    location_id: Optional[int] = None,
    is_public: Optional[bool] = None,
) -> Dict[str, Any]:
    params = {
        "keyword": keyword or None,
        "location_id": location_id or None,
        "is_public": None if is_public is None else ("1" if is_public else "0"),
    }
    return await backend.get(f"{TRIP_PREFIX}/search", session, params=params)


async def get_public_trips(
    backend: BackendClient, session, location_id: Optional[int] = None, sort: str = "created_at"
) -> Dict[str, Any]:
    return await backend.get(
        f"{TRIP_PREFIX}/public", session, params={"location_id": location_id or None, "sort": sort}
    )


# ==================== 行程景點 ====================

async def add_place_to_day(backend: BackendClient, session, trip_day_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    return await backend.post(f"{TRIP_PREFIX}/days/{trip_day_id}/items", session, json=payload)


async def remove_place_from_trip(backend: BackendClient, session, trip_item_id: int) -> Dict[str, Any]:
    return await backend.delete(f"{TRIP_PREFIX}/items/{trip_item_id}", session)


async def update_place_order(backend: BackendClient, session, trip_item_id: int, sort_order: int) -> Dict[str, Any]:
    return await backend.put(
        f"{TRIP_PREFIX}/items/{trip_item_id}/order", session, json={"sort_order": sort_order}
    )


# ==================== 封面上傳 ====================

async def upload_trip_cover(
    backend: BackendClient, session, filename: str, content: bytes, content_type: str
) -> Dict[str, Any]:
    return await backend.post(
        f"{UPLOAD_PREFIX}/cover", session, files={"cover_image": (filename, content, content_type)}
    )


async def delete_uploaded_image(backend: BackendClient, session, file_id: str) -> Dict[str, Any]:
    return await backend.delete(f"{UPLOAD_PREFIX}/{file_id}", session)
