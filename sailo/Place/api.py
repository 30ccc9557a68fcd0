from typing import Any, Dict, Optional

from core.backend import BackendClient


async def search_places(
    backend: BackendClient,
    session,
    keyword: Optional[str] = None,
    location_id: Optional[int] = None,
    category: Optional[str] = None,
) -> Dict[str, Any]:
    """空的條件不送出"""
    params = {
        "keyword": keyword or None,
        "location_id": location_id or None,
        "category": category or None,
    }
    return await backend.get("/api/places", session, params=params)


async def get_locations(backend: BackendClient, session) -> Dict[str, Any]:
    return await backend.get("/api/locations", session)


async def get_place_detail(backend: BackendClient, session, place_id: int) -> Dict[str, Any]:
    return await backend.get(f"/api/places/with-location/{place_id}", session)


async def get_gallery(backend: BackendClient, session, place_id: int) -> Dict[str, Any]:
    return await backend.get(f"/api/places/{place_id}/gallery", session)


async def upload_gallery_image(
    backend: BackendClient,
    session,
    place_id: int,
    user_id: int,
    filename: str,
    content: bytes,
    content_type: str,
) -> Dict[str, Any]:
    return await backend.post(
        "/api/places/gallery/upload",
        session,
        data={"place_id": str(place_id), "user_id": str(user_id)},
        files={"image": (filename, content, content_type)},
    )


async def delete_gallery_image(
    backend: BackendClient, session, image_id: int, user_id: int, place_id: Optional[int] = None
) -> Dict[str, Any]:
    return await backend.delete(
        f"/api/places/gallery/{image_id}",
        session,
        json={"user_id": user_id, "place_id": place_id},
    )
