from fastapi import APIRouter, Depends, status

from core.backend import BackendClient, provide_backend
from core.session import SessionState, provide_session
from User.user_router import get_current_user

from Favorite import service
from Favorite.dto import PlaceToggleRequest, CreateListRequest

router = APIRouter(
    prefix="/favorites",
    tags=["favorites"],
    dependencies=[Depends(get_current_user)],
)


# ==================== 行程收藏 ====================

@router.get("/trips")
async def get_trip_favorites(
    refresh: bool = False,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    if refresh:
        session.favorites.trips_loaded = False
    await service.ensure_trip_index(backend, session)
    return {"success": True, "trip_ids": sorted(session.favorites.trip_ids)}


@router.post("/trips/{trip_id}/toggle")
async def toggle_trip_favorite(
    trip_id: int,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """未收藏就加入；已收藏則回傳確認對話框"""
    return await service.toggle_trip(backend, session, trip_id)


@router.delete("/trips/{trip_id}")
async def remove_trip_favorite(
    trip_id: int,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    dialog = await service.remove_trip(backend, session, trip_id)
    return {"requires_confirmation": True, "dialog": dialog.to_dict()}


# ==================== 景點收藏清單 ====================

@router.get("/places/{place_id}")
async def get_place_lists(
    place_id: int,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """收藏清單 (每個清單標示是否已包含此景點)"""
    return await service.lists_for_place(backend, session, place_id)


@router.post("/places/toggle")
async def toggle_place_favorite(
    body: PlaceToggleRequest,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    return await service.toggle_place(backend, session, body.list_id, body.place_id)


@router.post("/lists", status_code=status.HTTP_201_CREATED)
async def create_list(
    body: CreateListRequest,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    return await service.create_list(backend, session, body.name, body.description)


@router.delete("/lists/{list_id}")
async def delete_list(
    list_id: int,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    dialog = service.open_delete_list_dialog(backend, session, list_id)
    return {"requires_confirmation": True, "dialog": dialog.to_dict()}
