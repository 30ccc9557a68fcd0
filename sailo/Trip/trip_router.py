import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status

from core.backend import BackendClient, provide_backend
from core.config import get_config
from core.images import read_image_upload
from core.session import SessionState, provide_session
from User.user_router import get_current_user

from Trip.dto import (
    TripForm, TripSort, AddPlaceRequest, ItemOrderUpdate, DayReorder, OpenTripRequest,
    TripMessageResponse, TripDetailResponse, DialogResponse,
)
from Trip import api, composer, copier, itinerary

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/trips",
    tags=["trips"]
)


# ==================== Trip Endpoints ====================

@router.post("", response_model=TripMessageResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    form: TripForm,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """行程建立 (後端自動產生每一天)"""
    return await composer.submit_trip(backend, session, form)


@router.get("")
async def get_my_trips(
    sort: TripSort = Query("created_at"),
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """我的行程列表"""
    data = await api.get_user_trips(backend, session, session.user_id, sort)
    return {"success": True, "trips": data.get("data") or []}


@router.get("/public")
async def get_public_trips(
    location_id: Optional[int] = Query(None),
    sort: TripSort = Query("created_at"),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    data = await api.get_public_trips(backend, session, location_id, sort)
    return {"success": True, "trips": data.get("data") or []}


@router.get("/search")
async def search_trips(
    keyword: Optional[str] = Query(None),
    location_id: Optional[int] = Query(None),
    is_public: Optional[bool] = Query(None),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    data = await api.search_trips(backend, session, (keyword or "").strip() or None, location_id, is_public)
    return {"success": True, "trips": data.get("data") or []}


@router.post("/cover", status_code=status.HTTP_201_CREATED)
async def upload_cover(
    cover_image: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """封面圖上傳 (Pillow 檢查後轉送)"""
    filename, contents, content_type = await read_image_upload(cover_image, get_config().max_upload_bytes)
    data = await api.upload_trip_cover(backend, session, filename, contents, content_type)
    return {"success": True, "data": data.get("data")}


@router.delete("/cover/{file_id}")
async def delete_cover(
    file_id: str,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    data = await api.delete_uploaded_image(backend, session, file_id)
    return {"success": bool(data.get("success")), "message": data.get("message")}


@router.get("/composer/draft")
async def get_composer_draft(session: SessionState = Depends(provide_session)):
    """上次送出失敗的表單 (重試用)"""
    return {"draft": session.trip_draft}


@router.get("/composer/days")
async def preview_days(start_date: Optional[str] = Query(None), end_date: Optional[str] = Query(None)):
    """表單上「共 N 天」的預覽"""
    days = composer.calculate_days(composer.parse_date(start_date), composer.parse_date(end_date))
    return {"days": days}


# ==================== 行程頁 / 加入行程抽屜 ====================

@router.get("/landing")
async def trip_landing(
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """行程頁第一次載入: 有 open_trip_id 交接值就直接打開該行程"""
    return await itinerary.landing(backend, session)


@router.get("/drawer")
async def trip_drawer(
    place_id: Optional[int] = Query(None),
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    return await itinerary.drawer_trips(backend, session, place_id)


# ==================== Trip Item Endpoints ====================

@router.post("/days/{trip_day_id}/items", status_code=status.HTTP_201_CREATED)
async def add_place_to_day(
    trip_day_id: int,
    body: AddPlaceRequest,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    return await itinerary.add_place(backend, session, trip_day_id, body)


@router.put("/items/{trip_item_id}/order")
async def update_item_order(
    trip_item_id: int,
    body: ItemOrderUpdate,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    data = await itinerary.update_item_order(backend, session, trip_item_id, body.sort_order)
    return {"success": bool(data.get("success", True)), "sort_order": body.sort_order}


@router.delete("/{trip_id}/items/{trip_item_id}", response_model=DialogResponse)
async def remove_place(
    trip_id: int,
    trip_item_id: int,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """移除前先開確認對話框 (確認後刪除並重新讀取整份行程)"""
    dialog = itinerary.open_remove_dialog(backend, session, trip_id, trip_item_id)
    return DialogResponse(dialog=dialog.to_dict())


@router.put("/{trip_id}/days/{trip_day_id}/order", response_model=TripDetailResponse)
async def reorder_day(
    trip_id: int,
    trip_day_id: int,
    body: DayReorder,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    return await itinerary.reorder_day(backend, session, trip_id, trip_day_id, body.item_ids)


@router.get("/{trip_id}/days")
async def list_trip_days(
    trip_id: int,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    return await itinerary.list_days(backend, session, trip_id)


# ==================== 複製 / 開啟 ====================

@router.post("/{trip_id}/open", response_model=TripMessageResponse)
async def open_trip(
    trip_id: int,
    body: OpenTripRequest,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """自己的行程直接開啟，別人的行程先複製"""
    return await copier.open_or_copy(backend, session, trip_id, body.owner_id)


@router.post("/{trip_id}/copy", response_model=TripMessageResponse)
async def copy_trip(
    trip_id: int,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    return await copier.copy_trip(backend, session, trip_id)


# ==================== 單一行程 ====================

@router.get("/{trip_id}", response_model=TripDetailResponse)
async def get_trip(
    trip_id: int,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    return await itinerary.load_trip_detail(backend, session, trip_id)


@router.put("/{trip_id}", response_model=TripMessageResponse)
async def update_trip(
    trip_id: int,
    form: TripForm,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    return await composer.submit_trip(backend, session, form, trip_id=trip_id)


@router.delete("/{trip_id}", response_model=DialogResponse)
async def delete_trip(
    trip_id: int,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """刪除前先開確認對話框"""
    async def delete():
        data = await api.delete_trip(backend, session, trip_id)
        logger.info(f"行程已刪除: trip_id={trip_id}")
        return {"success": bool(data.get("success", True)), "message": "行程已刪除", "trip_id": trip_id}

    dialog = session.dialogs.open(
        "刪除行程",
        "確定要刪除這個行程嗎？此操作無法復原。",
        action=delete,
        confirm_text="刪除",
        key=f"trip:{trip_id}",
    )
    return DialogResponse(dialog=dialog.to_dict())
