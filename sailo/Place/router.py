# Place/router.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from core.backend import BackendClient, provide_backend
from core.config import get_config
from core.exceptions import BackendError
from core.images import read_image_upload
from core.session import SessionState, provide_session
from User.user_router import get_optional_user

from Place import api
from Place.dto import PlaceSummary
from Place.search import PLACE_CATEGORIES

logger = logging.getLogger(__name__)

SEARCH_FAILED_MESSAGE = "搜尋失敗,請稍後再試"

router = APIRouter(
    prefix="/places",
    tags=["places"]
)


def _summarize(place: dict) -> dict:
    summary = PlaceSummary(
        place_id=place.get("place_id") or place.get("id"),
        name=place.get("name") or "",
        category=place.get("category"),
        rating=place.get("rating"),
        cover_image=place.get("cover_image"),
        location_name=place.get("location_name"),
    )
    return {**place, "selection": summary.to_selection().model_dump()}


def _gallery_item(image: dict) -> dict:
    return {
        "id": image.get("media_id") or image.get("id") or image.get("image_id"),
        "url": image.get("image_url") or image.get("url"),
    }


# ==================== 搜尋 ====================

@router.get("/search")
async def search_places(
    keyword: Optional[str] = Query(None),
    location_id: Optional[int] = Query(None),
    category: Optional[str] = Query(None),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """景點搜尋 (不分頁；只保留最新一次搜尋的結果)"""
    keyword = (keyword or "").strip() or None
    if category and category not in PLACE_CATEGORIES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"未知的類別: {category}")

    state = session.place_search
    token = state.begin({"keyword": keyword, "location_id": location_id, "category": category})
    try:
        data = await api.search_places(backend, session, keyword, location_id, category)
    except BackendError as e:
        state.fail(token)
        logger.error(f"景點搜尋失敗: {e.message}")
        raise BackendError(status.HTTP_502_BAD_GATEWAY, SEARCH_FAILED_MESSAGE) from e

    places = data.get("data") if data.get("success") and data.get("data") else []
    summaries = [_summarize(p) for p in places if (p.get("place_id") or p.get("id")) is not None]
    if not state.finish(token, summaries):
        logger.info("景點搜尋回應已過期，捨棄")
    return state.to_dict()


@router.get("/locations")
async def get_locations(
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    data = await api.get_locations(backend, session)
    return {"success": True, "locations": data.get("data") or []}


# ==================== 相簿 ====================

@router.get("/{place_id}/gallery")
async def get_gallery(
    place_id: int,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    data = await api.get_gallery(backend, session, place_id)
    images = data.get("images") if data.get("success") else None
    return {"success": True, "images": [_gallery_item(img) for img in images or []]}


@router.post("/{place_id}/gallery", status_code=status.HTTP_201_CREATED)
async def upload_gallery_image(
    place_id: int,
    image: UploadFile = File(...),
    current_user: Optional[dict] = Depends(get_optional_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    if current_user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="請先登入才能上傳照片")

    filename, contents, content_type = await read_image_upload(image, get_config().max_upload_bytes)
    data = await api.upload_gallery_image(
        backend, session, place_id, session.user_id, filename, contents, content_type
    )
    if not data.get("success") or not data.get("url"):
        raise BackendError(status.HTTP_502_BAD_GATEWAY, f"上傳失敗：{data.get('message') or '未知錯誤'}")

    return {
        "success": True,
        "message": "圖片上傳成功！",
        "image": {"id": data.get("media_id") or data.get("image_id") or data.get("id"), "url": data["url"]},
    }


@router.delete("/gallery/{image_id}")
async def delete_gallery_image(
    image_id: int,
    place_id: Optional[int] = Query(None),
    current_user: Optional[dict] = Depends(get_optional_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """刪除前先開確認對話框"""
    if current_user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="請先登入才能刪除照片")

    async def delete_image():
        data = await api.delete_gallery_image(backend, session, image_id, session.user_id, place_id)
        return {"success": bool(data.get("success")), "message": data.get("message") or "圖片已刪除", "image_id": image_id}

    dialog = session.dialogs.open(
        "刪除圖片", "確定要刪除這張圖片嗎？", action=delete_image, confirm_text="刪除", key=f"gallery:{image_id}"
    )
    return {"requires_confirmation": True, "dialog": dialog.to_dict()}


# ==================== 景點 ====================

@router.get("/{place_id}")
async def get_place(
    place_id: int,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    data = await api.get_place_detail(backend, session, place_id)
    place = data.get("data")
    if not place:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="找不到景點資料")
    return {"success": True, "place": place}
