import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status

from core.backend import BackendClient
from core.exceptions import BackendError, FormValidationError
from core.session import SessionState
from core.ui import Dialog

from Trip import api
from Trip.dto import AddPlaceRequest

logger = logging.getLogger(__name__)


# ==================== Helper Functions ====================

def _sort_key(item: Dict[str, Any]):
    order = item.get("sort_order")
    return (order is None, order or 0, item.get("trip_item_id") or 0)


def normalize_detail(data: Dict[str, Any]) -> Dict[str, Any]:
    """後端的行程詳細 -> {trip, days}，每天的 items 依 sort_order 排序"""
    days = []
    for day in data.get("days") or []:
        items = sorted(day.get("items") or [], key=_sort_key)
        days.append({**day, "items": items})
    days.sort(key=lambda d: d.get("day_number") or 0)
    return {"trip": data.get("trip") or {}, "days": days}


def find_day(detail: Dict[str, Any], trip_day_id: int) -> Optional[Dict[str, Any]]:
    for day in detail["days"]:
        if day.get("trip_day_id") == trip_day_id:
            return day
    return None


async def load_trip_detail(backend: BackendClient, session: SessionState, trip_id: int) -> Dict[str, Any]:
    response = await api.get_trip_detail(backend, session, trip_id)
    data = response.get("data")
    if not response.get("success", True) or not data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="找不到行程資料")
    return normalize_detail(data)


# ==================== 新增景點 ====================

async def add_place(
    backend: BackendClient,
    session: SessionState,
    trip_day_id: int,
    req: AddPlaceRequest,
) -> Dict[str, Any]:
    """
    把選好的景點加到某一天的最後面

    sort_order = 該天目前的景點數 + 1 (以剛讀取的行程詳細為準)
    """
    detail = await load_trip_detail(backend, session, req.trip_id)
    day = find_day(detail, trip_day_id)
    if day is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="請選擇日期")

    sort_order = len(day["items"]) + 1
    payload = {
        "place_id": req.place_id,
        "type": req.place_category,
        "note": (req.note or "").strip() or None,
        "start_time": req.start_time or None,
        "end_time": req.end_time or None,
        "sort_order": sort_order,
    }
    response = await api.add_place_to_day(backend, session, trip_day_id, payload)

    trip_name = detail["trip"].get("trip_name", "")
    logger.info(f"景點加入行程: trip={req.trip_id} day={trip_day_id} place={req.place_id} order={sort_order}")
    return {
        "success": True,
        "message": f"已成功加入到【{trip_name} - Day {day.get('day_number')}】",
        "sort_order": sort_order,
        "data": response.get("data"),
    }


# ==================== 移除景點 ====================

def open_remove_dialog(
    backend: BackendClient,
    session: SessionState,
    trip_id: int,
    trip_item_id: int,
) -> Dialog:
    async def remove_and_reload():
        result = await api.remove_place_from_trip(backend, session, trip_item_id)
        if result.get("success") is False:
            raise BackendError(400, f"移除失敗: {result.get('message') or '刪除失敗'}")
        # 刪除後整份行程重新讀取
        detail = await load_trip_detail(backend, session, trip_id)
        return {**detail, "message": "景點已移除"}

    return session.dialogs.open(
        "移除景點",
        "確定要從行程中移除這個景點嗎？",
        action=remove_and_reload,
        confirm_text="移除",
        key=f"trip-item:{trip_item_id}",
    )


# ==================== 排序 ====================

async def update_item_order(
    backend: BackendClient, session: SessionState, trip_item_id: int, sort_order: int
) -> Dict[str, Any]:
    return await api.update_place_order(backend, session, trip_item_id, sort_order)


async def reorder_day(
    backend: BackendClient,
    session: SessionState,
    trip_id: int,
    trip_day_id: int,
    item_ids: List[int],
) -> Dict[str, Any]:
    """
    依 item_ids 的順序寫入 1..n，寫完後重新讀取

    item_ids 必須剛好是該天全部的景點 (不缺、不重複、沒有別天的)，
    否則寫完會留下重複的 sort_order
    """
    detail = await load_trip_detail(backend, session, trip_id)
    day = find_day(detail, trip_day_id)
    if day is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="找不到這一天的行程")

    current = sorted(item["trip_item_id"] for item in day["items"] if item.get("trip_item_id") is not None)
    if len(set(item_ids)) != len(item_ids) or sorted(item_ids) != current:
        raise FormValidationError("排序資料與當天的景點不一致，請重新整理後再試", "item_ids")

    for index, item_id in enumerate(item_ids, start=1):
        await api.update_place_order(backend, session, item_id, index)
    detail = await load_trip_detail(backend, session, trip_id)
    logger.info(f"行程排序更新: trip={trip_id} day={trip_day_id} items={len(item_ids)}")
    return detail


# ==================== 行程頁 ====================

async def landing(backend: BackendClient, session: SessionState) -> Dict[str, Any]:
    """行程頁第一次載入: 取出 open_trip_id 交接值 (只用一次)"""
    trip_id = session.handoff.take("open_trip_id")
    if trip_id is None:
        return {"trip_id": None}
    detail = await load_trip_detail(backend, session, trip_id)
    return {"trip_id": trip_id, **detail}


async def drawer_trips(
    backend: BackendClient, session: SessionState, place_id: Optional[int] = None
) -> Dict[str, Any]:
    response = await api.get_user_trips(backend, session, session.user_id)
    return {"place_id": place_id, "trips": response.get("data") or []}


async def list_days(backend: BackendClient, session: SessionState, trip_id: int) -> Dict[str, Any]:
    detail = await load_trip_detail(backend, session, trip_id)
    days = [
        {
            "trip_day_id": d.get("trip_day_id"),
            "day_number": d.get("day_number"),
            "date": d.get("date"),
            "item_count": len(d["items"]),
        }
        for d in detail["days"]
    ]
    return {
        "trip": detail["trip"],
        "days": days,
        "selected_day_id": days[0]["trip_day_id"] if days else None,
    }
