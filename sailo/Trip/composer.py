import logging
from datetime import date
from typing import Any, Dict, Optional, Tuple

from core.backend import BackendClient
from core.config import get_config
from core.exceptions import BackendError, FormValidationError
from core.session import SessionState

from Trip import api
from Trip.dto import TripForm

logger = logging.getLogger(__name__)

MAX_TRIP_NAME = 100
MAX_DESCRIPTION = 500
MAX_SUMMARY = 200


def parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def calculate_days(start: Optional[date], end: Optional[date]) -> int:
    """含頭尾的天數 (2025-01-01 ~ 2025-01-03 = 3)"""
    if start is None or end is None:
        return 0
    return abs((end - start).days) + 1


def validate_trip_form(form: TripForm, user_id: Optional[int]) -> Tuple[date, date]:
    """
    依序檢查，第一個不合格的欄位就中止 (不送出任何請求)

    登入 -> 名稱 -> 日期 -> 日期順序 -> 描述 -> 摘要
    """
    if not user_id:
        raise FormValidationError("請先登入", "user")

    name = form.trip_name.strip()
    if not name:
        raise FormValidationError("請輸入行程名稱", "trip_name")
    if len(name) > MAX_TRIP_NAME:
        raise FormValidationError("行程名稱不能超過 100 字", "trip_name")

    start = parse_date(form.start_date)
    end = parse_date(form.end_date)
    if start is None or end is None:
        raise FormValidationError("請選擇行程日期", "start_date" if start is None else "end_date")
    if end < start:
        raise FormValidationError("結束日期不能早於開始日期", "end_date")

    if len((form.description or "").strip()) > MAX_DESCRIPTION:
        raise FormValidationError("描述不能超過 500 字", "description")
    if len((form.summary_text or "").strip()) > MAX_SUMMARY:
        raise FormValidationError("摘要不能超過 200 字", "summary_text")

    return start, end


def build_trip_payload(
    form: TripForm,
    start: date,
    end: date,
    user_id: Optional[int] = None,
    default_cover: Optional[str] = None,
) -> Dict[str, Any]:
    payload = {
        "trip_name": form.trip_name.strip(),
        "description": (form.description or "").strip() or None,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "cover_image_url": (form.cover_image_url or "").strip() or default_cover,
        "summary_text": (form.summary_text or "").strip() or None,
        "is_public": 1 if form.is_public else 0,
    }
    # 只有建立時才帶 user_id / location_id
    if user_id is not None:
        payload["user_id"] = user_id
        payload["location_id"] = None
    return payload


def _keep_draft(session: SessionState, form: TripForm, trip_id: Optional[int], error: str) -> None:
    session.trip_draft = {
        "mode": "update" if trip_id else "create",
        "trip_id": trip_id,
        "form": form.model_dump(),
        "error": error,
    }


async def submit_trip(
    backend: BackendClient,
    session: SessionState,
    form: TripForm,
    trip_id: Optional[int] = None,
) -> Dict[str, Any]:
    """建立 (trip_id 為 None) 或更新行程"""
    start, end = validate_trip_form(form, session.user_id)
    default_cover = get_config().default_cover_image_url

    try:
        if trip_id is None:
            payload = build_trip_payload(form, start, end, user_id=session.user_id, default_cover=default_cover)
            response = await api.create_trip(backend, session, payload)
        else:
            payload = build_trip_payload(form, start, end, default_cover=default_cover)
            response = await api.update_trip(backend, session, trip_id, payload)
    except BackendError as e:
        prefix = "建立行程失敗" if trip_id is None else "更新行程失敗"
        _keep_draft(session, form, trip_id, e.message)
        raise e.with_prefix(prefix) from e

    session.trip_draft = None

    if trip_id is not None:
        logger.info(f"行程已更新: trip_id={trip_id}")
        return {"success": True, "message": "行程已更新！", "trip_id": trip_id}

    data = response.get("data") or {}
    days_created = data.get("days_created", calculate_days(start, end))
    logger.info(f"行程建立成功: trip_id={data.get('trip_id')}, days={days_created}")
    return {
        "success": True,
        "message": f"行程建立成功！已自動生成 {days_created} 天的行程",
        "trip_id": data.get("trip_id"),
        "days_created": days_created,
    }
