from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional


# ==================== Trip DTOs ====================

class TripForm(BaseModel):
    """行程建立/編輯表單 (欄位檢查在 composer 內依序進行)"""
    trip_name: str = ""
    start_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    end_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    description: Optional[str] = None
    summary_text: Optional[str] = None
    cover_image_url: Optional[str] = None
    is_public: bool = False


TripSort = Literal["created_at", "start_date", "trip_name"]


# ==================== Trip Item DTOs ====================

class AddPlaceRequest(BaseModel):
    """把景點加入某一天"""
    trip_id: int = Field(..., description="行程 ID")
    place_id: int
    place_name: str = ""
    place_category: Optional[str] = Field(None, description="景點 / 餐廳 / 住宿")
    place_image: Optional[str] = None
    note: Optional[str] = None
    start_time: Optional[str] = Field(None, description="HH:MM")
    end_time: Optional[str] = Field(None, description="HH:MM")


class ItemOrderUpdate(BaseModel):
    sort_order: int = Field(..., ge=1)


class DayReorder(BaseModel):
    """某一天的景點新順序 (依序寫入 sort_order 1..n)"""
    item_ids: List[int] = Field(..., min_length=1)


class OpenTripRequest(BaseModel):
    owner_id: Optional[int] = Field(None, description="行程擁有者 user_id")


# ==================== Response DTOs ====================

class TripMessageResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    trip_id: Optional[int] = None
    days_created: Optional[int] = None
    redirect: Optional[str] = None


class TripDetailResponse(BaseModel):
    """行程詳細 (days 內的 items 依 sort_order 排序)"""
    trip: Dict[str, Any]
    days: List[Dict[str, Any]]
    message: Optional[str] = None


class DialogResponse(BaseModel):
    """需要使用者確認的操作 (確認後執行)"""
    requires_confirmation: bool = True
    dialog: Dict[str, Any]
