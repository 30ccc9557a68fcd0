from pydantic import BaseModel, Field
from typing import Optional


class PlaceSelection(BaseModel):
    """搜尋彈窗中選定的景點 (交給「加入行程」使用)"""
    place_id: int
    place_name: str
    place_category: Optional[str] = Field(None, description="景點 / 餐廳 / 住宿")
    place_image: Optional[str] = None


class PlaceSummary(BaseModel):
    """搜尋結果卡片"""
    place_id: int
    name: str = ""
    category: Optional[str] = None
    rating: Optional[float] = None
    cover_image: Optional[str] = None
    location_name: Optional[str] = None

    def to_selection(self) -> PlaceSelection:
        return PlaceSelection(
            place_id=self.place_id,
            place_name=self.name,
            place_category=self.category,
            place_image=self.cover_image,
        )
