from pydantic import BaseModel, Field
from typing import List, Literal, Optional


FeedTab = Literal["home", "following"]
FeedSort = Literal["newest", "likes", "comments", "bookmarks"]


# ==================== 文章請求 DTOs ====================

class PostCreate(BaseModel):
    """發文"""
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    category: Optional[str] = None
    trip_id: Optional[int] = None
    place_id: Optional[int] = None
    tags: List[str] = []
    image_urls: List[str] = Field([], description="已上傳的圖片 URL (依序)")


class PostUpdate(BaseModel):
    """文章修改 (部分修改；tags 給了就整批同步)"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    trip_id: Optional[int] = None
    place_id: Optional[int] = None
    tags: Optional[List[str]] = None


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)


class FollowingTabRequest(BaseModel):
    tab: Literal["followers", "following"] = "following"


# ==================== 回應 DTOs ====================

class FeedPage(BaseModel):
    """無限捲動一頁"""
    tab: FeedTab
    items: list
    page: int
    has_more: bool
    loading_more: bool = False
    skipped: bool = False


class ToggleResponse(BaseModel):
    success: bool = True
    active: Optional[bool] = None
    count: Optional[int] = None
    message: Optional[str] = None
