# Board/router.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from core.backend import BackendClient, provide_backend
from core.config import get_config
from core.session import SessionState, provide_session
from User.user_router import get_current_user
from Trip import copier
from Trip.dto import OpenTripRequest, TripMessageResponse

from Board import api, feed, posts
from Board.dto import (
    FeedTab, FeedSort, FeedPage, ToggleResponse,
    PostCreate, PostUpdate, CommentCreate, CommentUpdate, FollowingTabRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/board",
    tags=["board"]
)


def _page_params(page: int, limit: int) -> dict:
    return {"page": page, "limit": limit}


def _toggle(data: dict, key: str) -> ToggleResponse:
    payload = data.get("data") or {}
    return ToggleResponse(
        success=bool(data.get("success", True)),
        active=payload.get(key),
        count=payload.get("count"),
        message=data.get("message"),
    )


# ==================== 動態牆 (無限捲動) ====================

@router.get("/feed", response_model=FeedPage)
async def open_feed(
    tab: FeedTab = Query("home"),
    sort: FeedSort = Query("newest"),
    keyword: Optional[str] = Query(None),
    tags: List[str] = Query([]),
    location_id: Optional[int] = Query(None),
    category: Optional[str] = Query(None),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """分頁/排序/篩選改變時呼叫: 重設該分頁並載入第 1 頁"""
    fetch_page = feed.make_fetcher(
        backend, session, tab, get_config().feed_page_size,
        sort=sort, keyword=(keyword or "").strip() or None,
        category=category, tags=tags, location_id=location_id,
    )
    pager = await feed.open_feed(session, tab, fetch_page)
    return FeedPage(tab=tab, items=pager.items, page=pager.page, has_more=pager.has_more)


@router.post("/feed/more", response_model=FeedPage)
async def load_more(
    tab: FeedTab = Query("home"),
    session: SessionState = Depends(provide_session),
):
    """捲動觸發 (載入中、沒有下一頁時 skipped=true)"""
    return await feed.load_more(session, tab)


# ==================== 文章 ====================

@router.post("/posts", status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreate,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    return await posts.create_post(backend, session, body)


@router.get("/posts/{post_id}")
async def get_post(
    post_id: int,
    increment_view: bool = Query(False),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    response = await api.get_post(backend, session, post_id, increment_view)
    return {"success": True, "post": (response.get("data") or {}).get("post")}


@router.put("/posts/{post_id}")
async def update_post(
    post_id: int,
    body: PostUpdate,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """作者本人才能修改 (畫面上的判斷)"""
    return await posts.update_post(backend, session, post_id, body)


@router.delete("/posts/{post_id}")
async def delete_post(
    post_id: int,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    dialog = await posts.open_delete_post_dialog(backend, session, post_id)
    return {"requires_confirmation": True, "dialog": dialog.to_dict()}


# ==================== 留言 ====================

@router.get("/posts/{post_id}/comments")
async def get_comments(
    post_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    response = await api.get_comments(backend, session, post_id, _page_params(page, limit))
    return {"success": True, "data": response.get("data")}


@router.post("/posts/{post_id}/comments", status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: int,
    body: CommentCreate,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    response = await api.create_comment(backend, session, post_id, body.content.strip())
    return {"success": True, "data": response.get("data")}


@router.put("/posts/{post_id}/comments/{comment_id}")
async def update_comment(
    post_id: int,
    comment_id: int,
    body: CommentUpdate,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    response = await posts.update_comment(backend, session, post_id, comment_id, body.content)
    return {"success": True, "data": response.get("data")}


@router.delete("/posts/{post_id}/comments/{comment_id}")
async def delete_comment(
    post_id: int,
    comment_id: int,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    dialog = await posts.open_delete_comment_dialog(backend, session, post_id, comment_id)
    return {"requires_confirmation": True, "dialog": dialog.to_dict()}


# ==================== 按讚 / 收藏 / 追蹤 ====================

@router.post("/posts/{post_id}/like", response_model=ToggleResponse)
async def toggle_post_like(
    post_id: int,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    return _toggle(await api.toggle_post_like(backend, session, post_id), "isLiked")


@router.post("/posts/{post_id}/bookmark", response_model=ToggleResponse)
async def toggle_bookmark(
    post_id: int,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    return _toggle(await api.toggle_bookmark(backend, session, post_id), "isBookmarked")


@router.post("/comments/{comment_id}/like", response_model=ToggleResponse)
async def toggle_comment_like(
    comment_id: int,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    return _toggle(await api.toggle_comment_like(backend, session, comment_id), "isLiked")


@router.post("/users/{user_id}/follow", response_model=ToggleResponse)
async def toggle_follow(
    user_id: int,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    return _toggle(await api.toggle_follow(backend, session, user_id), "isFollowing")


@router.get("/users/{user_id}/follow-status")
async def follow_status(
    user_id: int,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    response = await api.get_follow_status(backend, session, user_id)
    return {"success": True, "data": response.get("data")}


# ==================== 使用者頁 ====================

@router.get("/users/{user_id}/stats")
async def user_stats(
    user_id: int,
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    response = await api.get_user_stats(backend, session, user_id)
    return {"success": True, "data": response.get("data")}


@router.get("/users/{user_id}/{collection}")
async def user_collection(
    user_id: int,
    collection: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """posts / liked / bookmarks / followers / following / itineraries"""
    params = _page_params(page, limit)
    fetchers = {
        "posts": lambda: api.get_user_posts(backend, session, user_id, params),
        "liked": lambda: api.get_user_liked(backend, session, user_id, params),
        "bookmarks": lambda: api.get_user_bookmarks(backend, session, user_id, params),
        "followers": lambda: api.get_followers(backend, session, user_id, params),
        "following": lambda: api.get_following(backend, session, user_id, params),
        "itineraries": lambda: api.get_user_itineraries(backend, session, user_id),
    }
    fetch = fetchers.get(collection)
    if fetch is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"未知的項目: {collection}")
    response = await fetch()
    return {"success": True, "data": response.get("data")}


# ==================== 標籤 ====================

@router.get("/tags")
async def get_tags(
    limit: Optional[int] = Query(None, ge=1),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    response = await api.get_all_tags(backend, session, limit)
    return {"success": True, "data": response.get("data")}


@router.get("/tags/search")
async def search_tags(
    q: str = Query(..., min_length=1),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    response = await api.search_tags(backend, session, q.strip())
    return {"success": True, "data": response.get("data")}


@router.get("/tags/{tag_id}/posts")
async def posts_by_tag(
    tag_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    response = await api.get_posts_by_tag(backend, session, tag_id, _page_params(page, limit))
    return {"success": True, "data": response.get("data")}


# ==================== 行程連結 / 頁面交接 ====================

@router.post("/itineraries/{trip_id}/open", response_model=TripMessageResponse)
async def open_itinerary(
    trip_id: int,
    body: OpenTripRequest,
    current_user: dict = Depends(get_current_user),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """文章中的行程卡片: 作者本人直接開啟，其他人先複製"""
    return await copier.open_or_copy(backend, session, trip_id, body.owner_id)


@router.get("/navigation/back")
async def back_target(session: SessionState = Depends(provide_session)):
    """剛發完文的文章頁，返回鍵回到部落格首頁而不是發文頁"""
    if session.handoff.take("from_post_create"):
        return {"target": posts.BLOG_HOME, "history_back": False}
    return {"target": None, "history_back": True}


@router.post("/profile/{user_id}/following-tab")
async def set_following_tab(
    user_id: int,
    body: FollowingTabRequest,
    session: SessionState = Depends(provide_session),
):
    session.handoff.put("following_page_tab", body.tab)
    return {"redirect": f"{posts.BLOG_HOME}/profile/{user_id}/following"}


@router.get("/profile/{user_id}/following")
async def following_page(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: SessionState = Depends(provide_session),
    backend: BackendClient = Depends(provide_backend),
):
    """追蹤頁: 交接值指定的分頁 (預設 following)"""
    tab = session.handoff.take("following_page_tab") or "following"
    params = _page_params(page, limit)
    if tab == "followers":
        response = await api.get_followers(backend, session, user_id, params)
    else:
        response = await api.get_following(backend, session, user_id, params)
    return {"tab": tab, "data": response.get("data")}
