import logging
from typing import Any, Dict, List, Optional

from core.backend import BackendClient
from core.pagination import Pager, PageFetcher
from core.session import SessionState

from Board import api

logger = logging.getLogger(__name__)

FEED_TABS = ("home", "following")


def build_post_params(
    page: int,
    limit: int,
    sort: str = "newest",
    category: Optional[str] = None,
    tags: Optional[List[str]] = None,
    following: bool = False,
    location_id: Optional[int] = None,
) -> Dict[str, Any]:
    """文章列表查詢參數 (沒有值的條件不帶)"""
    params: Dict[str, Any] = {"page": page, "limit": limit, "sort": sort}
    if category and category != "all":
        params["category"] = category
    if tags:
        params["tags"] = tags
    if following:
        params["following"] = "true"
    if location_id:
        params["location_id"] = location_id
    return params


def make_fetcher(
    backend: BackendClient,
    session: SessionState,
    tab: str,
    page_size: int,
    sort: str = "newest",
    keyword: Optional[str] = None,
    category: Optional[str] = None,
    tags: Optional[List[str]] = None,
    location_id: Optional[int] = None,
) -> PageFetcher:
    """有關鍵字時改用搜尋 API，兩者的回應結構不同"""

    async def fetch_page(page: int):
        if keyword:
            response = await api.search_posts(backend, session, keyword, page, page_size)
            posts = (response.get("data") or {}).get("posts") or {}
            return posts.get("data") or [], posts.get("pagination") or {}

        params = build_post_params(
            page, page_size, sort, category, tags,
            following=(tab == "following"), location_id=location_id,
        )
        response = await api.get_posts(backend, session, params)
        data = response.get("data") or {}
        return data.get("posts") or [], data.get("pagination") or {}

    return fetch_page


async def open_feed(session: SessionState, tab: str, fetch_page: PageFetcher) -> Pager:
    """分頁或篩選條件改變: 重設並載入第 1 頁 (舊的回應會被丟棄)"""
    pager = session.feeds.get(tab)
    if pager is None:
        pager = Pager(fetch_page)
        session.feeds[tab] = pager
    else:
        pager.reset(fetch_page)

    try:
        await pager.load_first()
    except Exception as e:
        logger.error(f"載入文章失敗 (tab={tab}): {e}")
        raise
    return pager


async def load_more(session: SessionState, tab: str) -> Dict[str, Any]:
    """捲動到底觸發；載入中或沒有下一頁時直接跳過"""
    pager = session.feeds.get(tab)
    if pager is None:
        return {"tab": tab, "items": [], "page": 0, "has_more": False, "skipped": True}

    loaded = await pager.load_more()
    return {
        "tab": tab,
        "items": pager.items,
        "page": pager.page,
        "has_more": pager.has_more,
        "loading_more": pager.loading_more,
        "skipped": not loaded,
    }
