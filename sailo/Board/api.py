from typing import Any, Dict, List, Optional

from core.backend import BackendClient

BLOG_PREFIX = "/api/blog"


# ==================== 資料標準化 ====================

def normalize_user(user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """user_id / id 兩種寫法統一成 user_id"""
    if not user:
        return None
    return {**user, "user_id": user.get("user_id") or user.get("id")}


def normalize_post(post: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not post:
        return None
    return {**post, "author": normalize_user(post.get("author"))}


def normalize_response(response: Dict[str, Any]) -> Dict[str, Any]:
    data = response.get("data")
    if not isinstance(data, dict):
        return response

    if isinstance(data.get("posts"), list):
        data["posts"] = [normalize_post(p) for p in data["posts"]]
    if data.get("post"):
        data["post"] = normalize_post(data["post"])
    if data.get("user"):
        data["user"] = normalize_user(data["user"])
    return response


async def _get(backend: BackendClient, session, path: str, params: Optional[Dict[str, Any]] = None):
    return normalize_response(await backend.get(f"{BLOG_PREFIX}{path}", session, params=params))


# ==================== 文章 ====================

async def get_posts(backend: BackendClient, session, params: Dict[str, Any]) -> Dict[str, Any]:
    """data: {posts, pagination: {page, totalPages}}"""
    return await _get(backend, session, "/posts", params)


async def search_posts(backend: BackendClient, session, keyword: str, page: int, limit: int) -> Dict[str, Any]:
    """data: {posts: {data, pagination}}"""
    response = await backend.get(
        f"{BLOG_PREFIX}/search",
        session,
        params={"q": keyword, "type": "posts", "page": page, "limit": limit},
    )
    posts = ((response.get("data") or {}).get("posts")) or {}
    if isinstance(posts.get("data"), list):
        posts["data"] = [normalize_post(p) for p in posts["data"]]
    return response


async def get_post(backend: BackendClient, session, post_id: int, increment_view: bool = False) -> Dict[str, Any]:
    params = {"increment_view": "true"} if increment_view else None
    return await _get(backend, session, f"/posts/{post_id}", params)


async def create_post(backend: BackendClient, session, payload: Dict[str, Any]) -> Dict[str, Any]:
    return normalize_response(await backend.post(f"{BLOG_PREFIX}/posts", session, json=payload))


async def update_post(backend: BackendClient, session, post_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    return await backend.put(f"{BLOG_PREFIX}/posts/{post_id}", session, json=payload)


async def delete_post(backend: BackendClient, session, post_id: int) -> Dict[str, Any]:
    return await backend.delete(f"{BLOG_PREFIX}/posts/{post_id}", session)


async def get_user_posts(backend: BackendClient, session, user_id: int, params: Dict[str, Any]) -> Dict[str, Any]:
    return await _get(backend, session, f"/users/{user_id}/posts", params)


async def get_user_liked(backend: BackendClient, session, user_id: int, params: Dict[str, Any]) -> Dict[str, Any]:
    return await _get(backend, session, f"/users/{user_id}/liked", params)


async def get_user_bookmarks(backend: BackendClient, session, user_id: int, params: Dict[str, Any]) -> Dict[str, Any]:
    return await _get(backend, session, f"/users/{user_id}/bookmarks", params)


# ==================== 留言 ====================

async def get_comments(backend: BackendClient, session, post_id: int, params: Dict[str, Any]) -> Dict[str, Any]:
    return await _get(backend, session, f"/posts/{post_id}/comments", params)


async def create_comment(backend: BackendClient, session, post_id: int, content: str) -> Dict[str, Any]:
    return await backend.post(f"{BLOG_PREFIX}/posts/{post_id}/comments", session, json={"content": content})


async def update_comment(backend: BackendClient, session, comment_id: int, content: str) -> Dict[str, Any]:
    return await backend.put(f"{BLOG_PREFIX}/comments/{comment_id}", session, json={"content": content})


async def delete_comment(backend: BackendClient, session, comment_id: int) -> Dict[str, Any]:
    return await backend.delete(f"{BLOG_PREFIX}/comments/{comment_id}", session)


# ==================== 互動 (切換) ====================

async def toggle_post_like(backend: BackendClient, session, post_id: int) -> Dict[str, Any]:
    return await backend.post(f"{BLOG_PREFIX}/interactions/posts/{post_id}/like", session)


async def toggle_comment_like(backend: BackendClient, session, comment_id: int) -> Dict[str, Any]:
    return await backend.post(f"{BLOG_PREFIX}/interactions/comments/{comment_id}/like", session)


async def toggle_bookmark(backend: BackendClient, session, post_id: int) -> Dict[str, Any]:
    return await backend.post(f"{BLOG_PREFIX}/interactions/posts/{post_id}/bookmark", session)


async def toggle_follow(backend: BackendClient, session, user_id: int) -> Dict[str, Any]:
    return await backend.post(f"{BLOG_PREFIX}/users/{user_id}/follow", session)


async def get_follow_status(backend: BackendClient, session, user_id: int) -> Dict[str, Any]:
    return await backend.get(f"{BLOG_PREFIX}/users/{user_id}/follow-status", session)


async def get_user_stats(backend: BackendClient, session, user_id: int) -> Dict[str, Any]:
    return await _get(backend, session, f"/users/{user_id}/stats")


async def get_followers(backend: BackendClient, session, user_id: int, params: Dict[str, Any]) -> Dict[str, Any]:
    return await _get(backend, session, f"/users/{user_id}/followers", params)


async def get_following(backend: BackendClient, session, user_id: int, params: Dict[str, Any]) -> Dict[str, Any]:
    return await _get(backend, session, f"/users/{user_id}/following", params)


# ==================== 標籤 ====================

async def get_all_tags(backend: BackendClient, session, limit: Optional[int] = None) -> Dict[str, Any]:
    return await backend.get(f"{BLOG_PREFIX}/tags", session, params={"limit": limit})


async def search_tags(backend: BackendClient, session, keyword: str) -> Dict[str, Any]:
    return await backend.get(f"{BLOG_PREFIX}/tags/search", session, params={"q": keyword})


async def get_posts_by_tag(backend: BackendClient, session, tag_id: int, params: Dict[str, Any]) -> Dict[str, Any]:
    return await _get(backend, session, f"/tags/{tag_id}/posts", params)


async def add_tags_to_post(backend: BackendClient, session, post_id: int, tags: List[str]) -> Dict[str, Any]:
    return await backend.post(f"{BLOG_PREFIX}/tags/posts/{post_id}", session, json={"tags": tags})


async def remove_tag_from_post(backend: BackendClient, session, post_id: int, tag_id: int) -> Dict[str, Any]:
    return await backend.delete(f"{BLOG_PREFIX}/tags/posts/{post_id}/{tag_id}", session)


# ==================== 行程 ====================

async def get_user_itineraries(backend: BackendClient, session, user_id: int) -> Dict[str, Any]:
    return await backend.get(f"{BLOG_PREFIX}/users/{user_id}/itineraries", session)
