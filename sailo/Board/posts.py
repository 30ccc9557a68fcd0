import logging
from typing import Any, Dict, List

from fastapi import HTTPException, status

from core.backend import BackendClient
from core.exceptions import PermissionDeniedError
from core.session import SessionState

from Board import api
from Board.dto import PostCreate, PostUpdate

logger = logging.getLogger(__name__)

BLOG_HOME = "/site/blog"


def _tag_name(tag: Any) -> str:
    if isinstance(tag, str):
        return tag
    return tag.get("tagname") or tag.get("name") or ""


async def load_post(backend: BackendClient, session: SessionState, post_id: int) -> Dict[str, Any]:
    response = await api.get_post(backend, session, post_id)
    post = (response.get("data") or {}).get("post")
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="找不到文章")
    return post


def ensure_author(session: SessionState, owner: Dict[str, Any], message: str, redirect: str) -> None:
    """
    僅做畫面上的權限判斷 (真正的權限由後端把關)

    owner 是已經 normalize 過的 author / user
    """
    owner_id = (owner or {}).get("user_id")
    if owner_id is None or session.user_id is None or int(owner_id) != int(session.user_id):
        raise PermissionDeniedError(message, redirect=redirect)


async def create_post(backend: BackendClient, session: SessionState, body: PostCreate) -> Dict[str, Any]:
    response = await api.create_post(backend, session, body.model_dump(exclude_none=True))
    data = response.get("data") or {}
    post_id = data.get("post_id") or (data.get("post") or {}).get("post_id")

    # 發文後的文章頁，返回鍵要回到部落格首頁
    session.handoff.put("from_post_create", True)
    logger.info(f"發文成功: post_id={post_id} user={session.user_id}")
    return {"success": True, "post_id": post_id, "message": "文章發布成功！", "data": data}


async def sync_tags(backend: BackendClient, session: SessionState, post_id: int, tags: List[str]) -> None:
    """目前的標籤與新的標籤比對: 少的補上、多的移除"""
    post = await load_post(backend, session, post_id)
    current = post.get("tags") or []
    current_names = [n for n in (_tag_name(t) for t in current) if n]

    to_add = [t for t in tags if t not in current_names]
    to_remove = [n for n in current_names if n not in tags]

    if to_add:
        await api.add_tags_to_post(backend, session, post_id, to_add)
    for name in to_remove:
        tag = next((t for t in current if _tag_name(t) == name), None)
        if isinstance(tag, dict) and tag.get("tag_id"):
            await api.remove_tag_from_post(backend, session, post_id, tag["tag_id"])


async def update_post(
    backend: BackendClient, session: SessionState, post_id: int, body: PostUpdate
) -> Dict[str, Any]:
    post = await load_post(backend, session, post_id)
    ensure_author(session, post.get("author"), "您沒有權限編輯此文章", f"{BLOG_HOME}/post/{post_id}")

    payload = body.model_dump(exclude_none=True, exclude={"tags"})
    if payload:
        await api.update_post(backend, session, post_id, payload)
    if body.tags is not None:
        await sync_tags(backend, session, post_id, body.tags)

    return {"success": True, "post": await load_post(backend, session, post_id)}


async def open_delete_post_dialog(backend: BackendClient, session: SessionState, post_id: int):
    post = await load_post(backend, session, post_id)
    ensure_author(session, post.get("author"), "您沒有權限刪除此文章", f"{BLOG_HOME}/post/{post_id}")

    async def delete():
        await api.delete_post(backend, session, post_id)
        return {"success": True, "message": "文章已刪除", "post_id": post_id, "redirect": BLOG_HOME}

    return session.dialogs.open(
        "刪除文章", "確定要刪除這篇文章嗎？", action=delete, confirm_text="刪除", key=f"post:{post_id}"
    )


async def _find_comment(backend: BackendClient, session: SessionState, post_id: int, comment_id: int) -> Dict[str, Any]:
    response = await api.get_comments(backend, session, post_id, {})
    data = response.get("data") or {}
    comments = data.get("comments") if isinstance(data, dict) else data
    for comment in comments or []:
        if comment.get("comment_id") == comment_id or comment.get("id") == comment_id:
            return comment
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="找不到留言")


async def update_comment(
    backend: BackendClient, session: SessionState, post_id: int, comment_id: int, content: str
) -> Dict[str, Any]:
    comment = await _find_comment(backend, session, post_id, comment_id)
    author = api.normalize_user(comment.get("author") or {"user_id": comment.get("user_id")})
    ensure_author(session, author, "您沒有權限編輯此留言", f"{BLOG_HOME}/post/{post_id}")
    return await api.update_comment(backend, session, comment_id, content.strip())


async def open_delete_comment_dialog(
    backend: BackendClient, session: SessionState, post_id: int, comment_id: int
):
    comment = await _find_comment(backend, session, post_id, comment_id)
    author = api.normalize_user(comment.get("author") or {"user_id": comment.get("user_id")})
    ensure_author(session, author, "您沒有權限刪除此留言", f"{BLOG_HOME}/post/{post_id}")

    async def delete():
        await api.delete_comment(backend, session, comment_id)
        return {"success": True, "message": "留言已刪除", "comment_id": comment_id}

    return session.dialogs.open(
        "刪除留言", "確定要刪除這則留言嗎？", action=delete, confirm_text="刪除", key=f"comment:{comment_id}"
    )
