import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, status

from core.backend import BackendClient
from core.session import SessionState

from Trip import api

logger = logging.getLogger(__name__)

TRIP_PAGE = "/site/custom"
COPY_SUCCESS_MESSAGE = "已將行程複製到您的行程列表！"


async def copy_trip(backend: BackendClient, session: SessionState, trip_id: int) -> Dict[str, Any]:
    """
    複製別人的行程到自己的行程列表

    新行程 id 在回傳之前就寫進 open_trip_id 交接值，
    行程頁載入時會直接打開它。
    """
    if not session.authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="請先登入")

    response = await api.copy_trip(backend, session, trip_id, session.user_id)
    new_trip_id = (response.get("data") or {}).get("trip_id")
    if new_trip_id is None:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="複製行程失敗")

    session.handoff.put("open_trip_id", int(new_trip_id))
    logger.info(f"行程複製完成: {trip_id} -> {new_trip_id} (user={session.user_id})")
    return {
        "success": True,
        "message": COPY_SUCCESS_MESSAGE,
        "trip_id": int(new_trip_id),
        "redirect": TRIP_PAGE,
    }


async def open_or_copy(
    backend: BackendClient,
    session: SessionState,
    trip_id: int,
    owner_id: Optional[int],
) -> Dict[str, Any]:
    """自己的行程直接打開，別人的行程先複製"""
    if not session.authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="請先登入")

    if owner_id is not None and int(owner_id) == int(session.user_id):
        session.handoff.put("open_trip_id", int(trip_id))
        return {"success": True, "message": None, "trip_id": int(trip_id), "redirect": TRIP_PAGE}

    return await copy_trip(backend, session, trip_id)
