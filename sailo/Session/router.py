from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, status

from core.session import SessionState, provide_session
from core.ui import DialogStateError

router = APIRouter(
    prefix="/session",
    tags=["session"]
)


@router.get("")
async def get_session(session: SessionState = Depends(provide_session)):
    """目前 session 的畫面狀態 (登入者、對話框、捲動鎖、待取用的交接值)"""
    return {
        "authenticated": session.authenticated,
        "user": session.user,
        "scroll_locked": session.scroll_lock.locked,
        "dialogs": [d.to_dict() for d in session.dialogs.active()],
        "handoffs": session.handoff.pending(),
        "otp": session.otp.to_dict() if session.otp else None,
        "place_search": session.place_search.to_dict(),
    }


@router.post("/dialogs/{dialog_id}/{action}")
async def resolve_dialog(
    dialog_id: str,
    action: Literal["confirm", "cancel", "backdrop"],
    session: SessionState = Depends(provide_session),
):
    """對話框按鈕 (確認時回傳待執行動作的結果)"""
    try:
        session.dialogs.get(dialog_id)
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="對話框不存在或已關閉")

    try:
        result = await session.dialogs.resolve(dialog_id, action)
    except DialogStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return {
        "dialog_id": dialog_id,
        "outcome": "confirmed" if action == "confirm" else "cancelled",
        "scroll_locked": session.scroll_lock.locked,
        "result": result,
    }
