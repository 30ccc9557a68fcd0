import logging
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import get_config
from core.logger import setup_logging
from core.exceptions import BackendError, register_exception_handlers
from core.backend import init_backend, close_backend
from core import backend
from core.session import sessions
from User import api as user_api

# 路由
from User.user_router import router as user_router, account_router
from Trip.trip_router import router as trip_router
from Place.router import router as place_router
from Favorite.router import router as favorite_router
from Board.router import router as board_router
from Session.router import router as session_router

logger = logging.getLogger(__name__)

SESSION_PURGE_MINUTES = 5


async def _refresh_tokens():
    """
    已登入 session 的後端 token 定期刷新

    後端拒絕 (refresh token 失效) 才登出；連線失敗時保留 session，下一輪再試
    """
    if backend.backend_client is None:
        return

    active = sessions.authenticated()
    refreshed = 0
    for session in active:
        try:
            ok = await user_api.refresh(backend.backend_client, session)
        except BackendError as e:
            logger.warning(f"Token 刷新暫時失敗，保留 session: user_id={session.user_id} ({e.message})")
            continue
        if ok:
            refreshed += 1
        else:
            logger.warning(f"Token 已失效，登出 session: user_id={session.user_id}")
            session.logout()

    if active:
        logger.info(f"Token 刷新完成: {refreshed}/{len(active)}")


async def _purge_sessions():
    config = get_config()
    sessions.purge_expired(config.session_ttl_minutes * 60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    init_backend(config)

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        _refresh_tokens,
        trigger=IntervalTrigger(minutes=config.token_refresh_minutes),
        id="token_refresh",
        name="後端 token 定期刷新",
        misfire_grace_time=60
    )
    scheduler.add_job(
        _purge_sessions,
        trigger=IntervalTrigger(minutes=SESSION_PURGE_MINUTES),
        id="session_purge",
        name="閒置 session 清除",
    )
    scheduler.start()
    logger.info(f"排程啟動: 每 {config.token_refresh_minutes} 分鐘刷新 token")

    yield

    scheduler.shutdown()
    await close_backend()
    logger.info("排程與後端連線已關閉")


config = get_config()
setup_logging(config.log_level)

# 路由清單
routers = []
routers.append(user_router)
routers.append(account_router)
routers.append(trip_router)
routers.append(place_router)
routers.append(favorite_router)
routers.append(board_router)
routers.append(session_router)

# FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="Sailo Trip & Blog Service",
    description="行程規劃、景點收藏與旅遊部落格 (前端用 BFF)",
    version="1.0.0",
    openapi_url="/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
)

# 路由註冊
for router in routers:
    app.include_router(router=router)

register_exception_handlers(app)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    return {"status": "ok", "sessions": len(sessions)}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
