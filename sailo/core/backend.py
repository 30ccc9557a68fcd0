import logging
from http import cookiejar
from typing import Any, Dict, Optional

import httpx

from core.exceptions import BackendError

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "網路錯誤，請稍後再試"
REFRESH_REJECTED = (401, 403)


class _RejectAllCookies(cookiejar.DefaultCookiePolicy):
    """共用的 httpx client 不保存任何 cookie (cookie 依 session 分開保存)"""

    def set_ok(self, cookie, request):
        return False


class BackendClient:
    """
    外部 REST 後端的呼叫封裝

    - 後端回應格式: {"success": bool, "data": ..., "message": str}
    - 每個瀏覽器 session 的後端 cookie 各自保存在 session.backend_cookies (httpx.Cookies)
    - 401 時 (僅限 auth V2) 先呼叫 /api/v2/auth/refresh 再重送一次
    - raise_for_status=False 時非 2xx 也回傳後端的 JSON (auth V2 表單依 success 判斷)
    """

    REFRESH_PATH = "/api/v2/auth/refresh"

    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            cookies=cookiejar.CookieJar(policy=_RejectAllCookies()),
        )

    async def close(self) -> None:
        await self._client.aclose()

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path}"

    # ==================== 內部 ====================

    async def _send(self, method: str, path: str, session, **kwargs) -> httpx.Response:
        request = self._client.build_request(method, path, **kwargs)
        if session is not None:
            session.backend_cookies.set_cookie_header(request)
        try:
            response = await self._client.send(request)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} 網路錯誤: {e}")
            raise BackendError(502, NETWORK_ERROR_MESSAGE) from e

        if session is not None:
            session.backend_cookies.extract_cookies(response)
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Dict[str, Any]:
        if response.status_code == 204 or not response.content:
            return {"success": response.is_success}

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            logger.error(f"API 返回非 JSON 內容: {response.text[:200]}")
            raise BackendError(
                response.status_code,
                f"API 錯誤 ({response.status_code}): 端點不存在或伺服器錯誤",
            )
        return response.json()

    # ==================== 公開 API ====================

    async def refresh(self, session) -> bool:
        """
        刷新 Access Token (refresh token 在 session 的 cookie 裡)

        Returns:
            True 刷新成功; False 後端拒絕 (401/403，refresh token 已失效)
        Raises:
            BackendError 連線失敗或後端其他錯誤 (token 不一定失效)
        """
        response = await self._send("POST", self.REFRESH_PATH, session)
        if response.is_success:
            logger.info("Token 刷新成功")
            return True
        if response.status_code in REFRESH_REJECTED:
            logger.warning(f"Token 刷新被拒 ({response.status_code})")
            return False
        raise BackendError(response.status_code, f"Token 刷新失敗 ({response.status_code})")

    async def request(
        self,
        method: str,
        path: str,
        session=None,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        files: Any = None,
        data: Optional[Dict[str, Any]] = None,
        tolerate_favorited: bool = False,
        retry_on_401: bool = False,
        raise_for_status: bool = True,
    ) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {}
        if json is not None:
            kwargs["json"] = json
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v is not None}
        if data is not None:
            kwargs["data"] = data
        if files is not None:
            kwargs["files"] = files

        response = await self._send(method, path, session, **kwargs)

        if response.status_code == 401 and retry_on_401 and session is not None:
            try:
                refreshed = await self.refresh(session)
            except BackendError as e:
                logger.warning(f"{method} {path} 401 後刷新失敗: {e.message}")
                refreshed = False
            if refreshed:
                response = await self._send(method, path, session, **kwargs)

        data = self._decode(response)

        if not response.is_success:
            message = data.get("message") if isinstance(data, dict) else None
            if not raise_for_status:
                logger.info(f"{method} {path} 回應 {response.status_code}: {message}")
                return data
            # 「此行程已收藏」視為成功
            if tolerate_favorited and message and "已收藏" in message:
                return data
            logger.error(f"{method} {path} 失敗 ({response.status_code}): {message}")
            raise BackendError(response.status_code, message or "請求失敗")

        return data

    async def get(self, path: str, session=None, **kwargs) -> Dict[str, Any]:
        return await self.request("GET", path, session, **kwargs)

    async def post(self, path: str, session=None, **kwargs) -> Dict[str, Any]:
        return await self.request("POST", path, session, **kwargs)

    async def put(self, path: str, session=None, **kwargs) -> Dict[str, Any]:
        return await self.request("PUT", path, session, **kwargs)

    async def delete(self, path: str, session=None, **kwargs) -> Dict[str, Any]:
        return await self.request("DELETE", path, session, **kwargs)


backend_client: Optional[BackendClient] = None


def init_backend(config, transport: Optional[httpx.AsyncBaseTransport] = None) -> BackendClient:
    global backend_client

    backend_client = BackendClient(
        config.backend_api_url,
        timeout=config.backend_timeout_seconds,
        transport=transport,
    )
    logger.info(f"Backend client initialized: {backend_client.base_url}")
    return backend_client


async def close_backend() -> None:
    global backend_client
    if backend_client is not None:
        await backend_client.close()
        backend_client = None


def provide_backend() -> BackendClient:
    if backend_client is None:
        raise RuntimeError("後端連線未初始化: init_backend 尚未被呼叫")
    return backend_client
