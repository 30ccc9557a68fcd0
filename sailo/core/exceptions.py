import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class FormValidationError(Exception):
    """表單驗證失敗 (不會發出任何後端請求)"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class BackendError(Exception):
    """後端 API 呼叫失敗 (網路錯誤或非 2xx 回應)"""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def with_prefix(self, prefix: str) -> "BackendError":
        return BackendError(self.status_code, f"{prefix}: {self.message}")


class PermissionDeniedError(Exception):
    """僅供 UX 的權限檢查 (後端仍需自行把關)"""

    def __init__(self, message: str, redirect: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.redirect = redirect


async def _form_validation_handler(request: Request, exc: FormValidationError):
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": exc.message, "field": exc.field},
    )


async def _backend_error_handler(request: Request, exc: BackendError):
    logger.error(f"{request.method} {request.url.path} -> 後端錯誤 {exc.status_code}: {exc.message}")
    status_code = exc.status_code if 400 <= exc.status_code < 600 else 502
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": exc.message},
    )


async def _permission_handler(request: Request, exc: PermissionDeniedError):
    return JSONResponse(
        status_code=403,
        content={"success": False, "message": exc.message, "redirect": exc.redirect},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FormValidationError, _form_validation_handler)
    app.add_exception_handler(BackendError, _backend_error_handler)
    app.add_exception_handler(PermissionDeniedError, _permission_handler)
