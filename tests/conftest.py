import json
import os

# 對話框關閉動畫在測試中不用等
os.environ.setdefault("MODAL_TRANSITION_MS", "0")
os.environ.setdefault("BACKEND_API_URL", "http://backend.test")

import httpx
import pytest
from fastapi.testclient import TestClient

from core.config import get_config

get_config.cache_clear()

from core.backend import BackendClient, provide_backend
from core.session import SessionState, sessions
from main import app

USER = {"user_id": 7, "email": "traveler@sailo.tw", "nickname": "小旅人"}


class FakeBackend:
    """httpx.MockTransport 用的假後端 (依 method + path 回應，並記錄所有請求)"""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def route(self, method, path, body=None, status=200, headers=None, handler=None):
        if handler is None:
            def handler(request):
                return httpx.Response(status, json=body, headers=headers)
        self.routes[(method, path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"success": False, "message": "not found"})
        return handler(request)

    def calls(self, method, path):
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake():
    return FakeBackend()


@pytest.fixture
def backend(fake):
    return BackendClient("http://backend.test", transport=httpx.MockTransport(fake))


@pytest.fixture
def state():
    return SessionState("test-sid")


@pytest.fixture
def user_state(state):
    state.login(dict(USER))
    return state


@pytest.fixture
def client(backend):
    # lifespan (排程) 不啟動，後端改成假的
    app.dependency_overrides[provide_backend] = lambda: backend
    sessions.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
    sessions.clear()


@pytest.fixture
def login(client, fake):
    """以假後端完成登入，回傳目前的 SessionState"""

    def _login(user=None):
        user = user or dict(USER)
        fake.route(
            "POST", "/api/v2/auth/login",
            body={"success": True, "user": user, "message": "登入成功"},
            headers={"set-cookie": "accessToken=abc; Path=/; HttpOnly"},
        )
        response = client.post("/auth/login", json={"email": user["email"], "password": "Secret#2025"})
        assert response.status_code == 200
        sid = client.cookies.get(get_config().session_cookie_name)
        return sessions.get(sid)

    return _login
