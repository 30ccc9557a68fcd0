import httpx
import pytest

from core.exceptions import BackendError
from Trip import copier

TRIP_PATH = "/api/trip-management/trips"


@pytest.mark.anyio
async def test_copy_sends_target_trip_and_current_user(backend, fake, user_state):
    fake.route("POST", f"{TRIP_PATH}/31/copy", body={"success": True, "data": {"trip_id": 88}})

    result = await copier.copy_trip(backend, user_state, 31)

    sent = fake.calls("POST", f"{TRIP_PATH}/31/copy")
    assert len(sent) == 1
    assert fake.body(sent[0]) == {"user_id": 7}
    # 導頁之前交接值就已經寫好
    assert user_state.handoff.peek("open_trip_id") == 88
    assert result["redirect"] == copier.TRIP_PAGE
    assert result["message"] == copier.COPY_SUCCESS_MESSAGE


@pytest.mark.anyio
async def test_failed_copy_leaves_no_handoff(backend, fake, user_state):
    fake.route("POST", f"{TRIP_PATH}/31/copy", status=500, body={"success": False, "message": "複製失敗"})

    with pytest.raises(BackendError):
        await copier.copy_trip(backend, user_state, 31)

    assert user_state.handoff.peek("open_trip_id") is None


@pytest.mark.anyio
async def test_owner_opens_without_copy(backend, fake, user_state):
    result = await copier.open_or_copy(backend, user_state, 31, owner_id=7)

    assert fake.requests == []
    assert result["trip_id"] == 31
    assert user_state.handoff.take("open_trip_id") == 31


def test_copy_then_landing_opens_new_trip(client, fake, login):
    login()

    def detail(request: httpx.Request):
        return httpx.Response(200, json={
            "success": True,
            "data": {"trip": {"trip_id": 88, "trip_name": "複製的行程"}, "days": []},
        })

    fake.route("POST", f"{TRIP_PATH}/31/copy", body={"success": True, "data": {"trip_id": 88}})
    fake.route("GET", f"{TRIP_PATH}/88", handler=detail)

    copied = client.post("/trips/31/open", json={"owner_id": 99}).json()
    assert copied["trip_id"] == 88
    assert client.get("/session").json()["handoffs"] == {"open_trip_id": 88}

    landing = client.get("/trips/landing").json()
    assert landing["trip_id"] == 88
    assert client.get("/session").json()["handoffs"] == {}


def test_copy_requires_login(client, fake):
    assert client.post("/trips/31/copy").status_code == 401
    assert fake.requests == []
