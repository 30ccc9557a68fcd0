from datetime import date

import pytest

from core.exceptions import FormValidationError
from Trip.composer import build_trip_payload, calculate_days, validate_trip_form
from Trip.dto import TripForm

TRIP_PATH = "/api/trip-management/trips"


def _form(**overrides):
    values = {
        "trip_name": "台南三日遊",
        "start_date": "2025-01-01",
        "end_date": "2025-01-03",
        "description": "吃遍台南",
        "summary_text": "",
        "is_public": True,
    }
    values.update(overrides)
    return TripForm(**values)


def test_calculate_days_is_inclusive():
    assert calculate_days(date(2025, 1, 1), date(2025, 1, 3)) == 3
    assert calculate_days(date(2025, 1, 1), date(2025, 1, 1)) == 1
    assert calculate_days(None, date(2025, 1, 1)) == 0


def test_validation_runs_in_order():
    with pytest.raises(FormValidationError) as exc:
        validate_trip_form(_form(trip_name=""), None)
    assert exc.value.message == "請先登入"

    with pytest.raises(FormValidationError) as exc:
        validate_trip_form(_form(trip_name="   ", end_date=""), 7)
    assert exc.value.message == "請輸入行程名稱"
    assert exc.value.field == "trip_name"

    with pytest.raises(FormValidationError) as exc:
        validate_trip_form(_form(trip_name="x" * 101), 7)
    assert exc.value.message == "行程名稱不能超過 100 字"

    with pytest.raises(FormValidationError) as exc:
        validate_trip_form(_form(end_date=""), 7)
    assert exc.value.message == "請選擇行程日期"

    with pytest.raises(FormValidationError) as exc:
        validate_trip_form(_form(description="d" * 501), 7)
    assert exc.value.message == "描述不能超過 500 字"

    with pytest.raises(FormValidationError) as exc:
        validate_trip_form(_form(summary_text="s" * 201), 7)
    assert exc.value.message == "摘要不能超過 200 字"


def test_payload_for_create_and_update():
    form = _form(cover_image_url="  ")
    start, end = validate_trip_form(form, 7)

    created = build_trip_payload(form, start, end, user_id=7, default_cover="cover.jpg")
    assert created["user_id"] == 7
    assert created["location_id"] is None
    assert created["cover_image_url"] == "cover.jpg"
    assert created["is_public"] == 1
    assert created["summary_text"] is None

    updated = build_trip_payload(form, start, end, default_cover="cover.jpg")
    assert "user_id" not in updated
    assert "location_id" not in updated


def test_create_trip_reports_days_created(client, fake, login):
    login()
    fake.route("POST", TRIP_PATH, body={"success": True, "data": {"trip_id": 42, "days_created": 3}})

    response = client.post("/trips", json=_form().model_dump())

    assert response.status_code == 201
    body = response.json()
    assert body["trip_id"] == 42
    assert body["days_created"] == 3
    assert body["message"] == "行程建立成功！已自動生成 3 天的行程"

    sent = fake.body(fake.calls("POST", TRIP_PATH)[0])
    assert sent["start_date"] == "2025-01-01"
    assert sent["end_date"] == "2025-01-03"
    assert sent["user_id"] == 7


def test_empty_name_sends_nothing(client, fake, login):
    login()
    before = len(fake.requests)

    response = client.post("/trips", json=_form(trip_name="").model_dump())

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "請輸入行程名稱", "field": "trip_name"}
    assert len(fake.requests) == before


def test_end_before_start_is_rejected(client, fake, login):
    login()
    before = len(fake.requests)

    response = client.post("/trips", json=_form(start_date="2025-01-05", end_date="2025-01-03").model_dump())

    assert response.status_code == 400
    assert response.json()["message"] == "結束日期不能早於開始日期"
    assert len(fake.requests) == before


def test_backend_failure_keeps_draft(client, fake, login):
    login()
    fake.route("POST", TRIP_PATH, status=500, body={"success": False, "message": "資料庫錯誤"})

    response = client.post("/trips", json=_form().model_dump())

    assert response.status_code == 500
    assert response.json()["message"] == "建立行程失敗: 資料庫錯誤"

    draft = client.get("/trips/composer/draft").json()["draft"]
    assert draft["mode"] == "create"
    assert draft["form"]["trip_name"] == "台南三日遊"
    assert draft["error"] == "資料庫錯誤"


def test_update_trip_message(client, fake, login):
    login()
    fake.route("PUT", f"{TRIP_PATH}/42", body={"success": True})

    response = client.put("/trips/42", json=_form(trip_name="台南四日遊").model_dump())

    assert response.status_code == 200
    assert response.json()["message"] == "行程已更新！"
    sent = fake.body(fake.calls("PUT", f"{TRIP_PATH}/42")[0])
    assert sent["trip_name"] == "台南四日遊"
    assert "user_id" not in sent


def test_days_preview(client):
    response = client.get("/trips/composer/days", params={"start_date": "2025-01-01", "end_date": "2025-01-03"})
    assert response.json() == {"days": 3}
