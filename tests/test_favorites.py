import json

import httpx
import pytest

from Favorite import service
from Favorite.index import FavoritesIndex

TRIP_FAV = "/api/trip-favorites"


def test_index_marks_and_lists():
    index = FavoritesIndex()
    index.load_trips([{"trip_id": 1}, {"trip_id": "2"}, {"note": "x"}])
    assert index.trips_loaded
    assert index.is_trip_favorited(2)

    index.load_place_list({"list_id": 10, "name": "想去"}, [{"place_id": 5}])
    index.load_place_list({"list_id": 11, "name": "美食"}, [])
    index.mark_place(11, 5, True)
    index.mark_place(10, 5, False)

    assert index.is_place_favorited(5)
    assert [(m["list_id"], m["checked"]) for m in index.lists_for_place(5)] == [(10, False), (11, True)]

    index.drop_list(11)
    assert not index.is_place_favorited(5)


class TripFavorites:
    """後端的行程收藏表 (已收藏時回傳「此行程已收藏」錯誤)"""

    def __init__(self, fake, favorited):
        self.ids = set(favorited)
        fake.route("GET", f"{TRIP_FAV}/user/7", handler=self.list)
        fake.route("POST", TRIP_FAV, handler=self.add)
        for trip_id in (1, 2, 3):
            fake.route("DELETE", f"{TRIP_FAV}/7/{trip_id}", handler=self.remove)

    def list(self, request):
        return httpx.Response(200, json={"success": True, "data": [{"trip_id": i} for i in self.ids]})

    def add(self, request):
        trip_id = json.loads(request.content)["trip_id"]
        if trip_id in self.ids:
            return httpx.Response(400, json={"success": False, "message": "此行程已收藏"})
        self.ids.add(trip_id)
        return httpx.Response(201, json={"success": True})

    def remove(self, request):
        self.ids.discard(int(request.url.path.rsplit("/", 1)[-1]))
        return httpx.Response(200, json={"success": True})


def test_double_toggle_returns_to_favorited(client, fake, login):
    login()
    table = TripFavorites(fake, favorited={2})

    first = client.post("/favorites/trips/2/toggle").json()
    assert first["requires_confirmation"] is True
    assert first["dialog"]["title"] == "取消收藏"

    dialog_id = first["dialog"]["dialog_id"]
    removed = client.post(f"/session/dialogs/{dialog_id}/confirm").json()["result"]
    assert removed["favorited"] is False
    assert removed["message"] == "已取消收藏"
    assert 2 not in table.ids

    second = client.post("/favorites/trips/2/toggle").json()
    assert second["favorited"] is True
    assert second["message"] == "收藏成功!"
    assert 2 in table.ids

    assert client.get("/favorites/trips").json()["trip_ids"] == [2]
    # 索引只在第一次使用時讀取
    assert len(fake.calls("GET", f"{TRIP_FAV}/user/7")) == 1


def test_already_favorited_is_treated_as_success(client, fake, login):
    login()
    TripFavorites(fake, favorited=set())
    fake.route("POST", TRIP_FAV, status=400, body={"success": False, "message": "此行程已收藏"})

    body = client.post("/favorites/trips/3/toggle").json()

    assert body["favorited"] is True


def test_favorites_require_login(client):
    assert client.post("/favorites/trips/2/toggle").status_code == 401


@pytest.mark.anyio
async def test_place_index_loads_once_and_tracks_toggles(backend, fake, user_state):
    fake.route("GET", "/api/favorites/7", body={"success": True, "favorites": [{"list_id": 10, "name": "想去"}]})
    fake.route("GET", "/api/favorites/list/10", body={"success": True, "places": [{"place_id": 5}]})
    fake.route("POST", "/api/favorites/toggle", body={"success": True, "action": "removed"})

    first = await service.lists_for_place(backend, user_state, 5)
    assert first["is_favorited"] is True
    assert first["lists"][0]["checked"] is True

    toggled = await service.toggle_place(backend, user_state, 10, 5)
    assert toggled == {"success": True, "action": "removed", "is_favorited": False}

    again = await service.lists_for_place(backend, user_state, 5)
    assert again["is_favorited"] is False
    assert len(fake.calls("GET", "/api/favorites/7")) == 1
    assert fake.body(fake.calls("POST", "/api/favorites/toggle")[0]) == {"listId": 10, "placeId": 5}


@pytest.mark.anyio
async def test_created_list_invalidates_index(backend, fake, user_state):
    fake.route("GET", "/api/favorites/7", body={"success": True, "favorites": []})
    fake.route("POST", "/api/favorites/list/create", body={"success": True, "list_id": 12})

    await service.ensure_place_index(backend, user_state)
    assert user_state.favorites.places_loaded

    await service.create_list(backend, user_state, " 咖啡廳 ")

    assert not user_state.favorites.places_loaded
    sent = fake.body(fake.calls("POST", "/api/favorites/list/create")[0])
    assert sent == {"userId": 7, "name": "咖啡廳", "description": None}
