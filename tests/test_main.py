import pytest
from fastapi.testclient import TestClient

import main
from api_client import GENERIC_ERROR
from catalog import CatalogCache
from conftest import ADMIN_JSON, USER_JSON, game_json
from storage import MemoryStorage

HEADERS = {"X-Session-Id": "browser-1"}


@pytest.fixture
def api(client, fake_session):
    fake_session.add("GET", "/games/showActivityGames", body=[
        game_json(1, "Nova Quest", 100.0),
        game_json(2, "Sky Colony", 50.0, discount=50, final_price=25.0, category="Strategy, Sim"),
    ])
    store = MemoryStorage()
    catalog = CatalogCache(client.list_active_games, ttl=300)
    main.app.dependency_overrides[main.get_storage] = lambda: store
    main.app.dependency_overrides[main.get_backend] = lambda: client
    main.app.dependency_overrides[main.get_catalog] = lambda: catalog
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def login(api, fake_session, user=USER_JSON):
    fake_session.add("POST", "/auth/login", body={"token": "tok", "user": user})
    res = api.post("/auth/login", json={"email": user["email"], "password": "secret1"}, headers=HEADERS)
    assert res.status_code == 200


def test_session_header_is_required(api):
    assert api.get("/cart").status_code == 400


def test_games_are_filtered_and_sorted(api):
    res = api.get("/games", params={"sort": "price_asc", "max_price": 30})

    assert res.status_code == 200
    assert [g["id"] for g in res.json()] == [2]
    assert res.json()[0]["finalPrice"] == 25.0


def test_categories(api):
    assert api.get("/games/categories").json() == ["Action", "Sim", "Strategy"]


def test_cart_flow(api):
    api.post("/cart/add", json={"gameId": 1}, headers=HEADERS)
    api.post("/cart/add", json={"gameId": 1}, headers=HEADERS)
    res = api.post("/cart/add", json={"gameId": 2}, headers=HEADERS)

    assert res.json()["total"] == 225.0
    assert res.json()["itemCount"] == 3

    res = api.post("/cart/update", json={"gameId": 1, "quantity": 0}, headers=HEADERS)
    assert res.json()["itemCount"] == 1
    assert api.get("/cart", headers=HEADERS).json()["total"] == 25.0


def test_carts_are_per_session(api):
    api.post("/cart/add", json={"gameId": 1}, headers=HEADERS)

    assert api.get("/cart", headers={"X-Session-Id": "other"}).json()["itemCount"] == 0


def test_checkout_requires_login(api, fake_session):
    api.post("/cart/add", json={"gameId": 1}, headers=HEADERS)

    assert api.post("/checkout", headers=HEADERS).status_code == 401


def test_checkout_with_empty_cart_makes_no_request(api, fake_session):
    login(api, fake_session)
    fake_session.calls.clear()

    res = api.post("/checkout", headers=HEADERS)

    assert res.status_code == 400
    assert "cart is empty" in res.json()["detail"]
    assert fake_session.calls == []


def test_checkout_success(api, fake_session):
    login(api, fake_session)
    fake_session.add("POST", "/orders/create", body={"orderId": 5, "paymentLink": "https://pay.example.com/5"})
    api.post("/cart/add", json={"gameId": 2}, headers=HEADERS)

    res = api.post("/checkout", headers=HEADERS)

    assert res.status_code == 200
    assert res.json()["paymentLink"] == "https://pay.example.com/5"
    assert res.headers["Refresh"] == "1.5; url=https://pay.example.com/5"
    assert api.get("/cart", headers=HEADERS).json()["items"] == []


def test_checkout_failure_surfaces_backend_message(api, fake_session):
    login(api, fake_session)
    fake_session.add("POST", "/orders/create", status=400, body={"message": "Out of keys for Nova Quest"})
    api.post("/cart/add", json={"gameId": 1}, headers=HEADERS)

    res = api.post("/checkout", headers=HEADERS)

    assert res.status_code == 400
    assert res.json()["detail"] == "Out of keys for Nova Quest"
    assert api.get("/cart", headers=HEADERS).json()["itemCount"] == 1


def test_payment_callback(api):
    assert api.get("/payment/callback", params={"status": "approved", "payment_id": "1"}).json()["state"] == "success"
    assert api.get("/payment/callback", params={"status": "in_process"}).json()["state"] == "pending"
    assert api.get("/payment/callback").json()["state"] == "failure"


def test_orders_show_keys_only_when_completed(api, fake_session):
    login(api, fake_session)
    key = {"id": 1, "gameId": 1, "gameTitle": "Nova Quest", "key": "KEY-1", "status": 1}
    item = {"gameId": 1, "gameTitle": "Nova Quest", "quantity": 1, "price": 100.0}
    fake_session.add("GET", "/orders/user", body=[
        {"id": 1, "items": [item], "total": 100.0, "status": 1, "keys": [key]},
        {"id": 2, "items": [item], "total": 100.0, "status": 0, "keys": [key]},
    ])

    orders = api.get("/orders", headers=HEADERS).json()

    assert [len(o["keys"]) for o in orders] == [1, 0]


def test_orders_require_login(api):
    assert api.get("/orders", headers=HEADERS).status_code == 401


def test_admin_routes_reject_customers(api, fake_session):
    login(api, fake_session)

    assert api.get("/admin/orders", headers=HEADERS).status_code == 403


def test_admin_adds_keys_from_text(api, fake_session):
    login(api, fake_session, user=ADMIN_JSON)
    fake_session.add("POST", "/gamekeys/createGameKeys", body={"message": "ok"})

    res = api.post("/admin/keys", json={"gameId": 1, "keys": "AAA\n\n BBB \n"}, headers=HEADERS)

    assert res.status_code == 200
    assert fake_session.calls[-1]["json"] == {"gameId": 1, "keys": ["AAA", "BBB"]}


def test_admin_order_status_must_be_final(api, fake_session):
    login(api, fake_session, user=ADMIN_JSON)

    res = api.put("/admin/orders/3/status", json={"status": 0}, headers=HEADERS)

    assert res.status_code == 400


def test_admin_game_change_refreshes_catalog(api, fake_session):
    login(api, fake_session, user=ADMIN_JSON)
    assert len(api.get("/games").json()) == 2
    fake_session.add("PUT", "/games/updateStatus/2", body={"success": True})
    fake_session.add("GET", "/games/showActivityGames", body=[game_json(1, "Nova Quest", 100.0)])

    assert api.put("/admin/games/2/status", json={"status": 1}, headers=HEADERS).status_code == 200
    assert [g["id"] for g in api.get("/games").json()] == [1]


def test_malformed_orders_payload_returns_generic_error(api, fake_session):
    login(api, fake_session)
    fake_session.add("GET", "/orders/user", body=[{"id": 1, "items": [], "total": None, "status": 1}])

    res = api.get("/orders", headers=HEADERS)

    assert res.status_code == 502
    assert res.json()["detail"] == GENERIC_ERROR
