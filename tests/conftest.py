import json

import pytest

from api_client import BackendClient
from schemas import Game
from storage import MemoryStorage


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body
        self.content = b"" if body is None else json.dumps(body).encode()

    def json(self):
        if self._body is None:
            raise ValueError("no body")
        return self._body


class FakeSession:
    """Stands in for requests.Session; answers by (method, path)."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, path, status=200, body=None, exc=None):
        self.routes[(method, path)] = exc if exc is not None else FakeResponse(status, body)

    def request(self, method, url, headers=None, json=None, timeout=None):
        path = url.split("/api/v1", 1)[1]
        self.calls.append({"method": method, "path": path, "headers": headers or {}, "json": json})
        entry = self.routes.get((method, path))
        if entry is None:
            return FakeResponse(404, {"message": "Not found"})
        if isinstance(entry, Exception):
            raise entry
        return entry


def game_json(id, title, price, discount=0, final_price=None, category="Action", status=0):
    data = {
        "id": id,
        "title": title,
        "description": f"{title} description",
        "price": price,
        "discount": discount,
        "category": category,
        "coverImage": f"https://img.example.com/{id}.png",
        "status": status,
    }
    if final_price is not None:
        data["finalPrice"] = final_price
    return data


def make_game(id, title="Game", price=10.0, **kwargs):
    return Game.model_validate(game_json(id, title, price, **kwargs))


USER_JSON = {"id": 7, "name": "Ana", "email": "ana@example.com", "isAdmin": False, "status": 0}
ADMIN_JSON = {"id": 1, "name": "Root", "email": "root@example.com", "isAdmin": True, "status": 0}


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def client(fake_session):
    return BackendClient(base_url="http://backend.test", timeout=1, session=fake_session)
