import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from settings import BACKEND_URL, BACKEND_TIMEOUT
from schemas import (
    CreateGameInput,
    CreateGameKeysInput,
    CreateOrderInput,
    CreateOrderResponse,
    Game,
    GameKey,
    LoginInput,
    LoginResponse,
    Order,
    RegisterInput,
    UpdateGameInput,
    User,
)

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong. Please try again later."

API_PREFIX = "/api/v1"


class ApiError(Exception):
    """A failed backend call. `message` is safe to show to the user."""

    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _error_message(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return GENERIC_ERROR
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return GENERIC_ERROR


def _parse(model, data: Any):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning("Unexpected %s payload from backend: %s", model.__name__, e)
        raise ApiError(502, GENERIC_ERROR) from e


def _parse_list(model, data: Any) -> list:
    if data is None:
        return []
    if not isinstance(data, list):
        logger.warning("Expected a list of %s from backend, got %s", model.__name__, type(data).__name__)
        raise ApiError(502, GENERIC_ERROR)
    return [_parse(model, item) for item in data]


def _unwrap(body: Any) -> Any:
    # Some endpoints wrap the payload as {status, data, message, timestamp}
    if isinstance(body, dict) and "data" in body and "status" in body:
        return body["data"]
    return body


class BackendClient:
    """
    Thin client for the game-key backend.

    Requests are never retried: a failed call raises ApiError and the caller
    decides whether to ask the user to try again.
    """

    def __init__(self, base_url: str = BACKEND_URL, timeout: float = BACKEND_TIMEOUT, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def request(self, method: str, path: str, token: Optional[str] = None, json: Any = None,
                on_401: str = "throw") -> Any:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        url = f"{self.base_url}{API_PREFIX}{path}"
        try:
            res = self.session.request(method, url, headers=headers, json=json, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError(None, GENERIC_ERROR) from e

        if res.status_code == 401 and on_401 == "return_none":
            return None
        if res.status_code >= 400:
            message = _error_message(res)
            logger.warning("%s %s -> %s: %s", method, path, res.status_code, message)
            raise ApiError(res.status_code, message)
        if res.status_code == 204 or not res.content:
            return None
        try:
            return _unwrap(res.json())
        except ValueError as e:
            raise ApiError(res.status_code, GENERIC_ERROR) from e

    def get(self, path: str, token: Optional[str] = None, on_401: str = "throw") -> Any:
        return self.request("GET", path, token=token, on_401=on_401)

    # Auth / users

    def login(self, payload: LoginInput) -> LoginResponse:
        data = self.request("POST", "/auth/login", json=payload.model_dump(by_alias=True))
        return _parse(LoginResponse, data)

    def create_user(self, payload: RegisterInput) -> None:
        self.request("POST", "/users/createUser", json=payload.model_dump(by_alias=True))

    def update_user(self, token: str, payload: Dict[str, Any]) -> None:
        self.request("POST", "/users/updateUser", token=token, json=payload)

    def list_users(self, token: str) -> List[User]:
        return _parse_list(User, self.get("/users/showUsers", token=token))

    def update_user_status(self, token: str, user_id: int, status: int) -> None:
        self.request("PUT", f"/users/updateStatus/{user_id}", token=token, json={"status": status})

    # Games

    def list_active_games(self) -> List[Game]:
        return _parse_list(Game, self.get("/games/showActivityGames"))

    def list_all_games(self, token: str) -> List[Game]:
        return _parse_list(Game, self.get("/games/showGames", token=token))

    def get_game(self, game_id: int) -> Game:
        return _parse(Game, self.get(f"/games/showGamesById/{game_id}"))

    def create_game(self, token: str, payload: CreateGameInput) -> Any:
        return self.request("POST", "/games/create", token=token, json=payload.model_dump(by_alias=True))

    def update_game(self, token: str, game_id: int, payload: UpdateGameInput) -> Any:
        body = payload.model_dump(by_alias=True, exclude_none=True)
        return self.request("PUT", f"/games/update/{game_id}", token=token, json=body)

    def delete_game(self, token: str, game_id: int) -> None:
        self.request("DELETE", f"/games/delete/{game_id}", token=token)

    def update_game_status(self, token: str, game_id: int, status: int) -> None:
        self.request("PUT", f"/games/updateStatus/{game_id}", token=token, json={"status": status})

    # Orders

    def create_order(self, token: str, payload: CreateOrderInput) -> CreateOrderResponse:
        data = self.request("POST", "/orders/create", token=token, json=payload.model_dump(by_alias=True))
        return _parse(CreateOrderResponse, data)

    def list_my_orders(self, token: str) -> List[Order]:
        return _parse_list(Order, self.get("/orders/user", token=token))

    def list_all_orders(self, token: str) -> List[Order]:
        return _parse_list(Order, self.get("/orders/all", token=token))

    def update_order_status(self, token: str, order_id: int, status: int) -> None:
        self.request("PUT", f"/orders/updateStatus/{order_id}", token=token, json={"status": status})

    # Keys

    def list_keys(self, token: str) -> List[GameKey]:
        return _parse_list(GameKey, self.get("/gamekeys/showGameKeys", token=token))

    def create_keys(self, token: str, payload: CreateGameKeysInput) -> None:
        self.request("POST", "/gamekeys/createGameKeys", token=token, json=payload.model_dump(by_alias=True))
