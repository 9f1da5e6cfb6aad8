from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from pydantic import ValidationError

from api_client import ApiError, BackendClient
from schemas import LoginInput, ProfileUpdateInput, RegisterInput, User
from storage import Storage, read_json, write_json

logger = logging.getLogger(__name__)


def token_key(session_id: str) -> str:
    return f"authToken:{session_id}"


def user_key(session_id: str) -> str:
    return f"user:{session_id}"


def age_from_birth_date(birth_date: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


class AuthSession:
    """
    Login state of one browser session: a bearer token plus the user record.

    Both are cached in storage; if either is missing or unreadable the
    session starts logged out and the leftovers are dropped.
    """

    def __init__(self, storage: Storage, session_id: str):
        self._storage = storage
        self._token_key = token_key(session_id)
        self._user_key = user_key(session_id)
        self.token: Optional[str] = None
        self.user: Optional[User] = None
        self._load()

    def _load(self) -> None:
        token = self._storage.get(self._token_key)
        raw_user = read_json(self._storage, self._user_key)
        if not token or raw_user is None:
            self._forget()
            return
        try:
            self.user = User.model_validate(raw_user)
        except ValidationError:
            logger.warning("Discarding invalid user record %s", self._user_key)
            self._forget()
            return
        self.token = token

    def _forget(self) -> None:
        self._storage.remove(self._token_key)
        self._storage.remove(self._user_key)
        self.token = None
        self.user = None

    def _remember(self, token: str, user: User) -> None:
        self._storage.set(self._token_key, token)
        write_json(self._storage, self._user_key, user.model_dump(mode="json", by_alias=True))
        self.token = token
        self.user = user

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_admin(self) -> bool:
        return bool(self.user and self.user.is_admin)

    def login(self, client: BackendClient, payload: LoginInput) -> User:
        res = client.login(payload)
        self._remember(res.token, res.user)
        logger.info("User %s logged in", res.user.id)
        return res.user

    def register(self, client: BackendClient, payload: RegisterInput) -> None:
        # Registration does not log the user in
        client.create_user(payload)

    def logout(self) -> None:
        self._forget()

    def update_profile(self, client: BackendClient, payload: ProfileUpdateInput) -> User:
        if not self.is_authenticated:
            raise ApiError(401, "Not logged in")
        user = self.user

        try:
            client.login(LoginInput(email=user.email, password=payload.current_password))
        except (ApiError, ValidationError):
            raise ApiError(401, "Current password is incorrect")

        if payload.new_password and len(payload.new_password) >= 6:
            password = payload.new_password
        else:
            password = payload.current_password

        age = user.age or 0
        if payload.birth_date:
            age = age_from_birth_date(payload.birth_date)

        profile_image = payload.profile_image if payload.profile_image is not None else user.profile_image
        body = {
            "id": user.id,
            "name": payload.name,
            "email": payload.email,
            "number": payload.number,
            "password": password,
            "age": age,
            "birthDate": payload.birth_date.isoformat() if payload.birth_date else None,
            "profileImage": profile_image,
            "function": 1 if user.is_admin else 0,
            "status": user.status or 0,
        }
        client.update_user(self.token, body)

        updated = user.model_copy(update={
            "name": payload.name,
            "email": payload.email,
            "number": payload.number,
            "age": age,
            "birth_date": payload.birth_date,
            "profile_image": profile_image,
        })
        self._remember(self.token, updated)
        return updated
