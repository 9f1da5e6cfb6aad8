from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, List

from pydantic import TypeAdapter, ValidationError

from schemas import CartItem, CreateOrderInput, Game, OrderLine
from storage import Storage, read_json, write_json

logger = logging.getLogger(__name__)

_items_adapter = TypeAdapter(List[CartItem])

_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(key: str) -> threading.Lock:
    with _locks_guard:
        return _locks.setdefault(key, threading.Lock())


def cart_key(session_id: str) -> str:
    return f"cart:{session_id}"


class CartStore:
    """
    Cart for one browser session.

    Holds at most one entry per game id, in insertion order. Every mutation
    writes the whole snapshot back to storage; a missing or corrupt snapshot
    loads as an empty cart.
    """

    def __init__(self, storage: Storage, key: str):
        self._storage = storage
        self._key = key
        self._items: List[CartItem] = self._load()

    def _load(self) -> List[CartItem]:
        raw = read_json(self._storage, self._key, default=[])
        try:
            return _items_adapter.validate_python(raw)
        except ValidationError:
            logger.warning("Discarding invalid cart snapshot %s", self._key)
            self._storage.remove(self._key)
            return []

    def _save(self) -> None:
        write_json(self._storage, self._key, _items_adapter.dump_python(self._items, mode="json", by_alias=True))

    @property
    def items(self) -> List[CartItem]:
        return [item.model_copy() for item in self._items]

    def _find(self, game_id: int):
        for item in self._items:
            if item.game.id == game_id:
                return item
        return None

    @contextmanager
    def _mutate(self):
        # Other stores may share the key; reload under the lock before changing anything
        with _lock_for(self._key):
            self._items = self._load()
            yield
            self._save()

    def add_item(self, game: Game) -> None:
        with self._mutate():
            existing = self._find(game.id)
            if existing is not None:
                existing.quantity += 1
            else:
                self._items.append(CartItem(game=game, quantity=1))

    def remove_item(self, game_id: int) -> None:
        with self._mutate():
            self._items = [item for item in self._items if item.game.id != game_id]

    def update_quantity(self, game_id: int, quantity: int) -> None:
        if quantity <= 0:
            self.remove_item(game_id)
            return
        with self._mutate():
            existing = self._find(game_id)
            if existing is not None:
                existing.quantity = quantity

    def clear_cart(self) -> None:
        with self._mutate():
            self._items = []

    @property
    def total(self) -> float:
        return round(sum(item.game.effective_price * item.quantity for item in self._items), 2)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    def is_empty(self) -> bool:
        return not self._items

    def to_order_input(self) -> CreateOrderInput:
        return CreateOrderInput(items=[OrderLine(game_id=i.game.id, quantity=i.quantity) for i in self._items])

    def summary(self) -> dict:
        return {
            "items": _items_adapter.dump_python(self._items, mode="json", by_alias=True),
            "total": self.total,
            "itemCount": self.item_count,
        }
