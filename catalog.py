from __future__ import annotations

import threading
import time
from typing import Callable, List, Optional, Tuple

from schemas import Game, GameFilters


def matches(game: Game, filters: GameFilters) -> bool:
    if filters.search and filters.search.lower() not in game.title.lower():
        return False
    # Substring match, so a game tagged "Action, RPG" is found under "RPG"
    if filters.category and filters.category not in (game.category or ""):
        return False
    price = game.effective_price
    if filters.min_price is not None and price < filters.min_price:
        return False
    if filters.max_price is not None and price > filters.max_price:
        return False
    return True


def sort_games(games: List[Game], sort: str = "az") -> List[Game]:
    if sort == "za":
        return sorted(games, key=lambda g: g.title.casefold(), reverse=True)
    if sort == "price_asc":
        return sorted(games, key=lambda g: g.effective_price)
    if sort == "price_desc":
        return sorted(games, key=lambda g: g.effective_price, reverse=True)
    return sorted(games, key=lambda g: g.title.casefold())


def filter_games(games: List[Game], filters: Optional[GameFilters] = None) -> List[Game]:
    filters = filters or GameFilters()
    return sort_games([g for g in games if matches(g, filters)], filters.sort)


def derive_categories(games: List[Game]) -> List[str]:
    tags = set()
    for g in games:
        if not g.category:
            continue
        for tag in g.category.split(","):
            tag = tag.strip()
            if tag:
                tags.add(tag)
    return sorted(tags)


class CatalogCache:
    """
    Storefront game list with its category facets.

    The list is fetched at most once per `ttl` seconds and only one fetch
    runs at a time; categories are derived once per fetch.
    """

    def __init__(self, fetch: Callable[[], List[Game]], ttl: float = 300, clock: Callable[[], float] = time.monotonic):
        self._fetch = fetch
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._games: List[Game] = []
        self._categories: List[str] = []
        self._fetched_at: Optional[float] = None

    def _stale(self) -> bool:
        return self._fetched_at is None or self._clock() - self._fetched_at >= self._ttl

    def snapshot(self) -> Tuple[List[Game], List[str]]:
        with self._lock:
            if self._stale():
                games = self._fetch()
                self._games = games
                self._categories = derive_categories(games)
                self._fetched_at = self._clock()
            return list(self._games), list(self._categories)

    def games(self, filters: Optional[GameFilters] = None) -> List[Game]:
        games, _ = self.snapshot()
        return filter_games(games, filters)

    def categories(self) -> List[str]:
        return self.snapshot()[1]

    def invalidate(self) -> None:
        with self._lock:
            self._fetched_at = None
