import pytest

from catalog import CatalogCache, derive_categories, filter_games
from conftest import make_game
from schemas import GameFilters


@pytest.fixture
def games():
    return [
        make_game(1, "Zelda Legends", 60.0, category="Adventure, RPG"),
        make_game(2, "apex racer", 40.0, discount=50, final_price=20.0, category="Racing"),
        make_game(3, "Mega RPG", 80.0, category="RPG"),
        make_game(4, "Builder", 15.0, category="Strategy"),
    ]


def ids(games):
    return [g.id for g in games]


def test_default_sort_is_title_ascending(games):
    assert ids(filter_games(games)) == [2, 4, 3, 1]


def test_search_is_case_insensitive(games):
    assert ids(filter_games(games, GameFilters(search="ZELDA"))) == [1]


def test_category_matches_inside_multi_tag_field(games):
    assert ids(filter_games(games, GameFilters(category="RPG"))) == [3, 1]


def test_price_bounds_use_effective_price_inclusive(games):
    result = filter_games(games, GameFilters(min_price=20, max_price=60, sort="price_asc"))
    assert ids(result) == [2, 1]


@pytest.mark.parametrize("sort,expected", [
    ("az", [2, 4, 3, 1]),
    ("za", [1, 3, 4, 2]),
    ("price_asc", [4, 2, 1, 3]),
    ("price_desc", [3, 1, 2, 4]),
])
def test_sort_keys(games, sort, expected):
    assert ids(filter_games(games, GameFilters(sort=sort))) == expected


def test_price_sort_is_stable_for_ties():
    same = [make_game(1, "B", 10.0), make_game(2, "A", 10.0)]
    assert ids(filter_games(same, GameFilters(sort="price_asc"))) == [1, 2]


def test_filter_membership_independent_of_sort(games):
    for sort in ("az", "za", "price_asc", "price_desc"):
        filters = GameFilters(category="RPG", max_price=70, sort=sort)
        assert set(ids(filter_games(games, filters))) == {1}


def test_derive_categories_splits_and_dedupes(games):
    games.append(make_game(5, "Empty", 1.0, category=""))
    assert derive_categories(games) == ["Adventure", "RPG", "Racing", "Strategy"]


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_cache_fetches_once_within_ttl(games):
    calls = []

    def fetch():
        calls.append(1)
        return games

    clock = FakeClock()
    cache = CatalogCache(fetch, ttl=300, clock=clock)

    cache.games(GameFilters(search="a"))
    cache.games(GameFilters(search="ap"))
    assert cache.categories() == ["Adventure", "RPG", "Racing", "Strategy"]
    assert len(calls) == 1

    clock.now = 301
    cache.games()
    assert len(calls) == 2


def test_cache_invalidate_forces_refetch(games):
    calls = []

    def fetch():
        calls.append(1)
        return games

    cache = CatalogCache(fetch, ttl=300, clock=FakeClock())
    cache.categories()
    cache.invalidate()
    cache.categories()

    assert len(calls) == 2
