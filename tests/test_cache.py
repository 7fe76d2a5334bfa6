from unittest.mock import MagicMock

from game_catalog.cache import TOKEN_EXPIRY_MARGIN_SECONDS, LookupCache, TokenCache


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_token_cache_empty():
    assert TokenCache().get() is None


def test_token_cache_returns_valid_token():
    clock = FakeClock()
    cache = TokenCache(clock=clock)

    cache.store("abc", 3600)

    assert cache.get() == "abc"


def test_token_cache_expires_with_margin():
    """Tokens are treated as expired a minute before the provider's expiry."""
    clock = FakeClock()
    cache = TokenCache(clock=clock)
    cache.store("abc", 3600)

    clock.now += 3600 - TOKEN_EXPIRY_MARGIN_SECONDS - 1
    assert cache.get() == "abc"

    clock.now += 1
    assert cache.get() is None


def test_token_cache_invalidate():
    cache = TokenCache(clock=FakeClock())
    cache.store("abc", 3600)

    cache.invalidate()

    assert cache.get() is None


def test_lookup_cache_loads_once():
    cache = LookupCache("Genre")
    loader = MagicMock(return_value={12: "Role-playing (RPG)"})

    assert not cache.loaded
    cache.get_or_load(loader)
    cache.get_or_load(loader)

    assert cache.loaded
    loader.assert_called_once()


def test_lookup_cache_first_writer_wins():
    cache = LookupCache("Genre")

    cache.get_or_load(lambda: {1: "First"})
    names = cache.get_or_load(lambda: {1: "Second"})

    assert names == {1: "First"}


def test_lookup_cache_name_for():
    cache = LookupCache("Platform")
    cache.get_or_load(lambda: {6: "PC (Microsoft Windows)"})

    assert cache.name_for(6) == "PC (Microsoft Windows)"
    assert cache.name_for(999) == "Platform 999"


def test_lookup_cache_placeholder_before_load():
    assert LookupCache("Genre").name_for(5) == "Genre 5"
