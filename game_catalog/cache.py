"""Process-lifetime caches: the OAuth token slot and id -> name lookup maps."""

import threading
import time
from dataclasses import dataclass
from typing import Callable

# Refresh tokens a minute before the provider says they expire
TOKEN_EXPIRY_MARGIN_SECONDS = 60


@dataclass
class CachedToken:
    access_token: str
    expires_at: float


class TokenCache:
    """Single slot holding the current bearer token, if any."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._token: CachedToken | None = None

    def get(self) -> str | None:
        """Return the cached token while it is still valid, else None."""
        if self._token is not None and self._clock() < self._token.expires_at:
            return self._token.access_token
        return None

    def store(self, access_token: str, expires_in: float) -> CachedToken:
        self._token = CachedToken(
            access_token=access_token,
            expires_at=self._clock() + expires_in - TOKEN_EXPIRY_MARGIN_SECONDS,
        )
        return self._token

    def invalidate(self) -> None:
        self._token = None


class LookupCache:
    """
    Populate-once, read-many ``id -> name`` map.

    Concurrent first loads are harmless: the first writer wins and later
    loaders' results are discarded.
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._names: dict[int, str] | None = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._names is not None

    def get_or_load(self, loader: Callable[[], dict[int, str]]) -> dict[int, str]:
        if self._names is not None:
            return self._names

        names = loader()
        with self._lock:
            if self._names is None:
                self._names = names
        return self._names

    def name_for(self, item_id: int) -> str:
        """Resolve an id to its display name, synthesizing a placeholder if unknown."""
        names = self._names or {}
        return names.get(item_id) or f"{self.kind} {item_id}"
