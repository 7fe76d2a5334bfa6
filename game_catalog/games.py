"""Game queries backed by the local store.

Mirrors the query surface of ``CatalogClient`` so callers can swap sources.
Search falls back from full-text to substring matching, and then to the
remote catalog when the local store has too few matches.
"""
import random
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import psycopg2

from . import db
from .cache import LookupCache
from .catalog_client import CatalogClient
from .errors import GameCatalogError, StoreQueryFailed
from .images import cover_url, screenshot_url
from .logger import log_error_with_context, setup_logger
from .models import NamedRef, NormalizedGame

logger = setup_logger(__name__)


# Fewer local search hits than this triggers the remote catalog fallback
REMOTE_FALLBACK_THRESHOLD = 3
SIMILAR_GAMES_LIMIT = 20
RANDOM_POOL_MULTIPLIER = 10
RANDOM_POOL_MAX = 200
DETAIL_JOIN_WORKERS = 5

SearchStrategy = Callable[[str, int], list[dict[str, Any]]]


def new_genre_cache() -> LookupCache:
    return LookupCache("Genre")


def new_platform_cache() -> LookupCache:
    return LookupCache("Platform")


def load_names(cache: LookupCache, table: str) -> None:
    """
    Populate one lookup cache from its table if it is still empty.

    A store failure here is logged and left unloaded; names then resolve to
    placeholders and the next call retries the load.
    """
    if cache.loaded:
        return
    try:
        cache.get_or_load(lambda: db.fetch_lookup_names(table))
    except (psycopg2.Error, GameCatalogError) as e:
        log_error_with_context(logger, "Lookup load", table, e)


def load_name_maps(genre_cache: LookupCache, platform_cache: LookupCache) -> None:
    load_names(genre_cache, "genres")
    load_names(platform_cache, "platforms")


def resolve_refs(ids: list[int] | None, cache: LookupCache) -> list[NamedRef]:
    """Map ids to named references; unknown ids get a placeholder name."""
    return [NamedRef(id=item_id, name=cache.name_for(item_id)) for item_id in ids or []]


def row_to_game(
    row: dict[str, Any],
    genre_cache: LookupCache,
    platform_cache: LookupCache,
    screenshots: list[dict[str, Any]] | None = None,
    videos: list[dict[str, Any]] | None = None,
    similar_games: list[NormalizedGame] | None = None,
) -> NormalizedGame:
    """Convert a store row (plus optional detail joins) into a NormalizedGame."""
    return NormalizedGame(
        id=row["id"],
        name=row["name"],
        summary=row.get("summary"),
        cover={"url": cover_url(row["cover_image_id"])} if row.get("cover_image_id") else None,
        rating=row.get("rating"),
        first_release_date=db.to_unix_seconds(row.get("first_release_date")),
        genres=resolve_refs(row.get("genre_ids"), genre_cache),
        platforms=resolve_refs(row.get("platform_ids"), platform_cache),
        screenshots=[{"url": screenshot_url(s["image_id"])} for s in screenshots] if screenshots is not None else None,
        videos=[{"video_id": v["video_id"]} for v in videos] if videos is not None else None,
        similar_games=similar_games,
    )


def build_ts_query(query: str) -> str:
    """
    Build a to_tsquery expression requiring every whitespace-separated term.

    Example:
        "elden ring" -> "'elden' & 'ring'"
    """
    return " & ".join(f"'{term.replace(chr(39), chr(39) * 2)}'" for term in query.strip().split())


def _since(days: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


def dedupe_by_id(games: list[NormalizedGame]) -> list[NormalizedGame]:
    """Drop later games whose id was already seen."""
    seen: set[int] = set()
    unique = []
    for game in games:
        if game.id in seen:
            continue
        seen.add(game.id)
        unique.append(game)
    return unique


class GameStore:
    """
    Local-store implementation of the game query surface.

    Args:
        remote: Catalog client used as the search fallback
        genre_cache: Genre id -> name cache (shared across calls)
        platform_cache: Platform id -> name cache (shared across calls)
    """

    def __init__(
        self,
        remote: CatalogClient | None = None,
        genre_cache: LookupCache | None = None,
        platform_cache: LookupCache | None = None,
    ):
        self.remote = remote if remote is not None else CatalogClient()
        self.genre_cache = genre_cache if genre_cache is not None else new_genre_cache()
        self.platform_cache = platform_cache if platform_cache is not None else new_platform_cache()
        self.search_strategies: list[SearchStrategy] = [self._full_text_rows, self._substring_rows]

    def _to_games(self, rows: list[dict[str, Any]]) -> list[NormalizedGame]:
        if not rows:
            return []
        load_name_maps(self.genre_cache, self.platform_cache)
        return [row_to_game(row, self.genre_cache, self.platform_cache) for row in rows]

    def _select(self, conditions: list[str], params: list[Any], order_by: str, limit: int) -> list[dict[str, Any]]:
        try:
            return db.select_games(conditions, params, order_by, limit)
        except psycopg2.Error as e:
            raise StoreQueryFailed(str(e).strip()) from e

    def get_popular_recent_games(self, limit: int = 20) -> list[NormalizedGame]:
        rows = self._select(
            ["first_release_date > %s", "rating_count > 5", "cover_image_id IS NOT NULL"],
            [_since(180)],
            "rating_count",
            limit,
        )
        return self._to_games(rows)

    def get_top_rated_games(self, limit: int = 20) -> list[NormalizedGame]:
        rows = self._select(
            ["first_release_date > %s", "rating > 80", "rating_count > 10", "cover_image_id IS NOT NULL"],
            [_since(365)],
            "rating",
            limit,
        )
        return self._to_games(rows)

    def get_games_by_genre(self, genre_id: int, limit: int = 20) -> list[NormalizedGame]:
        rows = self._select(
            ["genre_ids @> %s", "first_release_date > %s", "rating_count > 3", "cover_image_id IS NOT NULL"],
            [[int(genre_id)], _since(730)],
            "rating",
            limit,
        )
        return self._to_games(rows)

    def get_filtered_games(self, genre_ids: list[int], platform_ids: list[int], limit: int = 20) -> list[NormalizedGame]:
        conditions = ["rating_count > 1", "cover_image_id IS NOT NULL"]
        params: list[Any] = []

        if genre_ids:
            conditions.append("genre_ids @> %s")
            params.append([int(g) for g in genre_ids])
        if platform_ids:
            conditions.append("platform_ids @> %s")
            params.append([int(p) for p in platform_ids])

        return self._to_games(self._select(conditions, params, "rating", limit))

    def get_random_curated_games(self, limit: int = 20) -> list[NormalizedGame]:
        """Pick a random sample from a wider rating-ordered pool of well-rated games."""
        pool_size = min(limit * RANDOM_POOL_MULTIPLIER, RANDOM_POOL_MAX)
        rows = self._select(
            ["rating > 70", "rating_count > 5", "cover_image_id IS NOT NULL"],
            [],
            "rating",
            pool_size,
        )

        games = self._to_games(rows)
        random.shuffle(games)
        return games[:limit]

    def _full_text_rows(self, query: str, limit: int) -> list[dict[str, Any]]:
        return db.select_games(
            ["cover_image_id IS NOT NULL", "search_tsv @@ to_tsquery('simple', %s)"],
            [build_ts_query(query)],
            "rating_count",
            limit,
        )

    def _substring_rows(self, query: str, limit: int) -> list[dict[str, Any]]:
        return db.select_games(
            ["cover_image_id IS NOT NULL", "name ILIKE %s"],
            [f"%{query.strip()}%"],
            "rating_count",
            limit,
        )

    def search_local(self, query: str, limit: int = 20) -> list[NormalizedGame]:
        """
        Try each search strategy in order until one returns rows.

        A failing strategy falls through to the next one; if the last strategy
        fails, the error surfaces as StoreQueryFailed.
        """
        for index, strategy in enumerate(self.search_strategies):
            is_last = index == len(self.search_strategies) - 1
            try:
                rows = strategy(query, limit)
            except psycopg2.Error as e:
                if is_last:
                    raise StoreQueryFailed(str(e).strip()) from e
                logger.warning(f"Search strategy {index} failed for {query!r}, falling back: {e}")
                continue

            if rows:
                return self._to_games(rows)

        return []

    def search_games(self, query: str, limit: int = 20) -> list[NormalizedGame]:
        """
        Search local games, topping up from the remote catalog when few match.

        Local results win on id collisions. A remote failure degrades to the
        local results.
        """
        local_results = self.search_local(query, limit)

        if len(local_results) >= REMOTE_FALLBACK_THRESHOLD:
            return local_results[:limit]

        try:
            remote_results = self.remote.search_games(query, limit)
        except Exception as e:
            log_error_with_context(logger, "Remote search", query, e)
            return local_results

        return dedupe_by_id(local_results + remote_results)[:limit]

    def get_game_detail(self, game_id: int) -> NormalizedGame | None:
        """
        Load a game with its screenshots, videos and similar games.

        Returns None when the game is missing or the lookup fails.
        """
        try:
            rows = db.select_games(["id = %s"], [int(game_id)], "id", 1)
        except psycopg2.Error as e:
            log_error_with_context(logger, "Game detail", str(game_id), e)
            return None

        if not rows:
            return None

        screenshots_query = "SELECT image_id FROM game_screenshots WHERE game_id = %s ORDER BY id"
        videos_query = "SELECT video_id FROM game_videos WHERE game_id = %s ORDER BY id"
        similar_query = "SELECT similar_game_id FROM game_similar WHERE game_id = %s"

        # The three joins and the two name map loads are independent of each other
        with ThreadPoolExecutor(max_workers=DETAIL_JOIN_WORKERS) as executor:
            screenshots_future = executor.submit(self._fetch_related, screenshots_query, game_id)
            videos_future = executor.submit(self._fetch_related, videos_query, game_id)
            similar_future = executor.submit(self._fetch_related, similar_query, game_id)
            name_futures = [
                executor.submit(load_names, self.genre_cache, "genres"),
                executor.submit(load_names, self.platform_cache, "platforms"),
            ]

            screenshots = screenshots_future.result()
            videos = videos_future.result()
            similar_links = similar_future.result()
            for future in name_futures:
                future.result()

        similar_games = None
        similar_ids = [link["similar_game_id"] for link in similar_links]
        if similar_ids:
            try:
                similar_rows = db.select_games(
                    ["id = ANY(%s)", "cover_image_id IS NOT NULL"],
                    [similar_ids],
                    "rating_count",
                    SIMILAR_GAMES_LIMIT,
                )
            except psycopg2.Error as e:
                log_error_with_context(logger, "Similar games", str(game_id), e)
                similar_rows = []

            if similar_rows:
                similar_games = [row_to_game(r, self.genre_cache, self.platform_cache) for r in similar_rows]

        return row_to_game(
            rows[0],
            self.genre_cache,
            self.platform_cache,
            screenshots=screenshots,
            videos=videos,
            similar_games=similar_games,
        )

    def _fetch_related(self, query: str, game_id: int) -> list[dict[str, Any]]:
        try:
            return db.fetch_all(query, (int(game_id),))
        except psycopg2.Error as e:
            log_error_with_context(logger, "Related rows", str(game_id), e)
            return []


_default_store: GameStore | None = None


def get_store() -> GameStore:
    """Process-wide store with shared lookup and token caches."""
    global _default_store
    if _default_store is None:
        _default_store = GameStore()
    return _default_store
