from typing import Any

import psycopg2

from . import db
from .cache import LookupCache
from .errors import RecommendationFailed
from .games import load_name_maps, new_genre_cache, new_platform_cache, resolve_refs
from .images import cover_url
from .models import RecommendedGame


RECOMMEND_PROCEDURE = "recommend_games"


def get_recommendations(
    game_id: int,
    limit: int = 10,
    genre_cache: LookupCache | None = None,
    platform_cache: LookupCache | None = None,
) -> list[RecommendedGame]:
    """
    Fetch games similar to game_id from the store's similarity function.

    Args:
        game_id: Source game id
        limit: Maximum number of recommendations
        genre_cache: Genre name cache (a fresh one if omitted)
        platform_cache: Platform name cache (a fresh one if omitted)

    Returns:
        Recommended games, each with a similarity_score

    Raises:
        RecommendationFailed: If the similarity function raises
    """
    try:
        raw = db.call_procedure(RECOMMEND_PROCEDURE, source_game_id=int(game_id), result_limit=int(limit))
    except psycopg2.Error as e:
        raise RecommendationFailed(str(e).strip()) from e

    if not raw:
        return []

    genre_cache = genre_cache if genre_cache is not None else new_genre_cache()
    platform_cache = platform_cache if platform_cache is not None else new_platform_cache()
    load_name_maps(genre_cache, platform_cache)

    return [_to_recommended(row, genre_cache, platform_cache) for row in raw]


def _to_recommended(row: dict[str, Any], genre_cache: LookupCache, platform_cache: LookupCache) -> RecommendedGame:
    return RecommendedGame(
        id=row["id"],
        name=row["name"],
        summary=row.get("summary"),
        cover={"url": cover_url(row["cover_image_id"])} if row.get("cover_image_id") else None,
        rating=row.get("rating"),
        first_release_date=db.to_unix_seconds(row.get("first_release_date")),
        genres=resolve_refs(row.get("genre_ids"), genre_cache),
        platforms=resolve_refs(row.get("platform_ids"), platform_cache),
        similarity_score=float(row["similarity_score"]),
    )
