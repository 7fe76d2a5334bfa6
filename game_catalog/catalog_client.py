"""IGDB catalog API client.

Authenticates with Twitch client credentials, caches the bearer token and
retries exactly once when the resource server answers 401.
"""
import time
from typing import Any

import httpx

from .cache import TokenCache
from .config import IGDB_BASE_URL, REQUEST_TIMEOUT_SECONDS, TWITCH_TOKEN_URL, get_twitch_credentials
from .errors import ApiError, AuthFailed
from .http_client import RateLimiter
from .images import igdb_image_url
from .logger import setup_logger
from .models import NamedRef, NormalizedGame

logger = setup_logger(__name__)


GAME_FIELDS = (
    "fields name, cover.url, genres.id, genres.name, platforms.id, platforms.name, "
    "first_release_date, rating, summary, screenshots.url, "
    "videos.video_id, similar_games.name, similar_games.cover.url, "
    "similar_games.id, similar_games.rating, similar_games.genres.name, "
    "similar_games.platforms.name, similar_games.first_release_date;"
)

_DAY_SECONDS = 24 * 60 * 60
POPULAR_WINDOW_SECONDS = 6 * 30 * _DAY_SECONDS
TOP_RATED_WINDOW_SECONDS = 365 * _DAY_SECONDS
GENRE_WINDOW_SECONDS = 2 * 365 * _DAY_SECONDS


class CatalogClient:
    """
    Authenticated access to the IGDB v4 API.

    Args:
        token_cache: Token slot shared across calls (a fresh one by default)
        rate_limiter: Optional limiter applied before every API request
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        token_cache: TokenCache | None = None,
        rate_limiter: RateLimiter | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self.token_cache = token_cache if token_cache is not None else TokenCache()
        self.rate_limiter = rate_limiter
        self.timeout = timeout

    def get_token(self) -> str:
        """
        Return a valid bearer token, exchanging client credentials if needed.

        Raises:
            ConfigurationError: If the client credentials are not configured
            AuthFailed: If the token endpoint rejects the exchange
        """
        cached = self.token_cache.get()
        if cached:
            return cached

        client_id, client_secret = get_twitch_credentials()

        response = httpx.post(
            TWITCH_TOKEN_URL,
            params={
                "client_id": client_id,
                "client_secret": client_secret,
                "grant_type": "client_credentials",
            },
            timeout=self.timeout,
        )

        if not 200 <= response.status_code < 300:
            raise AuthFailed(response.status_code)

        data = response.json()
        self.token_cache.store(data["access_token"], data["expires_in"])
        logger.debug(f"Obtained Twitch token valid for {data['expires_in']}s")

        return data["access_token"]

    def invalidate_token(self) -> None:
        self.token_cache.invalidate()

    def query(self, endpoint: str, body: str) -> list[dict[str, Any]]:
        """
        POST an Apicalypse query to an IGDB endpoint.

        A 401 invalidates the cached token and the request is retried once
        with a fresh token. Any other failure, or a second failure, raises.

        Args:
            endpoint: Endpoint name, e.g. "games"
            body: Query text (fields/where/sort/limit)

        Returns:
            Decoded JSON array

        Raises:
            ApiError: If the final response is not 2xx
        """
        response = self._post(endpoint, body, self.get_token())

        if response.status_code == 401:
            logger.info(f"IGDB {endpoint} returned 401, refreshing token")
            self.invalidate_token()
            response = self._post(endpoint, body, self.get_token())

        if not 200 <= response.status_code < 300:
            raise ApiError(response.status_code, response.text)

        return response.json()

    def _post(self, endpoint: str, body: str, token: str) -> httpx.Response:
        client_id, _ = get_twitch_credentials()

        if self.rate_limiter is not None:
            self.rate_limiter.wait()

        return httpx.post(
            f"{IGDB_BASE_URL}/{endpoint}",
            headers={
                "Client-ID": client_id,
                "Authorization": f"Bearer {token}",
                "Content-Type": "text/plain",
            },
            content=body,
            timeout=self.timeout,
        )

    def query_games(self, body: str) -> list[NormalizedGame]:
        """Run a games query; rows without a name are skipped."""
        return [normalize_catalog_game(raw) for raw in self.query("games", body) if raw.get("name")]

    def get_popular_recent_games(self, limit: int = 20) -> list[NormalizedGame]:
        return self.query_games(build_popular_recent_query(limit))

    def get_top_rated_games(self, limit: int = 20) -> list[NormalizedGame]:
        return self.query_games(build_top_rated_query(limit))

    def get_games_by_genre(self, genre_id: int, limit: int = 20) -> list[NormalizedGame]:
        return self.query_games(build_genre_query(genre_id, limit))

    def get_game_detail(self, game_id: int) -> NormalizedGame | None:
        results = self.query_games(f"{GAME_FIELDS}\nwhere id = {int(game_id)};\nlimit 1;")
        return results[0] if results else None

    def get_filtered_games(self, genre_ids: list[int], platform_ids: list[int], limit: int = 20) -> list[NormalizedGame]:
        return self.query_games(build_filtered_query(genre_ids, platform_ids, limit))

    def search_games(self, query: str, limit: int = 20) -> list[NormalizedGame]:
        return self.query_games(build_search_query(query, limit))


def _now() -> int:
    return int(time.time())


def build_popular_recent_query(limit: int) -> str:
    now = _now()
    return (
        f"{GAME_FIELDS}\n"
        f"where first_release_date > {now - POPULAR_WINDOW_SECONDS} & first_release_date < {now}"
        f" & rating_count > 5 & cover != null;\n"
        f"sort rating_count desc;\n"
        f"limit {limit};"
    )


def build_top_rated_query(limit: int) -> str:
    now = _now()
    return (
        f"{GAME_FIELDS}\n"
        f"where first_release_date > {now - TOP_RATED_WINDOW_SECONDS} & first_release_date < {now}"
        f" & rating > 80 & rating_count > 10 & cover != null;\n"
        f"sort rating desc;\n"
        f"limit {limit};"
    )


def build_genre_query(genre_id: int, limit: int) -> str:
    now = _now()
    return (
        f"{GAME_FIELDS}\n"
        f"where genres = ({int(genre_id)}) & first_release_date > {now - GENRE_WINDOW_SECONDS}"
        f" & first_release_date < {now} & rating_count > 3 & cover != null;\n"
        f"sort rating desc;\n"
        f"limit {limit};"
    )


def build_filtered_query(genre_ids: list[int], platform_ids: list[int], limit: int) -> str:
    """Filter query; an empty id list omits its clause instead of matching nothing."""
    conditions = ["cover != null", "rating_count > 1"]

    if genre_ids:
        conditions.append(f"genres = ({','.join(str(int(g)) for g in genre_ids)})")
    if platform_ids:
        conditions.append(f"platforms = ({','.join(str(int(p)) for p in platform_ids)})")

    return (
        f"{GAME_FIELDS}\n"
        f"where {' & '.join(conditions)};\n"
        f"sort rating desc;\n"
        f"limit {limit};"
    )


def build_search_query(query: str, limit: int) -> str:
    escaped = query.replace('"', '\\"')
    return (
        f"{GAME_FIELDS}\n"
        f'search "{escaped}";\n'
        f"where cover != null;\n"
        f"limit {limit};"
    )


def normalize_catalog_game(raw: dict[str, Any], include_similar: bool = True) -> NormalizedGame:
    """
    Map a raw IGDB game payload into a NormalizedGame.

    Nested similar games are normalized one level deep only.
    """
    cover = raw.get("cover")
    screenshots = raw.get("screenshots")
    videos = raw.get("videos")
    similar = raw.get("similar_games") if include_similar else None

    return NormalizedGame(
        id=raw["id"],
        name=raw["name"],
        summary=raw.get("summary"),
        cover={"url": igdb_image_url(cover["url"], "t_cover_big")} if cover and cover.get("url") else None,
        genres=_named_refs(raw.get("genres"), "Genre"),
        platforms=_named_refs(raw.get("platforms"), "Platform"),
        first_release_date=raw.get("first_release_date"),
        rating=raw.get("rating"),
        screenshots=[
            {"url": igdb_image_url(shot["url"], "t_screenshot_big")}
            for shot in screenshots if shot.get("url")
        ] if screenshots is not None else None,
        videos=[{"video_id": v["video_id"]} for v in videos if v.get("video_id")] if videos is not None else None,
        similar_games=[
            normalize_catalog_game(game, include_similar=False)
            for game in similar if game.get("name")
        ] if similar is not None else None,
    )


def _named_refs(items: list[dict[str, Any]] | None, kind: str) -> list[NamedRef]:
    return [NamedRef(id=item["id"], name=item.get("name") or f"{kind} {item['id']}") for item in items or []]
