"""HTTP routes for the game browser front end."""

from functools import wraps
from typing import Any, Callable

from flask import Blueprint, Flask, current_app, jsonify, request

from .games import GameStore, get_store
from .logger import log_error_with_context, setup_logger
from .recommend import get_recommendations

logger = setup_logger(__name__)

games_blueprint = Blueprint("games", __name__)

MAX_LIMIT = 50


class APIError(Exception):
    """Error carrying the HTTP status and the user-facing message."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class BadRequestError(APIError):
    status_code = 400


class NotFoundError(APIError):
    status_code = 404


def handle_api_errors(failure_message: str) -> Callable:
    """
    Translate exceptions into ``{"error": ...}`` responses.

    Unexpected errors are logged with their detail and answered with a
    generic localized message and status 500.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except APIError as exc:
                return jsonify(exc.to_dict()), exc.status_code
            except Exception as exc:
                log_error_with_context(logger, request.path, request.query_string.decode(), exc)
                return jsonify({"error": failure_message}), 500

        return wrapper

    return decorator


def _store() -> GameStore:
    return current_app.extensions["game_store"]


def clamp_limit(raw: str | None, default: int) -> int:
    """Parse a limit query value into [1, MAX_LIMIT], using default when absent or invalid."""
    try:
        value = int(raw) if raw else default
    except ValueError:
        value = default
    return min(max(value, 1), MAX_LIMIT)


def _parse_ids(raw: str | None) -> list[int]:
    if not raw:
        return []
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise BadRequestError("ID 목록 형식이 올바르지 않습니다.")


@games_blueprint.route("/api/games")
@handle_api_errors("게임 데이터를 가져올 수 없습니다.")
def list_games():
    section = request.args.get("section") or "popular"
    limit = clamp_limit(request.args.get("limit"), 20)
    store = _store()

    if section == "top-rated":
        games = store.get_top_rated_games(limit)
    elif section == "genre":
        genre_id = request.args.get("genreId")
        if not genre_id:
            raise BadRequestError("genreId 파라미터가 필요합니다.")
        try:
            parsed_genre_id = int(genre_id)
        except ValueError:
            raise BadRequestError("genreId는 유효한 숫자여야 합니다.")
        games = store.get_games_by_genre(parsed_genre_id, limit)
    elif section == "filter":
        genre_ids = _parse_ids(request.args.get("genres"))
        platform_ids = _parse_ids(request.args.get("platforms"))
        games = store.get_filtered_games(genre_ids, platform_ids, limit)
    elif section == "random":
        games = store.get_random_curated_games(limit)
    else:
        games = store.get_popular_recent_games(limit)

    return jsonify({"games": [game.to_dict() for game in games]})


@games_blueprint.route("/api/games/search")
@handle_api_errors("게임 검색에 실패했습니다.")
def search_games():
    query = (request.args.get("q") or "").strip()
    if not query:
        raise BadRequestError("검색어가 필요합니다.")

    limit = clamp_limit(request.args.get("limit"), 20)
    games = _store().search_games(query, limit)
    return jsonify({"games": [game.to_dict() for game in games]})


@games_blueprint.route("/api/games/recommend")
@handle_api_errors("추천 게임을 불러오는데 실패했습니다.")
def recommend_games():
    raw_game_id = request.args.get("gameId")
    if not raw_game_id:
        raise BadRequestError("gameId 파라미터가 필요합니다.")

    try:
        game_id = int(raw_game_id)
    except ValueError:
        raise BadRequestError("gameId는 유효한 숫자여야 합니다.")

    limit = clamp_limit(request.args.get("limit"), 10)
    store = _store()
    games = get_recommendations(game_id, limit, genre_cache=store.genre_cache, platform_cache=store.platform_cache)
    return jsonify({"games": [game.to_dict() for game in games]})


@games_blueprint.route("/api/games/<game_id>")
@handle_api_errors("게임 상세 정보를 가져올 수 없습니다.")
def game_detail(game_id: str):
    try:
        parsed_id = int(game_id)
    except ValueError:
        raise BadRequestError("유효하지 않은 게임 ID입니다.")

    game = _store().get_game_detail(parsed_id)
    if game is None:
        raise NotFoundError("게임을 찾을 수 없습니다.")

    return jsonify({"game": game.to_dict()})


def create_app(store: GameStore | None = None) -> Flask:
    """Return a configured Flask application instance."""
    app = Flask(__name__)
    app.json.ensure_ascii = False
    app.extensions["game_store"] = store if store is not None else get_store()
    app.register_blueprint(games_blueprint)
    return app
