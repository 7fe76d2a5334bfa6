"""Relational store access (PostgreSQL via psycopg2).

Table and column names passed to the helpers below always come from code,
never from request input; values are always bound as parameters.
"""
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Iterator, Sequence

import psycopg2
from psycopg2.extras import Json, RealDictCursor, execute_values

from .config import get_connection_string


GAME_COLUMNS = (
    "id, name, slug, summary, cover_image_id, rating, rating_count, "
    "first_release_date, genre_ids, platform_ids"
)


@contextmanager
def get_connection() -> Iterator[psycopg2.extensions.connection]:
    """Context manager for database connections."""
    conn = psycopg2.connect(get_connection_string())
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def create_tables() -> None:
    """Initialize database schema.

    The recommend_games similarity function is managed separately.
    """
    with get_connection() as conn:
        cursor = conn.cursor()

        for table in ("genres", "themes", "game_modes", "platforms", "player_perspectives", "keywords"):
            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    slug TEXT NOT NULL
                )
            """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS companies (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                slug TEXT
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS games (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                slug TEXT,
                summary TEXT,
                storyline TEXT,
                cover_image_id TEXT,
                rating DOUBLE PRECISION,
                rating_count INTEGER NOT NULL DEFAULT 0,
                aggregated_rating DOUBLE PRECISION,
                total_rating DOUBLE PRECISION,
                first_release_date TIMESTAMPTZ,
                category INTEGER NOT NULL DEFAULT 0,
                status INTEGER,
                hypes INTEGER NOT NULL DEFAULT 0,
                genre_ids INTEGER[] NOT NULL DEFAULT '{}',
                theme_ids INTEGER[] NOT NULL DEFAULT '{}',
                mode_ids INTEGER[] NOT NULL DEFAULT '{}',
                platform_ids INTEGER[] NOT NULL DEFAULT '{}',
                perspective_ids INTEGER[] NOT NULL DEFAULT '{}',
                keyword_ids INTEGER[] NOT NULL DEFAULT '{}',
                developer_ids INTEGER[] NOT NULL DEFAULT '{}',
                raw_igdb JSONB,
                igdb_updated_at TIMESTAMPTZ,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                search_tsv TSVECTOR GENERATED ALWAYS AS (
                    to_tsvector('simple', coalesce(name, '') || ' ' || coalesce(summary, ''))
                ) STORED
            )
        """)

        for table, column, ref_table in (
            ("game_genres", "genre_id", "genres"),
            ("game_themes", "theme_id", "themes"),
            ("game_game_modes", "mode_id", "game_modes"),
            ("game_platforms", "platform_id", "platforms"),
            ("game_perspectives", "perspective_id", "player_perspectives"),
            ("game_keywords", "keyword_id", "keywords"),
        ):
            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    game_id INTEGER REFERENCES games(id) ON DELETE CASCADE,
                    {column} INTEGER REFERENCES {ref_table}(id),
                    PRIMARY KEY (game_id, {column})
                )
            """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS game_companies (
                game_id INTEGER REFERENCES games(id) ON DELETE CASCADE,
                company_id INTEGER REFERENCES companies(id),
                role TEXT NOT NULL DEFAULT 'developer',
                PRIMARY KEY (game_id, company_id, role)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS game_screenshots (
                id SERIAL PRIMARY KEY,
                game_id INTEGER REFERENCES games(id) ON DELETE CASCADE,
                image_id TEXT NOT NULL
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS game_videos (
                id SERIAL PRIMARY KEY,
                game_id INTEGER REFERENCES games(id) ON DELETE CASCADE,
                video_id TEXT NOT NULL
            )
        """)

        # similar_game_id may point at a game that has not been imported yet
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS game_similar (
                game_id INTEGER REFERENCES games(id) ON DELETE CASCADE,
                similar_game_id INTEGER NOT NULL,
                source TEXT NOT NULL DEFAULT 'igdb',
                PRIMARY KEY (game_id, similar_game_id)
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_games_search_tsv ON games USING GIN (search_tsv)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_games_genre_ids ON games USING GIN (genre_ids)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_games_platform_ids ON games USING GIN (platform_ids)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_games_rating_count ON games (rating_count DESC)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_screenshots_game ON game_screenshots (game_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_videos_game ON game_videos (game_id)")

        cursor.close()


def fetch_all(query: str, params: Sequence[Any] | dict[str, Any] | None = None) -> list[dict[str, Any]]:
    """Run a read query and return rows as dictionaries."""
    with get_connection() as conn:
        cursor = conn.cursor(cursor_factory=RealDictCursor)
        cursor.execute(query, params)
        rows = cursor.fetchall()
        cursor.close()

        return [dict(row) for row in rows]


def select_games(
    conditions: list[str],
    params: list[Any],
    order_by: str,
    limit: int,
) -> list[dict[str, Any]]:
    """
    Select game rows matching every condition.

    Args:
        conditions: SQL boolean expressions joined with AND (may be empty)
        params: Values for the placeholders in conditions, in order
        order_by: Column to sort by, descending with NULLs last
        limit: Maximum rows to return

    Returns:
        List of game rows with GAME_COLUMNS keys
    """
    where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
    query = f"SELECT {GAME_COLUMNS} FROM games {where} ORDER BY {order_by} DESC NULLS LAST LIMIT %s"
    return fetch_all(query, [*params, limit])


def fetch_lookup_names(table: str) -> dict[int, str]:
    """Return the id -> name map of a lookup table."""
    rows = fetch_all(f"SELECT id, name FROM {table}")
    return {row["id"]: row["name"] for row in rows}


def call_procedure(name: str, **params: Any) -> list[dict[str, Any]]:
    """Call a set-returning SQL function with named arguments."""
    arguments = ", ".join(f"{key} => %({key})s" for key in params)
    return fetch_all(f"SELECT * FROM {name}({arguments})", params)


def upsert_rows(
    table: str,
    rows: list[dict[str, Any]],
    conflict_columns: Sequence[str] = ("id",),
    ignore_duplicates: bool = False,
) -> None:
    """
    Insert rows, updating (or skipping) those that collide on conflict_columns.

    All rows must share the same keys.
    """
    if not rows:
        return

    columns = list(rows[0].keys())
    conflict = ", ".join(conflict_columns)

    if ignore_duplicates:
        on_conflict = f"ON CONFLICT ({conflict}) DO NOTHING"
    else:
        updates = [f"{col} = EXCLUDED.{col}" for col in columns if col not in conflict_columns]
        on_conflict = f"ON CONFLICT ({conflict}) DO UPDATE SET {', '.join(updates)}" if updates else f"ON CONFLICT ({conflict}) DO NOTHING"

    query = f"INSERT INTO {table} ({', '.join(columns)}) VALUES %s {on_conflict}"
    values = [tuple(_adapt(row[col]) for col in columns) for row in rows]

    with get_connection() as conn:
        cursor = conn.cursor()
        execute_values(cursor, query, values)
        cursor.close()


def insert_rows(table: str, rows: list[dict[str, Any]]) -> None:
    if not rows:
        return

    columns = list(rows[0].keys())
    query = f"INSERT INTO {table} ({', '.join(columns)}) VALUES %s"
    values = [tuple(_adapt(row[col]) for col in columns) for row in rows]

    with get_connection() as conn:
        cursor = conn.cursor()
        execute_values(cursor, query, values)
        cursor.close()


def delete_where_in(table: str, column: str, values: list[Any]) -> None:
    """Delete every row whose column value is in values."""
    if not values:
        return

    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute(f"DELETE FROM {table} WHERE {column} = ANY(%s)", (list(values),))
        cursor.close()


def _adapt(value: Any) -> Any:
    if isinstance(value, dict):
        return Json(value)
    return value


def to_unix_seconds(value: datetime | date | str | None) -> int | None:
    """
    Convert a stored timestamp into Unix seconds.

    Accepts the datetime psycopg2 returns for TIMESTAMPTZ columns or an
    ISO-8601 string; naive values are treated as UTC.
    """
    if value is None or value == "":
        return None

    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)

    return int(value.timestamp())


def from_unix_seconds(value: int | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)
