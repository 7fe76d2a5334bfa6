"""IGDB -> local store batch importer.

Pages through popular games at a fixed batch size, respecting the IGDB rate
limit, and writes a checkpoint after every batch so an interrupted run
resumes where it stopped.
"""
import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import psycopg2

from . import db
from .catalog_client import CatalogClient
from .config import IMPORT_BATCH_SIZE, IMPORT_MIN_DELAY_SECONDS, IMPORT_TARGET_GAMES, get_checkpoint_path
from .http_client import RateLimiter
from .logger import log_error_with_context, setup_logger
from .models import Checkpoint

logger = setup_logger(__name__)


IMPORT_FIELDS = (
    "fields name, slug, summary, storyline, cover.image_id, "
    "rating, rating_count, aggregated_rating, total_rating, "
    "first_release_date, category, status, hypes, "
    "genres.id, genres.name, genres.slug, "
    "themes.id, themes.name, themes.slug, "
    "game_modes.id, game_modes.name, game_modes.slug, "
    "platforms.id, platforms.name, platforms.slug, "
    "player_perspectives.id, player_perspectives.name, player_perspectives.slug, "
    "involved_companies.company.id, involved_companies.company.name, involved_companies.company.slug, "
    "involved_companies.developer, involved_companies.publisher, "
    "keywords.id, keywords.name, keywords.slug, "
    "screenshots.image_id, videos.video_id, "
    "similar_games.id, updated_at;"
)

# (payload key == lookup table, join table, join column, game row id column)
LOOKUP_KINDS = (
    ("genres", "game_genres", "genre_id", "genre_ids"),
    ("themes", "game_themes", "theme_id", "theme_ids"),
    ("game_modes", "game_game_modes", "mode_id", "mode_ids"),
    ("platforms", "game_platforms", "platform_id", "platform_ids"),
    ("player_perspectives", "game_perspectives", "perspective_id", "perspective_ids"),
    ("keywords", "game_keywords", "keyword_id", "keyword_ids"),
)


def build_page_query(offset: int, batch_size: int = IMPORT_BATCH_SIZE) -> str:
    return (
        f"{IMPORT_FIELDS}\n"
        f"where rating_count > 5 & cover != null;\n"
        f"sort rating_count desc;\n"
        f"limit {batch_size};\n"
        f"offset {offset};"
    )


# Checkpoint


def load_checkpoint(path: str | Path) -> Checkpoint:
    """Read the checkpoint file; a missing or unreadable file means a fresh start."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return Checkpoint(offset=int(data["offset"]), total_imported=int(data["totalImported"]))
    except FileNotFoundError:
        return Checkpoint()
    except (ValueError, KeyError, TypeError) as e:
        logger.warning(f"Ignoring unreadable checkpoint {path}: {e}")
        return Checkpoint()


def save_checkpoint(path: str | Path, checkpoint: Checkpoint) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(
        json.dumps({"offset": checkpoint.offset, "totalImported": checkpoint.total_imported}, indent=2),
        encoding="utf-8",
    )
    os.replace(tmp_path, path)


def remove_checkpoint(path: str | Path) -> None:
    Path(path).unlink(missing_ok=True)


# Batch transformation


@dataclass
class BatchRows:
    """Rows to write for one page of games, grouped by table."""
    lookups: dict[str, list[dict[str, Any]]] = field(default_factory=lambda: {kind[0]: [] for kind in LOOKUP_KINDS})
    companies: list[dict[str, Any]] = field(default_factory=list)
    games: list[dict[str, Any]] = field(default_factory=list)
    joins: dict[str, list[dict[str, Any]]] = field(default_factory=lambda: {kind[1]: [] for kind in LOOKUP_KINDS})
    company_joins: list[dict[str, Any]] = field(default_factory=list)
    similar_links: list[dict[str, Any]] = field(default_factory=list)
    screenshots: list[dict[str, Any]] = field(default_factory=list)
    videos: list[dict[str, Any]] = field(default_factory=list)
    game_ids: list[int] = field(default_factory=list)


def unique_by_id(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Keep the first item for each id."""
    seen: set[int] = set()
    unique = []
    for item in items:
        if item["id"] in seen:
            continue
        seen.add(item["id"])
        unique.append(item)
    return unique


def _slugify(name: str) -> str:
    return re.sub(r"\s+", "-", name.lower())


def build_game_row(game: dict[str, Any]) -> dict[str, Any]:
    """Map a raw IGDB game payload to a games table row."""
    cover = game.get("cover") or {}

    row = {
        "id": game["id"],
        "name": game["name"],
        "slug": game.get("slug"),
        "summary": game.get("summary"),
        "storyline": game.get("storyline"),
        "cover_image_id": cover.get("image_id"),
        "rating": game.get("rating"),
        "rating_count": game.get("rating_count") or 0,
        "aggregated_rating": game.get("aggregated_rating"),
        "total_rating": game.get("total_rating"),
        "first_release_date": db.from_unix_seconds(game.get("first_release_date")),
        "category": game.get("category") or 0,
        "status": game.get("status"),
        "hypes": game.get("hypes") or 0,
    }

    for key, _, _, id_column in LOOKUP_KINDS:
        row[id_column] = [item["id"] for item in game.get(key) or []]

    row["developer_ids"] = [
        ic["company"]["id"] for ic in game.get("involved_companies") or [] if ic.get("developer")
    ]
    row["raw_igdb"] = game
    row["igdb_updated_at"] = db.from_unix_seconds(game.get("updated_at"))

    return row


def build_batch(games: list[dict[str, Any]]) -> BatchRows:
    """Collect every row a page of games writes, grouped by table."""
    batch = BatchRows()

    for game in games:
        game_id = game["id"]
        batch.game_ids.append(game_id)
        batch.games.append(build_game_row(game))

        for key, join_table, join_column, _ in LOOKUP_KINDS:
            for item in game.get(key) or []:
                slug = item.get("slug") or _slugify(item["name"])
                batch.lookups[key].append({"id": item["id"], "name": item["name"], "slug": slug})
                batch.joins[join_table].append({"game_id": game_id, join_column: item["id"]})

        for ic in game.get("involved_companies") or []:
            company = ic["company"]
            batch.companies.append({"id": company["id"], "name": company["name"], "slug": company.get("slug")})
            if ic.get("developer"):
                batch.company_joins.append({"game_id": game_id, "company_id": company["id"], "role": "developer"})
            if ic.get("publisher"):
                batch.company_joins.append({"game_id": game_id, "company_id": company["id"], "role": "publisher"})

        for similar in game.get("similar_games") or []:
            batch.similar_links.append({"game_id": game_id, "similar_game_id": similar["id"], "source": "igdb"})

        for shot in game.get("screenshots") or []:
            batch.screenshots.append({"game_id": game_id, "image_id": shot["image_id"]})

        for video in game.get("videos") or []:
            batch.videos.append({"game_id": game_id, "video_id": video["video_id"]})

    return batch


def _best_effort(step: str, write: Callable[[], None], game_ids: list[int]) -> bool:
    """Run one table write; failures are logged and do not stop the batch."""
    try:
        write()
        return True
    except psycopg2.Error as e:
        log_error_with_context(logger, "Upsert", f"{step}, {len(game_ids)} games", e)
        return False


def process_batch(games: list[dict[str, Any]]) -> int:
    """
    Write one page of games to the store.

    Writes run sequentially in foreign-key order: lookup tables, companies,
    games, join tables, then screenshots and videos (deleted and re-inserted
    per game so reruns do not accumulate duplicates).

    Args:
        games: Raw IGDB game payloads

    Returns:
        Number of table writes that failed
    """
    batch = build_batch(games)
    steps: list[tuple[str, Callable[[], None]]] = []

    for key, _, _, _ in LOOKUP_KINDS:
        rows = unique_by_id(batch.lookups[key])
        steps.append((key, lambda table=key, rows=rows: db.upsert_rows(table, rows)))

    companies = unique_by_id(batch.companies)
    steps.append(("companies", lambda: db.upsert_rows("companies", companies)))

    games_rows = unique_by_id(batch.games)
    steps.append(("games", lambda: db.upsert_rows("games", games_rows)))

    for _, join_table, join_column, _ in LOOKUP_KINDS:
        rows = batch.joins[join_table]
        steps.append((
            join_table,
            lambda table=join_table, rows=rows, column=join_column: db.upsert_rows(
                table, rows, conflict_columns=("game_id", column), ignore_duplicates=True
            ),
        ))

    steps.append(("game_companies", lambda: db.upsert_rows(
        "game_companies", batch.company_joins, conflict_columns=("game_id", "company_id", "role"), ignore_duplicates=True
    )))
    steps.append(("game_similar", lambda: db.upsert_rows(
        "game_similar", batch.similar_links, conflict_columns=("game_id", "similar_game_id"), ignore_duplicates=True
    )))

    steps.append(("game_screenshots (delete)", lambda: db.delete_where_in("game_screenshots", "game_id", batch.game_ids)))
    steps.append(("game_videos (delete)", lambda: db.delete_where_in("game_videos", "game_id", batch.game_ids)))
    steps.append(("game_screenshots", lambda: db.insert_rows("game_screenshots", batch.screenshots)))
    steps.append(("game_videos", lambda: db.insert_rows("game_videos", batch.videos)))

    return sum(0 if _best_effort(step, write, batch.game_ids) else 1 for step, write in steps)


# Run loop


def run_import(
    client: CatalogClient | None = None,
    checkpoint_path: str | Path | None = None,
    batch_size: int = IMPORT_BATCH_SIZE,
    target: int = IMPORT_TARGET_GAMES,
) -> dict[str, int | bool]:
    """
    Import games until the target count is reached or IGDB runs out of results.

    A failed page fetch aborts the run and leaves the checkpoint in place so
    the next run resumes from the same offset.

    Args:
        client: Catalog client (default: one limited to ~4 requests/second)
        checkpoint_path: Checkpoint file (default from configuration)
        batch_size: Games per page
        target: Stop after this many games have been imported

    Returns:
        Dictionary with stats: {batches, games_imported, offset, failed_steps, completed}
    """
    if client is None:
        client = CatalogClient(rate_limiter=RateLimiter(IMPORT_MIN_DELAY_SECONDS))
    if checkpoint_path is None:
        checkpoint_path = get_checkpoint_path()

    checkpoint = load_checkpoint(checkpoint_path)
    offset, total_imported = checkpoint.offset, checkpoint.total_imported

    if offset > 0:
        logger.info(f"Resuming from checkpoint: offset={offset}, imported={total_imported}")

    stats = {"batches": 0, "games_imported": 0, "offset": offset, "failed_steps": 0, "completed": False}

    while total_imported < target:
        logger.info(f"Fetching batch: offset={offset}, limit={batch_size}")
        games = client.query("games", build_page_query(offset, batch_size))

        if not games:
            logger.info("No more games found")
            break

        logger.info(f"Received {len(games)} games, upserting...")
        stats["failed_steps"] += process_batch(games)

        total_imported += len(games)
        offset += batch_size
        save_checkpoint(checkpoint_path, Checkpoint(offset=offset, total_imported=total_imported))

        stats["batches"] += 1
        stats["games_imported"] += len(games)
        stats["offset"] = offset
        logger.info(f"Total imported: {total_imported}")

    remove_checkpoint(checkpoint_path)
    stats["completed"] = True
    logger.info(f"Import complete. Total games: {total_imported}")

    return stats
