#!/usr/bin/env python3
"""
CLI entry point for the game catalog.
"""
import argparse
import json
import sys

from . import db, importer, storefront
from .games import get_store
from .logger import LogContext, log_with_stats, setup_logger
from .recommend import get_recommendations

logger = setup_logger(__name__)


def cmd_init_db(args):
    """Initialize database schema."""
    logger.info("Initializing database...")
    db.create_tables()
    logger.info("Database initialized successfully!")


def cmd_import(args):
    """Import popular games from IGDB into the local store."""
    with LogContext(logger, "IGDB import", target=args.target):
        stats = importer.run_import(target=args.target)

    log_with_stats(logger, stats, prefix="Import results")


def cmd_steam_search(args):
    """Search the Steam store and print parsed listings as JSON."""
    result = storefront.search(tags=args.tags, count=args.count, start=args.start)
    logger.info(f"Results: listings={len(result['listings'])}, total_count={result['total_count']}")
    print(json.dumps(result, ensure_ascii=False, indent=2))


def cmd_search(args):
    """Search games in the local store with remote fallback."""
    games = get_store().search_games(args.query, args.limit)
    print(json.dumps([game.to_dict() for game in games], ensure_ascii=False, indent=2))


def cmd_recommend(args):
    """Print games similar to a given game."""
    games = get_recommendations(args.game_id, args.limit)
    print(json.dumps([game.to_dict() for game in games], ensure_ascii=False, indent=2))


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Game catalog importer and query tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Initialize database schema")

    import_parser = subparsers.add_parser("import", help="Import games from IGDB (resumes from checkpoint)")
    import_parser.add_argument("--target", type=int, default=importer.IMPORT_TARGET_GAMES, help="Games to import (default: 5000)")

    steam_parser = subparsers.add_parser("steam-search", help="Search the Steam store")
    steam_parser.add_argument("--tags", default=None, help="Comma-separated Steam tag ids")
    steam_parser.add_argument("--count", type=int, default=50, help="Rows per page (default: 50)")
    steam_parser.add_argument("--start", type=int, default=0, help="Row offset (default: 0)")

    search_parser = subparsers.add_parser("search", help="Search games")
    search_parser.add_argument("query", help="Search text")
    search_parser.add_argument("--limit", type=int, default=20, help="Max results (default: 20)")

    recommend_parser = subparsers.add_parser("recommend", help="Recommend similar games")
    recommend_parser.add_argument("game_id", type=int, help="Source game id")
    recommend_parser.add_argument("--limit", type=int, default=10, help="Max results (default: 10)")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "init-db": cmd_init_db,
        "import": cmd_import,
        "steam-search": cmd_steam_search,
        "search": cmd_search,
        "recommend": cmd_recommend,
    }

    command_func = commands.get(args.command)
    if command_func:
        try:
            command_func(args)
        except KeyboardInterrupt:
            logger.warning("Interrupted by user")
            sys.exit(1)
        except Exception as e:
            logger.error(f"Error: {e}", exc_info=True)
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
