"""Command-line entry points: Sleeper status checks, syncs, imports and diagnostics.

Usage:
    cadence status
    cadence players
    cadence stats 2025 1
    cadence projections 2025 1
    cadence init-db
    cadence sync
    cadence fetch-stats [--week 3] [--season 2025]
    cadence check-db
    cadence check-stats "Josh Allen"
    cadence compare "Patrick Mahomes" "Josh Allen" --scoring ppr --weeks 5
    cadence leaders --scoring half_ppr
    cadence clear-stats --yes
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from sqlalchemy.exc import OperationalError, SQLAlchemyError

from src.cadence.config import ConfigError, get_settings
from src.cadence.db.repositories.bootstrap_repository import ensure_tables, fetch_health_summary
from src.cadence.db.repositories.players_repository import fetch_players_missing_sleeper_id
from src.cadence.db.repositories.stats_repository import (
    count_player_stats,
    delete_all_player_stats,
    fetch_recent_stats,
    fetch_top_scorers,
)
from src.cadence.db.session import db_connection, db_transaction
from src.cadence.services.comparison import compare_players
from src.cadence.services.container import ServiceContainer
from src.cadence.services.player_matcher import PlayerMatcher
from src.cadence.services.sleeper_client import SleeperError
from src.cadence.services.sleeper_mapping import SCORING_COLUMNS, SCORING_TYPES
from src.cadence.services.stats_importer import ImporterConfigError
from src.cadence.timeutils import NFL_REGULAR_SEASON_WEEKS, current_nfl_season

logger = logging.getLogger("cadence.cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="cadence", description="Cadence fantasy data tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("status", help="Show the current NFL season and week from Sleeper")
    commands.add_parser("players", help="Fetch all NFL players from Sleeper and show a sample")

    for name, help_text in (("stats", "Top Sleeper stat lines for a week"), ("projections", "Top Sleeper projections")):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("season", type=int)
        command.add_argument("week", type=int)

    commands.add_parser("init-db", help="Create tables and scoring triggers")
    commands.add_parser("sync", help="Sync the Sleeper player directory into the database")

    fetch = commands.add_parser("fetch-stats", help="Import weekly stats from Sleeper")
    fetch.add_argument("--season", type=int, default=current_nfl_season(), help="NFL season to import")
    fetch.add_argument(
        "--week",
        type=int,
        choices=range(1, NFL_REGULAR_SEASON_WEEKS + 1),
        metavar="WEEK",
        help=f"Single week to import (default: weeks 1-{NFL_REGULAR_SEASON_WEEKS})",
    )

    commands.add_parser("check-db", help="Report table counts and Sleeper id coverage")

    check_stats = commands.add_parser("check-stats", help="Show stored stats for a player name")
    check_stats.add_argument("name")
    check_stats.add_argument("--limit", type=int, default=5)

    compare = commands.add_parser("compare", help="Run the player comparison tool")
    compare.add_argument("player1")
    compare.add_argument("player2")
    compare.add_argument("--scoring", choices=SCORING_TYPES, default="ppr")
    compare.add_argument("--weeks", type=int, default=5)
    compare.add_argument("--season", type=int, default=None)

    leaders = commands.add_parser("leaders", help="Season fantasy point leaders from stored stats")
    leaders.add_argument("--season", type=int, default=current_nfl_season())
    leaders.add_argument("--scoring", choices=SCORING_TYPES, default="ppr")
    leaders.add_argument("--limit", type=int, default=10)

    clear = commands.add_parser("clear-stats", help="Delete every stored stat row")
    clear.add_argument("--yes", action="store_true", help="Confirm deletion")

    return parser.parse_args(argv)


def _top_by_points(records: list[dict], limit: int = 10) -> list[dict]:
    scored = [record for record in records if (record.get("stats") or {}).get("pts_ppr")]
    scored.sort(key=lambda record: float(record["stats"]["pts_ppr"] or 0), reverse=True)
    return scored[:limit]


def cmd_status(services: ServiceContainer, args: argparse.Namespace) -> int:
    state = asyncio.run(services.sleeper.get_nfl_state())
    print("Current NFL state:")
    print(f"  Season: {state.get('season')}")
    print(f"  Week: {state.get('week')}")
    print(f"  Season Type: {state.get('season_type')}")
    print(f"  Display Week: {state.get('display_week')}")
    return 0


def cmd_players(services: ServiceContainer, args: argparse.Namespace) -> int:
    players = asyncio.run(services.sleeper.get_players())
    print(f"Found {len(players):,} players")
    for player in list(players.values())[:10]:
        print(f"  {player.get('first_name')} {player.get('last_name')} - {player.get('position')} ({player.get('team') or 'FA'})")
    return 0


def cmd_week_records(services: ServiceContainer, args: argparse.Namespace) -> int:
    if args.command == "stats":
        records = asyncio.run(services.sleeper.get_week_stats(args.season, args.week))
    else:
        records = asyncio.run(services.sleeper.get_projections(args.season, args.week))
    print(f"Found {args.command} for {len(records):,} players ({args.season} week {args.week})")
    for rank, record in enumerate(_top_by_points(records), start=1):
        print(f"  {rank}. Player {record['player_id']}: {float(record['stats']['pts_ppr']):.2f} pts")
    return 0


def cmd_init_db(services: ServiceContainer, args: argparse.Namespace) -> int:
    with db_transaction(services.engine) as connection:
        ensure_tables(connection)
    print(f"Schema ready ({services.settings.database_backend})")
    return 0


def cmd_sync(services: ServiceContainer, args: argparse.Namespace) -> int:
    summary = asyncio.run(services.player_directory.sync())
    print("Sync summary:")
    print(f"  Fetched: {summary.total_fetched:,}")
    print(f"  Mapped: {summary.mapped:,} (filtered {summary.filtered:,})")
    print(f"  Synced: {summary.synced:,}")
    if summary.failed:
        print(f"  Failed: {summary.failed:,} in {summary.failed_batches} batches (first error: {summary.first_error})")
    return 0 if summary.success else 1


def cmd_fetch_stats(services: ServiceContainer, args: argparse.Namespace) -> int:
    weeks = f"week {args.week} only" if args.week else f"weeks 1-{NFL_REGULAR_SEASON_WEEKS}"
    print(f"Importing {args.season} stats ({weeks})")
    summary = asyncio.run(services.stats_importer.run(args.season, args.week))
    for result in summary.week_results:
        status = result.error or f"{result.imported} imported, {result.skipped} skipped"
        print(f"  Week {result.week}: {status}")
    print("Import complete:")
    print(f"  Imported: {summary.imported}")
    print(f"  Errors: {summary.errored}")
    print(f"  Skipped (not in database): {summary.skipped}")
    return 0 if not summary.errored else 1


def cmd_check_db(services: ServiceContainer, args: argparse.Namespace) -> int:
    try:
        with db_connection(services.engine) as connection:
            health = fetch_health_summary(connection)
            missing = fetch_players_missing_sleeper_id(connection, limit=10)
    except OperationalError as error:
        print(f"Database not initialized: {error.orig}")
        print("Run: cadence init-db")
        return 1

    print(f"Players: {health['players']:,}")
    print(f"  With sleeper_id: {health['players_with_sleeper_id']:,}")
    print(f"  Without sleeper_id: {health['players_without_sleeper_id']:,}")
    print(f"Stat rows: {health['stats_rows']:,}")
    if health["latest_season"] is not None:
        print(f"Latest stats: {health['latest_season']} week {health['latest_week']}")
    if not health["players"]:
        print("Database is empty. Run: cadence sync")
    for player in missing:
        print(f"  missing sleeper_id: {player['first_name']} {player['last_name']} ({player['position']}, {player['nfl_team'] or 'FA'})")
    return 0


def cmd_check_stats(services: ServiceContainer, args: argparse.Namespace) -> int:
    with db_connection(services.engine) as connection:
        candidates = PlayerMatcher(connection).match(args.name)
        if not candidates:
            print(f'No player matching "{args.name}"')
            return 1
        player = candidates[0]
        total = count_player_stats(connection, player_id=player["id"])
        recent = fetch_recent_stats(connection, player_id=player["id"], season=current_nfl_season(), limit=args.limit)

    print(f"{player['first_name']} {player['last_name']} ({player['position']}, {player['nfl_team'] or 'FA'}) id={player['id']}")
    if len(candidates) > 1:
        print(f"  {len(candidates) - 1} other candidates")
    print(f"  Stat rows: {total}")
    for row in recent:
        print(
            f"  Week {row['week']}: std={row['fantasy_points_standard']:.2f} "
            f"half={row['fantasy_points_half_ppr']:.2f} ppr={row['fantasy_points_ppr']:.2f}"
        )
    return 0


def cmd_compare(services: ServiceContainer, args: argparse.Namespace) -> int:
    with db_connection(services.engine) as connection:
        result = compare_players(
            connection,
            args.player1,
            args.player2,
            scoring_type=args.scoring,
            weeks=args.weeks,
            season=args.season,
        )
    print(json.dumps(result, indent=2))
    return 1 if "error" in result else 0


def cmd_leaders(services: ServiceContainer, args: argparse.Namespace) -> int:
    with db_connection(services.engine) as connection:
        rows = fetch_top_scorers(
            connection,
            season=args.season,
            scoring_column=SCORING_COLUMNS[args.scoring],
            limit=args.limit,
        )
    print(f"{args.season} leaders ({args.scoring.upper()}):")
    for rank, row in enumerate(rows, start=1):
        print(f"  {rank}. {row['first_name']} {row['last_name']} ({row['position']}, {row['nfl_team'] or 'FA'}) {row['points']} pts in {row['games']} games")
    return 0


def cmd_clear_stats(services: ServiceContainer, args: argparse.Namespace) -> int:
    if not args.yes:
        print("Refusing to delete stats without --yes")
        return 1
    with db_transaction(services.engine) as connection:
        deleted = delete_all_player_stats(connection)
    print(f"Deleted {deleted} stat rows. Re-import with: cadence fetch-stats")
    return 0


COMMANDS = {
    "status": cmd_status,
    "players": cmd_players,
    "stats": cmd_week_records,
    "projections": cmd_week_records,
    "init-db": cmd_init_db,
    "sync": cmd_sync,
    "fetch-stats": cmd_fetch_stats,
    "check-db": cmd_check_db,
    "check-stats": cmd_check_stats,
    "compare": cmd_compare,
    "leaders": cmd_leaders,
    "clear-stats": cmd_clear_stats,
}


def main(argv: list[str] | None = None, services: ServiceContainer | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        services = services or ServiceContainer.build(get_settings())
        return COMMANDS[args.command](services, args)
    except (ConfigError, ImporterConfigError) as error:
        logger.error("Configuration error: %s", error)
        return 1
    except SleeperError as error:
        logger.error("Sleeper request failed: %s", error)
        return 1
    except SQLAlchemyError as error:
        logger.error("Database error: %s", error)
        return 1


if __name__ == "__main__":
    sys.exit(main())
