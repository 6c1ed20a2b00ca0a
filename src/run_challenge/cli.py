#!/usr/bin/env python3
"""
run-challenge CLI.

Usage:
    run-challenge serve --port 3000
    run-challenge migrate [--seed]
    run-challenge leaderboard
    run-challenge status
"""

import argparse
import sys
from datetime import date
from typing import Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import get_settings
from .db.database import ChallengeDatabase
from .db.migrations import migration_001_age_profile
from .db.repositories import ActivityRepository, ProgressRepository, UserRepository
from .main import configure_logging
from .services import ActivityFeed, DashboardService

console = Console()


def get_status_color(status: str) -> str:
    """Get rich color for a challenge status."""
    colors = {
        "active": "green",
        "at_risk": "yellow",
        "eliminated": "red",
    }
    return colors.get(status, "white")


def build_dashboard_service(db: ChallengeDatabase) -> DashboardService:
    settings = get_settings()
    users = UserRepository(db)
    return DashboardService(
        users,
        ProgressRepository(db),
        ActivityRepository(db),
        ActivityFeed(users),
        challenge_start=settings.challenge_start_date,
        window_size=settings.progress_window_days,
        miss_lookback=settings.miss_lookback,
        page_size=settings.feed_page_size,
    )


def cmd_serve(args) -> int:
    """Run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "run_challenge.main:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


def cmd_migrate(args) -> int:
    """Add profile columns to an existing database."""
    db_path = args.db or str(get_settings().database_path)
    console.print()
    console.print(Panel(f"[bold]Migrating[/bold] {db_path}"))

    result = migration_001_age_profile.migrate(db_path, seed_profiles=args.seed)
    if not result["success"]:
        console.print(f"[red]Migration failed: {'; '.join(result['errors'])}[/red]")
        return 1

    if result["columns_added"]:
        console.print(f"[green]Added columns:[/green] {', '.join(result['columns_added'])}")
    else:
        console.print("No changes needed (columns already exist)")
    if args.seed:
        console.print(f"Seeded {result['profiles_seeded']} placeholder profiles")
    console.print()
    return 0


def cmd_leaderboard(args, db: ChallengeDatabase) -> int:
    """Print current standings and the champion."""
    try:
        as_of: Optional[date] = date.fromisoformat(args.date) if args.date else None
    except ValueError:
        console.print(f"[red]Invalid date '{args.date}', expected YYYY-MM-DD[/red]")
        return 1
    board = build_dashboard_service(db).leaderboard(as_of)

    console.print()
    if not board["standings"]:
        console.print("[yellow]No participants yet.[/yellow]")
        console.print()
        return 0

    table = Table(title=f"Leaderboard ({board['date']})", box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("Runner", style="cyan")
    table.add_column("Days", justify="right")
    table.add_column("Miles", justify="right")
    table.add_column("Streak", justify="right")
    table.add_column("Best", justify="right")
    table.add_column("Passes", justify="right")
    table.add_column("Status")

    for rank, row in enumerate(board["standings"], start=1):
        table.add_row(
            str(rank),
            row["name"],
            str(row["total_days_run"]),
            f"{row['total_miles']:.2f}",
            str(row["current_streak"]),
            str(row["longest_streak"]),
            str(row["bailout_passes"]),
            Text(row["status"], style=get_status_color(row["status"])),
        )
    console.print(table)

    winner = board["winner"]
    if winner:
        console.print()
        console.print(f"[bold]Champion:[/bold] {winner['name']}")
    console.print()
    return 0


def cmd_status(args, db: ChallengeDatabase) -> int:
    """Show database statistics."""
    stats = db.get_stats()

    table = Table(title="Challenge Database", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Path", stats["db_path"])
    table.add_row("Users", str(stats["users"]))
    table.add_row("Progress days", str(stats["progress_days"]))
    table.add_row("Cached activities", str(stats["activities"]))
    table.add_row("Date range", f"{stats['earliest_date'] or '-'} .. {stats['latest_date'] or '-'}")

    console.print()
    console.print(table)
    console.print()
    return 0


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="run-challenge - family daily-distance running challenge",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  run-challenge serve --port 3000
  run-challenge migrate --seed
  run-challenge leaderboard --date 2026-02-01
  run-challenge status
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_p = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_p.add_argument("--host", type=str, help="Bind address")
    serve_p.add_argument("--port", "-p", type=int, help="Port")
    serve_p.add_argument("--reload", action="store_true", help="Reload on code changes")

    migrate_p = subparsers.add_parser("migrate", help="Add profile columns to an existing database")
    migrate_p.add_argument("--db", type=str, help="Database path (defaults to DATABASE_PATH)")
    migrate_p.add_argument("--seed", action="store_true", help="Give users without a profile a placeholder one")

    board_p = subparsers.add_parser("leaderboard", help="Show standings and the champion")
    board_p.add_argument("--date", type=str, help="Evaluate as of this day (YYYY-MM-DD)")

    subparsers.add_parser("status", help="Show database statistics")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    settings = get_settings()
    configure_logging(settings.log_level)

    if args.command == "serve":
        return cmd_serve(args)
    if args.command == "migrate":
        return cmd_migrate(args)

    with ChallengeDatabase(settings.database_path, pool_size=settings.db_pool_size) as db:
        if args.command == "leaderboard":
            return cmd_leaderboard(args, db)
        if args.command == "status":
            return cmd_status(args, db)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
