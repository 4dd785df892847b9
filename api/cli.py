#!/usr/bin/env python3
"""CLI for streak engine management tasks.

Usage:
    python -m cli <command>

Commands:
    process-streaks   Process today's streak for all (or selected) users
    seed-milestones   Insert the default milestone catalog
    migrate           Run database migrations

Exit codes: 0 success, 1 some users failed, 2 invalid configuration.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from alembic.config import Config

from core.config import ConfigurationError, get_settings
from core.logger import configure_logging, get_logger

logger = get_logger(__name__)

API_DIR = Path(__file__).resolve().parent


def get_alembic_config() -> Config:
    """Alembic config that works from any working directory."""
    cfg = Config(str(API_DIR / "alembic.ini"))
    cfg.set_main_option("script_location", str(API_DIR / "alembic"))
    return cfg


def cmd_process_streaks(user_ids: list[str] | None, concurrency: int) -> int:
    """Process streaks; exit 1 if any user failed."""
    from scripts.process_daily_streaks import main as process_daily_streaks

    summary = asyncio.run(process_daily_streaks(user_ids, concurrency))
    if summary.failed:
        logger.error(
            "cli.process_streaks.failures",
            failed=summary.failed,
            user_ids=summary.failed_user_ids[:20],
        )
        return 1
    return 0


def cmd_seed_milestones() -> int:
    """Insert the default milestone catalog."""
    from scripts.seed_streak_milestones import seed_database

    inserted = asyncio.run(seed_database())
    logger.info("cli.seed_milestones.complete", inserted=inserted)
    return 0


def cmd_migrate() -> int:
    """Run database migrations."""
    from alembic import command

    logger.info("cli.migrate.started")
    cfg = get_alembic_config()
    command.upgrade(cfg, "head")
    logger.info("cli.migrate.complete")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Streak engine CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    process = subparsers.add_parser(
        "process-streaks",
        help="Process today's streak for all (or selected) users",
    )
    process.add_argument(
        "--user-id",
        dest="user_ids",
        action="append",
        default=None,
        help="Process only this user (repeatable)",
    )
    process.add_argument(
        "--concurrency",
        type=int,
        default=8,
        help="Users processed in parallel (default: 8)",
    )
    subparsers.add_parser(
        "seed-milestones",
        help="Insert the default milestone catalog",
    )
    subparsers.add_parser(
        "migrate",
        help="Run database migrations",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging()
    try:
        get_settings()
    except ConfigurationError as e:
        logger.error("cli.configuration_invalid", error=str(e))
        return 2

    if args.command == "process-streaks":
        return cmd_process_streaks(args.user_ids, args.concurrency)
    elif args.command == "seed-milestones":
        return cmd_seed_milestones()
    elif args.command == "migrate":
        return cmd_migrate()
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
