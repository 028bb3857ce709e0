#!/usr/bin/env python3
"""
Judge Queue Management CLI

Usage:
    python -m hackjudge.cli <command> [options]

Commands:
    db          Database operations (init, seed)
    queue       Judge queue operations (stats, integrity, assign)
    system      System operations (config)

Environment:
    DATABASE_URL       SQLAlchemy async connection string
    JUDGES_PER_TEAM    Required judges per team (default 2)
    LOG_LEVEL          DEBUG|INFO|WARNING|ERROR
"""
import sys
import argparse
import logging
from typing import Optional

from hackjudge import __version__
from hackjudge.cli.db_commands import DbCommand
from hackjudge.cli.queue_commands import QueueCommand
from hackjudge.cli.system_commands import SystemCommand


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="hackjudge",
        description="Hackathon Judge Queue CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s db init
  %(prog)s db seed --teams 20 --judges 8
  %(prog)s queue stats --round 1
  %(prog)s queue integrity --round 1
  %(prog)s queue assign --judge alice@judges.example.com --team "Team Alpha" --round 1
  %(prog)s system config
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without executing"
    )

    parser.add_argument(
        "--database-url",
        default=None,
        help="Override DATABASE_URL"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Database commands
    db_parser = subparsers.add_parser("db", help="Database operations")
    db_subparsers = db_parser.add_subparsers(dest="db_action")

    # db init
    db_subparsers.add_parser("init", help="Create tables")

    # db seed
    seed_parser = db_subparsers.add_parser("seed", help="Insert sample teams and judges")
    seed_parser.add_argument("--teams", type=int, default=15, help="Number of teams (default: 15)")
    seed_parser.add_argument("--judges", type=int, default=10, help="Number of judges (default: 10)")

    # Queue commands
    queue_parser = subparsers.add_parser("queue", help="Judge queue operations")
    queue_subparsers = queue_parser.add_subparsers(dest="queue_action")

    # queue stats
    stats_parser = queue_subparsers.add_parser("stats", help="Per-team judge counts")
    stats_parser.add_argument("--round", "-r", type=int, help="Round (default: current round)")
    stats_parser.add_argument("--json", action="store_true", help="Print raw JSON")

    # queue integrity
    integrity_parser = queue_subparsers.add_parser("integrity", help="Verify assignment integrity")
    integrity_parser.add_argument("--round", "-r", type=int, help="Round (default: current round)")

    # queue assign
    assign_parser = queue_subparsers.add_parser("assign", help="Record an assignment without a lock")
    assign_parser.add_argument("--judge", "-j", required=True, help="Judge email")
    assign_parser.add_argument("--team", "-t", required=True, help="Team name")
    assign_parser.add_argument("--round", "-r", type=int, help="Round (default: current round)")

    # System commands
    system_parser = subparsers.add_parser("system", help="System operations")
    system_subparsers = system_parser.add_subparsers(dest="system_action")

    # system config
    system_subparsers.add_parser("config", help="Show configuration")

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 1

    # Setup logging
    setup_logging(parsed.log_level)

    # Route to appropriate command handler
    command_map = {
        "db": DbCommand,
        "queue": QueueCommand,
        "system": SystemCommand,
    }

    if parsed.command in command_map:
        handler = command_map[parsed.command](
            dry_run=parsed.dry_run,
            database_url=parsed.database_url,
        )
        return handler.execute(parsed)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
