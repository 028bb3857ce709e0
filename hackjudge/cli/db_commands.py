"""
Database CLI Commands

Database operations: init, seed
"""
import asyncio

from hackjudge.cli.base import Command
from hackjudge.database import create_tables, make_session_factory
from hackjudge.seed_data import seed_sample_data


class DbCommand(Command):
    """Database CLI command handler."""

    def execute(self, args) -> int:
        """Execute database command."""
        if args.db_action == "init":
            return self._init(args)
        elif args.db_action == "seed":
            return self._seed(args)
        else:
            print("Error: Unknown database action")
            return 1

    def _init(self, args) -> int:
        """Create all tables."""
        print("=== Database Init ===")

        if self.dry_run:
            print(f"[DRY RUN] Would create tables in {self.database_url}")
            return 0

        try:
            asyncio.run(self._async_init())
            print("✓ Tables created")
            return 0
        except Exception as e:
            print(f"Init failed: {e}")
            return 1

    async def _async_init(self) -> None:
        async with self.engine() as engine:
            await create_tables(engine)

    def _seed(self, args) -> int:
        """Insert sample data."""
        print("=== Sample Data ===")

        if args.teams < 0 or args.judges < 0:
            print("Error: --teams and --judges must be non-negative")
            return 1

        if self.dry_run:
            print(f"[DRY RUN] Would seed {args.teams} teams and {args.judges} judges")
            return 0

        try:
            created = asyncio.run(self._async_seed(args.teams, args.judges))
        except Exception as e:
            print(f"Seed failed: {e}")
            return 1

        print(f"✓ Teams created: {created['teams']}")
        print(f"✓ Judges created: {created['judges']}")
        return 0

    async def _async_seed(self, teams: int, judges: int) -> dict:
        async with self.engine() as engine:
            await create_tables(engine)
            async with make_session_factory(engine)() as db:
                return await seed_sample_data(db, team_count=teams, judge_count=judges)
