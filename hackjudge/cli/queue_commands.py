"""
Judge Queue CLI Commands

Queue operations: stats, integrity, assign
"""
import asyncio
import json
from typing import Optional

from hackjudge.cli.base import Command
from hackjudge.config.settings import Settings
from hackjudge.services import integrity_service, registry_service
from hackjudge.services.locking_allocator import LockOutcome, assign_immediately
from hackjudge.services.queue_orchestrator import get_queue_statistics


class QueueCommand(Command):
    """Judge queue CLI command handler."""

    def execute(self, args) -> int:
        """Execute queue command."""
        if args.queue_action == "stats":
            return self._stats(args)
        elif args.queue_action == "integrity":
            return self._integrity(args)
        elif args.queue_action == "assign":
            return self._assign(args)
        else:
            print("Error: Unknown queue action")
            return 1

    async def _round(self, db, requested: Optional[int]) -> int:
        if requested is not None:
            return requested
        return await registry_service.get_current_round(db)

    def _stats(self, args) -> int:
        """Print per-team judge counts."""
        stats = asyncio.run(self._async_stats(args.round))

        if args.json:
            print(json.dumps(stats, indent=2))
            return 0

        required = stats["required_judges_per_team"]
        print(f"=== Queue Statistics: Round {stats['round']} ===")
        print(f"{'Team':<28} {'Table':<8} {'Division':<14} {'Judges':<8} Done")
        for row in stats["teams"]:
            print(
                f"{row['team_name']:<28} {row['table_name'] or '':<8} {row['division'] or '':<14} "
                f"{row['judge_count']}/{required:<6} {row['completed_count']}"
            )

        summary = stats["summary"]
        print()
        print(f"Teams: {summary['total_teams']}")
        print(f"Needing judges: {summary['teams_needing_judges']}")
        print(f"All complete: {summary['all_teams_complete']}")
        return 0

    async def _async_stats(self, round_number: Optional[int]) -> dict:
        async with self.session_factories() as (read_factory, _):
            async with read_factory() as db:
                round_number = await self._round(db, round_number)
                return await get_queue_statistics(db, round_number, Settings.judges_per_team())

    def _integrity(self, args) -> int:
        """Verify assignment integrity; exit 1 on violations."""
        report = asyncio.run(self._async_integrity(args.round))

        print(f"=== Assignment Integrity: Round {report['round']} ===")
        print(f"Assignments: {report['assignment_count']} ({report['completed_count']} completed)")
        for error in report["errors"]:
            print(f"  ✗ {error}")
        for warning in report["warnings"]:
            print(f"  ! {warning}")

        if report["is_valid"]:
            print("✓ No violations")
            return 0
        print(f"✗ {len(report['errors'])} violation(s)")
        return 1

    async def _async_integrity(self, round_number: Optional[int]) -> dict:
        async with self.session_factories() as (read_factory, _):
            async with read_factory() as db:
                round_number = await self._round(db, round_number)
                return await integrity_service.verify_round_integrity(
                    db,
                    round_number,
                    Settings.judges_per_team(),
                    stale_after_seconds=Settings.LOCK_STALE_AFTER_SECONDS,
                )

    def _assign(self, args) -> int:
        """Record an assignment directly (no lock timestamp)."""
        if self.dry_run:
            print(f"[DRY RUN] Would assign {args.judge} to {args.team}")
            return 0

        result = asyncio.run(self._async_assign(args.judge.strip().lower(), args.team, args.round))
        if result is None:
            print(f"Error: Unknown team {args.team}")
            return 1
        if result.outcome == LockOutcome.LOCKED:
            print(f"✓ {result.judge_email} assigned to {result.team_name} (round {result.round})")
            return 0
        print(f"✗ Not assigned: {result.outcome.value} ({result.reason})")
        return 1

    async def _async_assign(self, judge_email: str, team_name: str, round_number: Optional[int]):
        async with self.session_factories() as (read_factory, write_factory):
            async with read_factory() as db:
                round_number = await self._round(db, round_number)
                if await registry_service.get_team(db, team_name) is None:
                    return None
            return await assign_immediately(
                write_factory,
                judge_email,
                team_name,
                round_number,
                Settings.judges_per_team(),
                max_attempts=Settings.LOCK_MAX_ATTEMPTS,
                base_delay=Settings.lock_base_delay_seconds(),
                stale_after_seconds=Settings.LOCK_STALE_AFTER_SECONDS,
            )
