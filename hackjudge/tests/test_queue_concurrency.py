"""
Concurrency Tests

Many judges pulling teams at the same time against one SQLite file.
Each coroutine uses its own sessions, so writers really contend for the
database write lock.
"""
import asyncio
import random
from collections import Counter

import pytest

from hackjudge.services.integrity_service import verify_round_integrity
from hackjudge.services.queue_orchestrator import QueueOutcome


async def judge_until_done(judge, next_team, finish, rng, required=2, max_requests=200):
    """Pull, score and repeat until the queue has nothing more for this judge."""
    outcomes = []
    for _ in range(max_requests):
        result = await next_team(judge, required=required)
        outcomes.append(result.outcome)
        if result.assigned:
            await asyncio.sleep(rng.uniform(0, 0.01))
            await finish(judge, result.team_name)
        elif result.outcome == QueueOutcome.ASSIGNMENT_FAILED:
            await asyncio.sleep(rng.uniform(0.005, 0.02))
        else:
            return outcomes
    raise AssertionError(f"{judge} never finished judging")


class TestBurstOnSingleTeam:

    async def test_one_claim_per_burst(self, seed, next_team, finish, fetch_assignments):
        """
        Only one judge can be in front of a team at a time.

        While a claim is active every other judge is refused and told to
        retry, so a burst yields a single claim even when the team needs two
        judges. The second slot opens once the first judge completes (or the
        claim goes stale), and the run ends with exactly two judges on Solo.
        """
        judges = [f"j{i}@x.com" for i in range(8)]
        await seed(teams=["Solo"], judges=judges)

        first = await asyncio.gather(*[next_team(j) for j in judges])
        winners = [r for r in first if r.assigned]
        assert len(winners) == 1
        assert all(r.outcome == QueueOutcome.ASSIGNMENT_FAILED for r in first if not r.assigned)
        assert all(r.contended_teams == ["Solo"] for r in first if not r.assigned)

        first_winner = winners[0].judge_email
        await finish(first_winner, "Solo")

        remaining = [j for j in judges if j != first_winner]
        second = await asyncio.gather(*[next_team(j) for j in remaining])
        winners = [r for r in second if r.assigned]
        assert len(winners) == 1
        await finish(winners[0].judge_email, "Solo")

        rows = await fetch_assignments()
        assert len(rows) == 2
        assert len({r.judge_email for r in rows}) == 2

        late = await asyncio.gather(*[next_team(j) for j in judges])
        assert all(r.outcome == QueueOutcome.ALL_TEAMS_COMPLETE for r in late)
        assert len(await fetch_assignments()) == 2


class TestFullEvent:

    @pytest.mark.parametrize("rng_seed", [1, 7, 42])
    async def test_twenty_teams_eight_judges(self, seed, next_team, finish, fetch_assignments, db, rng_seed):
        teams = [f"Team {i:02d}" for i in range(20)]
        judges = [f"j{i}@x.com" for i in range(8)]
        await seed(teams=teams, judges=judges)
        rng = random.Random(rng_seed)

        await asyncio.gather(*[
            judge_until_done(judge, next_team, finish, random.Random(rng.random()))
            for judge in judges
        ])

        rows = await fetch_assignments()
        assert len(rows) == 40
        assert all(count == 2 for count in Counter(r.team_name for r in rows).values())
        assert len({(r.judge_email, r.team_name) for r in rows}) == 40
        assert all(r.completed for r in rows)

        report = await verify_round_integrity(db, 1, 2)
        assert report["is_valid"], report["errors"]
        assert report["assignment_count"] == 40


class TestSameJudgeDoubleClick:

    async def test_two_requests_at_once(self, seed, next_team, fetch_assignments):
        await seed(teams=["Alpha", "Beta"], judges=["a@x.com"])

        results = await asyncio.gather(next_team("a@x.com"), next_team("a@x.com"))

        assert all(r.assigned for r in results)
        rows = await fetch_assignments()
        assert 1 <= len(rows) <= 2
        assert len({(r.judge_email, r.team_name, r.round) for r in rows}) == len(rows)
