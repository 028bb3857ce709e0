"""
Candidate Selector

Decides which team a judge should evaluate next. `select_candidate` is pure:
it works on already-loaded teams and assignment rows and never touches the
database. `find_next_team` loads those rows and calls it.

Rules, applied in order:
1. Skip teams the judge has been assigned to in any round.
2. Skip teams the judge is assigned to in this round.
3. Skip teams whose row count for this round has reached the requirement.
4. Order survivors by (judge_count, team_name) ascending.
5. Return the first survivor, or None.

A result here is only a hint. The locking allocator re-validates everything
inside its transaction.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from hackjudge.services import assignment_store, registry_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    name: str
    table_name: str
    division: Optional[str]
    judge_count: int

    def to_dict(self):
        return {
            "team_name": self.name,
            "table_name": self.table_name,
            "division": self.division,
            "judge_count": self.judge_count,
        }


def select_candidate(
    judge_email: str,
    round_number: int,
    teams: Sequence,
    assignments: Iterable,
    required_judges_per_team: int,
    exclude: Iterable[str] = (),
) -> Optional[Candidate]:
    """
    Pick the least-judged team this judge may still take.

    Args:
        judge_email: Requesting judge
        round_number: Round being allocated
        teams: Objects with name, table_name, division
        assignments: Objects with judge_email, team_name, round. Must include
            every row of this round plus every row of this judge.
        required_judges_per_team: Slots per team per round
        exclude: Team names to skip for this call

    Returns:
        Candidate or None when nothing is eligible
    """
    if not teams:
        return None

    excluded = set(exclude)
    judged_ever = set()
    round_counts = {}

    for a in assignments:
        if a.judge_email == judge_email:
            # Covers rules 1 and 2: the current round is one of "any round"
            judged_ever.add(a.team_name)
        if a.round == round_number:
            round_counts[a.team_name] = round_counts.get(a.team_name, 0) + 1

    survivors = []
    for team in teams:
        if team.name in excluded or team.name in judged_ever:
            continue
        count = round_counts.get(team.name, 0)
        if count >= required_judges_per_team:
            continue
        survivors.append((count, team.name, team))

    if not survivors:
        return None

    count, _, team = min(survivors, key=lambda s: (s[0], s[1]))
    return Candidate(
        name=team.name,
        table_name=team.table_name or "",
        division=team.division,
        judge_count=count,
    )


def all_teams_full(teams: Sequence, round_counts: dict, required_judges_per_team: int) -> bool:
    """True when every team has reached the requirement for the round (vacuously true with no teams)."""
    return all(round_counts.get(t.name, 0) >= required_judges_per_team for t in teams)


async def find_next_team(
    db: AsyncSession,
    judge_email: str,
    round_number: int,
    required_judges_per_team: int,
    exclude: Iterable[str] = (),
) -> Optional[Candidate]:
    """Load teams and assignments, then run the selector."""
    teams = await registry_service.list_teams(db)
    assignments = await assignment_store.list_relevant_assignments(db, judge_email, round_number)
    candidate = select_candidate(
        judge_email,
        round_number,
        teams,
        assignments,
        required_judges_per_team,
        exclude=exclude,
    )
    if candidate:
        logger.debug(
            f"[QUEUE] Candidate for {judge_email} round {round_number}: "
            f"{candidate.name} (count={candidate.judge_count})"
        )
    return candidate
