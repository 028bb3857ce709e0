"""
Assignment Store

Query helpers over judge_team_assignments. Every function takes the session
it runs in; callers decide whether that session is a plain read session or
a write transaction.

Row inserts and the completion update live here too, but only the locking
allocator and the orchestrator's completion path call them.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hackjudge.orm.assignment import JudgeTeamAssignment

logger = logging.getLogger(__name__)


# =============================================================================
# Reads
# =============================================================================

async def count_for_team_round(db: AsyncSession, team_name: str, round_number: int) -> int:
    """Number of rows (completed or not) for a team in a round."""
    result = await db.execute(
        select(func.count(JudgeTeamAssignment.id)).where(
            and_(
                JudgeTeamAssignment.team_name == team_name,
                JudgeTeamAssignment.round == round_number,
            )
        )
    )
    return result.scalar() or 0


async def get_judge_records_for_team(
    db: AsyncSession,
    judge_email: str,
    team_name: str,
) -> List[JudgeTeamAssignment]:
    """All rows for this judge and team, any round."""
    result = await db.execute(
        select(JudgeTeamAssignment)
        .where(
            and_(
                JudgeTeamAssignment.judge_email == judge_email,
                JudgeTeamAssignment.team_name == team_name,
            )
        )
        .order_by(JudgeTeamAssignment.round)
    )
    return list(result.scalars().all())


async def get_active_lock_holders(
    db: AsyncSession,
    team_name: str,
    round_number: int,
    exclude_judge: Optional[str] = None,
    stale_after_seconds: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[str]:
    """
    Judges holding an uncompleted, non-stale lock on (team, round).

    Claims older than `stale_after_seconds` are ignored here; they still
    count toward team capacity.
    """
    conditions = [
        JudgeTeamAssignment.team_name == team_name,
        JudgeTeamAssignment.round == round_number,
        JudgeTeamAssignment.completed == False,  # noqa: E712
        JudgeTeamAssignment.locked_at.isnot(None),
    ]
    if exclude_judge is not None:
        conditions.append(JudgeTeamAssignment.judge_email != exclude_judge)
    if stale_after_seconds is not None:
        cutoff = (now or datetime.utcnow()) - timedelta(seconds=stale_after_seconds)
        conditions.append(JudgeTeamAssignment.locked_at > cutoff)

    result = await db.execute(
        select(JudgeTeamAssignment.judge_email).where(and_(*conditions))
    )
    return list(result.scalars().all())


async def list_assignments(
    db: AsyncSession,
    round_number: Optional[int] = None,
) -> List[JudgeTeamAssignment]:
    query = select(JudgeTeamAssignment)
    if round_number is not None:
        query = query.where(JudgeTeamAssignment.round == round_number)
    result = await db.execute(query.order_by(JudgeTeamAssignment.id))
    return list(result.scalars().all())


async def list_judge_assignments(db: AsyncSession, judge_email: str) -> List[JudgeTeamAssignment]:
    """Every row for a judge across all rounds."""
    result = await db.execute(
        select(JudgeTeamAssignment)
        .where(JudgeTeamAssignment.judge_email == judge_email)
        .order_by(JudgeTeamAssignment.round, JudgeTeamAssignment.assigned_at)
    )
    return list(result.scalars().all())


async def list_relevant_assignments(
    db: AsyncSession,
    judge_email: str,
    round_number: int,
) -> List[JudgeTeamAssignment]:
    """Rows the candidate selector needs: the whole round plus the judge's history."""
    result = await db.execute(
        select(JudgeTeamAssignment).where(
            (JudgeTeamAssignment.round == round_number)
            | (JudgeTeamAssignment.judge_email == judge_email)
        )
    )
    return list(result.scalars().all())


async def get_round_counts(db: AsyncSession, round_number: int) -> Dict[str, int]:
    """team_name -> row count for the round."""
    result = await db.execute(
        select(JudgeTeamAssignment.team_name, func.count(JudgeTeamAssignment.id))
        .where(JudgeTeamAssignment.round == round_number)
        .group_by(JudgeTeamAssignment.team_name)
    )
    return {team_name: count for team_name, count in result.all()}


async def list_pending_for_judge(
    db: AsyncSession,
    judge_email: str,
    round_number: Optional[int] = None,
) -> List[JudgeTeamAssignment]:
    conditions = [
        JudgeTeamAssignment.judge_email == judge_email,
        JudgeTeamAssignment.completed == False,  # noqa: E712
    ]
    if round_number is not None:
        conditions.append(JudgeTeamAssignment.round == round_number)
    result = await db.execute(
        select(JudgeTeamAssignment)
        .where(and_(*conditions))
        .order_by(JudgeTeamAssignment.assigned_at)
    )
    return list(result.scalars().all())


# =============================================================================
# Writes
# =============================================================================

async def insert_assignment(
    db: AsyncSession,
    judge_email: str,
    team_name: str,
    round_number: int,
    now: datetime,
    lock: bool = True,
) -> JudgeTeamAssignment:
    """Add a new row and flush so the id is populated. Caller owns the transaction."""
    assignment = JudgeTeamAssignment(
        judge_email=judge_email,
        team_name=team_name,
        round=round_number,
        assigned_at=now,
        locked_at=now if lock else None,
        completed=False,
    )
    db.add(assignment)
    await db.flush()
    return assignment


def apply_completion(assignment: JudgeTeamAssignment, now: datetime) -> bool:
    """
    Mark a row completed and release its lock.

    Returns False when the row was already completed (nothing changed).
    """
    if assignment.completed:
        return False
    assignment.completed = True
    assignment.completed_at = now
    assignment.locked_at = None
    return True


def distinct_judges(assignments: Sequence[JudgeTeamAssignment]) -> List[str]:
    return sorted({a.judge_email for a in assignments})
