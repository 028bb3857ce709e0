"""
Scoring Service

Records judges' scores. One score per (judge, team, round); saving again
overwrites the previous value. Aggregation for the leaderboard is done by
the reporting layer, not here.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hackjudge.orm.score import Score

logger = logging.getLogger(__name__)


class InvalidScoreError(ValueError):
    pass


def validate_score(score) -> float:
    try:
        value = float(score)
    except (TypeError, ValueError):
        raise InvalidScoreError(f"Score must be a number, got {score!r}") from None
    if value != value or value in (float("inf"), float("-inf")):
        raise InvalidScoreError("Score must be a finite number")
    return value


async def get_score(
    db: AsyncSession,
    judge_email: str,
    team_name: str,
    round_number: int,
) -> Optional[Score]:
    result = await db.execute(
        select(Score).where(
            and_(
                Score.judge_email == judge_email,
                Score.team_name == team_name,
                Score.round == round_number,
            )
        )
    )
    return result.scalar_one_or_none()


async def save_score(
    db: AsyncSession,
    judge_email: str,
    team_name: str,
    round_number: int,
    score: float,
    notes: Optional[str] = None,
    table_name: str = "",
) -> Score:
    """
    Insert or update the judge's score for a team.

    Runs in the caller's transaction; nothing is committed here.
    """
    value = validate_score(score)
    existing = await get_score(db, judge_email, team_name, round_number)

    if existing:
        existing.score = value
        existing.notes = notes
        existing.table_name = table_name or existing.table_name
        existing.updated_at = datetime.utcnow()
        record = existing
        logger.info(f"[SCORE] Updated {judge_email} -> {team_name} round {round_number}: {value}")
    else:
        record = Score(
            judge_email=judge_email,
            team_name=team_name,
            table_name=table_name or "",
            round=round_number,
            score=value,
            notes=notes,
        )
        db.add(record)
        logger.info(f"[SCORE] Saved {judge_email} -> {team_name} round {round_number}: {value}")

    await db.flush()
    return record


async def list_scores(db: AsyncSession, round_number: Optional[int] = None) -> List[Score]:
    query = select(Score)
    if round_number is not None:
        query = query.where(Score.round == round_number)
    result = await db.execute(query.order_by(Score.team_name, Score.judge_email))
    return list(result.scalars().all())
