"""
Judge Queue API Routes

- POST /queue/next       pull (and claim) the next team to judge
- POST /queue/complete   submit a score and complete the claimed team
- GET  /queue/stats      per-team judge counts for a round
- GET  /queue/me         the judge's history and open claims
- GET  /queue/integrity  assignment audit for a round (admin)
"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hackjudge.config.settings import Settings
from hackjudge.database import get_db, get_read_session_factory, get_write_session_factory
from hackjudge.errors import (
    BadRequestError,
    ErrorCode,
    LockedError,
    ServiceUnavailableError,
    from_queue_error,
)
from hackjudge.limiter import limiter
from hackjudge.orm.user import User
from hackjudge.rbac import get_current_judge, require_admin
from hackjudge.schemas.queue import (
    CompleteRequest,
    CompleteResponse,
    IntegrityResponse,
    JudgeQueueResponse,
    NextTeamRequest,
    NextTeamResponse,
    QueueStatsResponse,
)
from hackjudge.services import integrity_service, registry_service
from hackjudge.services.queue_orchestrator import (
    QueueEngineError,
    QueueOutcome,
    complete_assignment,
    get_judged_teams_by_judge,
    get_pending_assignments,
    get_queue_statistics,
    request_next_team,
)
from hackjudge.services.scoring_service import InvalidScoreError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/queue", tags=["Judge Queue"])


async def _resolve_round(db: AsyncSession, requested: Optional[int]) -> int:
    if requested is not None:
        return requested
    return await registry_service.get_current_round(db)


def _score_url(team_name: str, round_number: int) -> str:
    return f"/scores/enter/{quote(team_name)}?round={round_number}&auto=1"


# =============================================================================
# Judge Endpoints
# =============================================================================

@router.post("/next", response_model=NextTeamResponse)
@limiter.limit(Settings.NEXT_TEAM_RATE_LIMIT)
async def next_team(
    request: Request,
    payload: Optional[NextTeamRequest] = Body(default=None),
    db: AsyncSession = Depends(get_db),
    read_factory: async_sessionmaker = Depends(get_read_session_factory),
    write_factory: async_sessionmaker = Depends(get_write_session_factory),
    current_judge: User = Depends(get_current_judge),
) -> Dict[str, Any]:
    """
    Claim the next team for the signed-in judge.

    Statuses:
    - assigned: go to score_url
    - all_teams_complete: every team has its judges for the round
    - no_more_for_you: remaining teams need judges other than you
    - 503 assignment_failed: busy, try again
    """
    # The rollback below expires current_judge; keep a plain copy
    judge_email = current_judge.email
    if await registry_service.is_judging_locked(db):
        raise LockedError("Judging is currently locked by the organizers", ErrorCode.JUDGING_LOCKED)

    round_number = await _resolve_round(db, payload.round if payload else None)
    # Release the read snapshot before the allocator takes the write lock
    await db.rollback()

    try:
        result = await request_next_team(
            write_factory,
            judge_email,
            round_number,
            Settings.judges_per_team(),
            read_session_factory=read_factory,
            max_attempts=Settings.QUEUE_MAX_ATTEMPTS,
            lock_max_attempts=Settings.LOCK_MAX_ATTEMPTS,
            lock_base_delay=Settings.lock_base_delay_seconds(),
            stale_after_seconds=Settings.LOCK_STALE_AFTER_SECONDS,
        )
    except QueueEngineError as e:
        logger.error(f"[QUEUE] next-team refused for {judge_email}: {e.code} - {e.message}")
        raise from_queue_error(e)

    if result.outcome == QueueOutcome.ASSIGNMENT_FAILED:
        raise ServiceUnavailableError(result.message, ErrorCode.ASSIGNMENT_FAILED)

    response = {
        "status": result.outcome.value,
        "message": result.message,
        "round": round_number,
    }
    if result.assigned:
        response["team"] = result.candidate.to_dict()
        response["assignment_id"] = result.assignment_id
        response["score_url"] = _score_url(result.candidate.name, round_number)
    return response


@router.post("/complete", response_model=CompleteResponse)
async def complete(
    payload: CompleteRequest,
    db: AsyncSession = Depends(get_db),
    write_factory: async_sessionmaker = Depends(get_write_session_factory),
    current_judge: User = Depends(get_current_judge),
) -> Dict[str, Any]:
    """Submit a score for a claimed team and mark the assignment completed."""
    # The rollback below expires current_judge; keep a plain copy
    judge_email = current_judge.email
    if await registry_service.is_judging_locked(db):
        raise LockedError("Judging is currently locked by the organizers", ErrorCode.JUDGING_LOCKED)

    round_number = await _resolve_round(db, payload.round)
    if await registry_service.is_round_locked(db, round_number):
        raise LockedError(f"Round {round_number} is locked; scores can no longer be changed", ErrorCode.ROUND_LOCKED)
    await db.rollback()

    try:
        data = await complete_assignment(
            write_factory,
            judge_email,
            payload.team_name,
            round_number,
            payload.score,
            notes=payload.notes,
            max_attempts=Settings.LOCK_MAX_ATTEMPTS,
            base_delay=Settings.lock_base_delay_seconds(),
        )
    except InvalidScoreError as e:
        raise BadRequestError(str(e), ErrorCode.INVALID_SCORE)
    except QueueEngineError as e:
        logger.warning(f"[COMPLETE] Refused for {judge_email}: {e.code} - {e.message}")
        raise from_queue_error(e)

    return {
        "success": True,
        "message": f"Score saved for {payload.team_name}",
        "assignment": data["assignment"],
        "score": data["score"],
    }


@router.get("/stats", response_model=QueueStatsResponse)
async def queue_stats(
    round: Optional[int] = Query(default=None, ge=1, description="Round (defaults to current)"),
    db: AsyncSession = Depends(get_db),
    current_judge: User = Depends(get_current_judge),
) -> Dict[str, Any]:
    """Per-team judge counts for a round, least-judged first."""
    round_number = await _resolve_round(db, round)
    return await get_queue_statistics(db, round_number, Settings.judges_per_team())


@router.get("/me", response_model=JudgeQueueResponse)
async def my_queue(
    db: AsyncSession = Depends(get_db),
    current_judge: User = Depends(get_current_judge),
) -> Dict[str, Any]:
    current_round = await registry_service.get_current_round(db)
    return {
        "judge_email": current_judge.email,
        "current_round": current_round,
        "judged_teams": await get_judged_teams_by_judge(db, current_judge.email),
        "pending": await get_pending_assignments(db, current_judge.email),
    }


# =============================================================================
# Admin Endpoints
# =============================================================================

@router.get("/integrity", response_model=IntegrityResponse)
async def queue_integrity(
    round: Optional[int] = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> Dict[str, Any]:
    """
    Audit assignments for a round.

    Roles: admin only
    """
    round_number = await _resolve_round(db, round)
    return await integrity_service.verify_round_integrity(
        db,
        round_number,
        Settings.judges_per_team(),
        stale_after_seconds=Settings.LOCK_STALE_AFTER_SECONDS,
    )
