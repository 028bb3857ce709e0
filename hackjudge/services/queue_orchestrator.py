"""
Queue Orchestrator

Public operations of the judge queue:
- request_next_team: select -> lock -> re-select on conflict
- mark_assignment_completed / complete_assignment: finish a claimed slot
- get_queue_statistics, get_judged_teams_by_judge, get_pending_assignments:
  unlocked reads for dashboards

Round number and required judges per team are always passed in by the
caller; nothing here reads configuration.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hackjudge.core.retry import RetryExhaustedError, with_retry
from hackjudge.orm.assignment import JudgeTeamAssignment
from hackjudge.services import assignment_store, registry_service, scoring_service
from hackjudge.services.candidate_selector import Candidate, all_teams_full, find_next_team
from hackjudge.services.locking_allocator import (
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_STALE_AFTER_SECONDS,
    LockOutcome,
    lock_assignment,
)

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_ATTEMPTS = 5


# =============================================================================
# Exceptions
# =============================================================================

class QueueEngineError(Exception):
    """Base exception for judge queue errors."""
    def __init__(self, message: str, code: str = "QUEUE_ENGINE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class AssignmentNotFoundError(QueueEngineError):
    def __init__(self, judge_email: str, team_name: str, round_number: int):
        super().__init__(
            f"No assignment for {judge_email} on team {team_name} in round {round_number}",
            "ASSIGNMENT_NOT_FOUND",
        )


class DuplicateAssignmentError(QueueEngineError):
    def __init__(self, judge_email: str, team_name: str, detail: str = ""):
        message = f"{judge_email} already has an assignment for team {team_name}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, "DUPLICATE_ASSIGNMENT")


class QueueBusyError(QueueEngineError):
    def __init__(self):
        super().__init__("The judging queue is busy, please try again", "STORAGE_BUSY")


# =============================================================================
# Results
# =============================================================================

class QueueOutcome(str, Enum):
    ASSIGNED = "assigned"
    ALL_TEAMS_COMPLETE = "all_teams_complete"
    NO_MORE_FOR_YOU = "no_more_for_you"
    ASSIGNMENT_FAILED = "assignment_failed"


OUTCOME_MESSAGES = {
    QueueOutcome.ASSIGNED: "Team assigned",
    QueueOutcome.ALL_TEAMS_COMPLETE: "All teams have been judged for this round. Thank you!",
    QueueOutcome.NO_MORE_FOR_YOU: (
        "You have judged every team available to you this round. "
        "Other judges are still finishing up."
    ),
    QueueOutcome.ASSIGNMENT_FAILED: "Could not assign a team right now. Please try again in a moment.",
}


@dataclass
class QueueResult:
    outcome: QueueOutcome
    judge_email: str
    round: int
    candidate: Optional[Candidate] = None
    assignment_id: Optional[int] = None
    attempts: int = 0
    contended_teams: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return OUTCOME_MESSAGES[self.outcome]

    @property
    def assigned(self) -> bool:
        return self.outcome == QueueOutcome.ASSIGNED

    @property
    def team_name(self) -> Optional[str]:
        return self.candidate.name if self.candidate else None


# =============================================================================
# Next team
# =============================================================================

async def request_next_team(
    session_factory: async_sessionmaker,
    judge_email: str,
    round_number: int,
    required_judges_per_team: int,
    read_session_factory: Optional[async_sessionmaker] = None,
    max_attempts: int = DEFAULT_QUEUE_ATTEMPTS,
    lock_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    lock_base_delay: float = DEFAULT_BASE_DELAY,
    stale_after_seconds: Optional[int] = DEFAULT_STALE_AFTER_SECONDS,
    clock: Callable[[], datetime] = datetime.utcnow,
    sleep=asyncio.sleep,
) -> QueueResult:
    """
    Find and claim the next team for a judge.

    Args:
        session_factory: Write session factory used by the allocator
        judge_email: Requesting judge
        round_number: Round being judged
        required_judges_per_team: Slots per team per round
        read_session_factory: Factory for selection reads (defaults to
            session_factory)
        max_attempts: Re-selections allowed after a conflict

    Returns:
        QueueResult with one of the four outcomes

    Raises:
        DuplicateAssignmentError: the selector offered a team the judge
            already has a row for
    """
    read_factory = read_session_factory or session_factory
    exclude = set()
    contended = []

    for attempt in range(1, max_attempts + 1):
        async with read_factory() as db:
            candidate = await find_next_team(
                db, judge_email, round_number, required_judges_per_team, exclude=exclude
            )
            if candidate is None:
                teams = await registry_service.list_teams(db)
                counts = await assignment_store.get_round_counts(db, round_number)
                existing = []
            else:
                existing = await assignment_store.get_judge_records_for_team(
                    db, judge_email, candidate.name
                )

        if candidate is None:
            if contended:
                # Teams remain but other judges are in front of them
                outcome = QueueOutcome.ASSIGNMENT_FAILED
            elif all_teams_full(teams, counts, required_judges_per_team):
                outcome = QueueOutcome.ALL_TEAMS_COMPLETE
            else:
                outcome = QueueOutcome.NO_MORE_FOR_YOU
            logger.info(f"[QUEUE] {judge_email} round {round_number}: {outcome.value}")
            return QueueResult(
                outcome, judge_email, round_number, attempts=attempt, contended_teams=contended
            )

        if existing:
            logger.error(
                f"[QUEUE] Selector offered {candidate.name} to {judge_email} who already has "
                f"round(s) {[r.round for r in existing]}"
            )
            raise DuplicateAssignmentError(judge_email, candidate.name, "offered again by selector")

        lock = await lock_assignment(
            session_factory,
            judge_email,
            candidate.name,
            round_number,
            required_judges_per_team,
            max_attempts=lock_max_attempts,
            base_delay=lock_base_delay,
            stale_after_seconds=stale_after_seconds,
            clock=clock,
            sleep=sleep,
        )

        if lock.outcome == LockOutcome.LOCKED:
            logger.info(
                f"[QUEUE] Assigned {candidate.name} to {judge_email} round {round_number} "
                f"(attempt {attempt})"
            )
            return QueueResult(
                QueueOutcome.ASSIGNED,
                judge_email,
                round_number,
                candidate=candidate,
                assignment_id=lock.assignment_id,
                attempts=attempt,
                contended_teams=contended,
            )

        if lock.outcome == LockOutcome.LOCK_FAILED:
            return QueueResult(
                QueueOutcome.ASSIGNMENT_FAILED,
                judge_email,
                round_number,
                attempts=attempt,
                contended_teams=contended,
            )

        if lock.outcome == LockOutcome.ALREADY_LOCKED_BY_OTHER:
            contended.append(candidate.name)
        logger.warning(
            f"[QUEUE] {candidate.name} unavailable for {judge_email} ({lock.outcome.value}), re-selecting"
        )
        exclude.add(candidate.name)

    logger.warning(f"[QUEUE] {judge_email} round {round_number}: gave up after {max_attempts} attempts")
    return QueueResult(
        QueueOutcome.ASSIGNMENT_FAILED,
        judge_email,
        round_number,
        attempts=max_attempts,
        contended_teams=contended,
    )


# =============================================================================
# Completion
# =============================================================================

async def _load_for_completion(
    db: AsyncSession,
    judge_email: str,
    team_name: str,
    round_number: int,
) -> JudgeTeamAssignment:
    rows = await assignment_store.get_judge_records_for_team(db, judge_email, team_name)
    assignment = next((r for r in rows if r.round == round_number), None)
    if assignment is None:
        raise AssignmentNotFoundError(judge_email, team_name, round_number)

    for row in rows:
        if row.round != round_number and row.completed:
            logger.error(
                f"[COMPLETE] {judge_email} already completed {team_name} in round {row.round}"
            )
            raise DuplicateAssignmentError(
                judge_email, team_name, f"completed in round {row.round}"
            )
    return assignment


async def _run_write(
    session_factory: async_sessionmaker,
    body: Callable[[AsyncSession], Any],
    label: str,
    max_attempts: int,
    base_delay: float,
    sleep,
) -> Any:
    async def attempt():
        async with session_factory() as db:
            async with db.begin():
                return await body(db)

    try:
        return await with_retry(
            attempt,
            max_attempts=max_attempts,
            base_delay=base_delay,
            retry_on=(OperationalError,),
            label=label,
            sleep=sleep,
        )
    except RetryExhaustedError:
        raise QueueBusyError()


async def mark_assignment_completed(
    session_factory: async_sessionmaker,
    judge_email: str,
    team_name: str,
    round_number: int,
    clock: Callable[[], datetime] = datetime.utcnow,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    sleep=asyncio.sleep,
) -> Dict[str, Any]:
    """
    Mark the judge's row for (team, round) completed.

    Idempotent: a second call leaves the row as it is. Never creates rows and
    never re-checks capacity.

    Raises:
        AssignmentNotFoundError: no row for the triple
        DuplicateAssignmentError: the judge completed this team in another round
    """
    async def body(db: AsyncSession):
        assignment = await _load_for_completion(db, judge_email, team_name, round_number)
        changed = assignment_store.apply_completion(assignment, clock())
        return assignment.to_dict(), changed

    data, changed = await _run_write(
        session_factory, body, f"complete {judge_email}->{team_name}", max_attempts, base_delay, sleep
    )
    if changed:
        logger.info(f"[COMPLETE] {judge_email} completed {team_name} round {round_number}")
    else:
        logger.info(f"[COMPLETE] {judge_email} -> {team_name} round {round_number} already completed")
    return data


async def complete_assignment(
    session_factory: async_sessionmaker,
    judge_email: str,
    team_name: str,
    round_number: int,
    score: float,
    notes: Optional[str] = None,
    clock: Callable[[], datetime] = datetime.utcnow,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    sleep=asyncio.sleep,
) -> Dict[str, Any]:
    """
    Save the judge's score and complete the assignment in one transaction.

    The assignment must already exist. Resubmitting overwrites the score and
    leaves the assignment completed.
    """
    value = scoring_service.validate_score(score)

    async def body(db: AsyncSession):
        assignment = await _load_for_completion(db, judge_email, team_name, round_number)
        team = await registry_service.get_team(db, team_name)
        saved = await scoring_service.save_score(
            db,
            judge_email,
            team_name,
            round_number,
            value,
            notes=notes,
            table_name=team.table_name if team else "",
        )
        assignment_store.apply_completion(assignment, clock())
        return {"assignment": assignment.to_dict(), "score": saved.to_dict()}

    data = await _run_write(
        session_factory, body, f"submit {judge_email}->{team_name}", max_attempts, base_delay, sleep
    )
    logger.info(f"[COMPLETE] {judge_email} scored {team_name} round {round_number}: {value}")
    return data


# =============================================================================
# Reads
# =============================================================================

async def get_queue_statistics(
    db: AsyncSession,
    round_number: int,
    required_judges_per_team: int,
) -> Dict[str, Any]:
    """
    Per-team judge counts for a round, least-judged first.

    Unlocked read; may trail concurrent allocations slightly.
    """
    teams = await registry_service.list_teams(db)
    assignments = await assignment_store.list_assignments(db, round_number)

    by_team: Dict[str, List[JudgeTeamAssignment]] = {}
    for a in assignments:
        by_team.setdefault(a.team_name, []).append(a)

    rows = []
    for team in teams:
        team_rows = by_team.get(team.name, [])
        judges = assignment_store.distinct_judges(team_rows)
        rows.append({
            "team_name": team.name,
            "table_name": team.table_name,
            "division": team.division,
            "judge_count": len(judges),
            "completed_count": sum(1 for a in team_rows if a.completed),
            "judges": judges,
        })
    rows.sort(key=lambda r: (r["judge_count"], r["team_name"]))

    needing = sum(1 for r in rows if r["judge_count"] < required_judges_per_team)
    return {
        "round": round_number,
        "required_judges_per_team": required_judges_per_team,
        "teams": rows,
        "summary": {
            "total_teams": len(rows),
            "teams_needing_judges": needing,
            "all_teams_complete": needing == 0,
        },
    }


async def get_judged_teams_by_judge(db: AsyncSession, judge_email: str) -> List[Dict[str, Any]]:
    """Every team the judge has been assigned, across all rounds."""
    assignments = await assignment_store.list_judge_assignments(db, judge_email)
    teams = {t.name: t for t in await registry_service.list_teams(db)}

    judged = []
    for a in assignments:
        team = teams.get(a.team_name)
        judged.append({
            "team_name": a.team_name,
            "round": a.round,
            "table_name": team.table_name if team else None,
            "division": team.division if team else None,
            "completed": bool(a.completed),
        })
    judged.sort(key=lambda j: (j["round"], j["team_name"]))
    return judged


async def get_pending_assignments(
    db: AsyncSession,
    judge_email: str,
    round_number: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Claims the judge holds but has not completed."""
    rows = await assignment_store.list_pending_for_judge(db, judge_email, round_number)
    return [r.to_dict() for r in rows]
