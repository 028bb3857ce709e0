"""
Locking Allocator

Atomically claims a (judge, team, round) slot. This is the only code path
that inserts rows into judge_team_assignments.

Each attempt is a single write transaction (BEGIN IMMEDIATE on SQLite,
SERIALIZABLE elsewhere) running these checks in order:

0. The judge's own rows for this team. Uncompleted row in this round:
   refresh the lock and return LOCKED. Completed row in this round, or any
   row in another round: ALREADY_JUDGED.
1. Capacity: rows for (team, round) >= required -> TEAM_FULL
2. Another judge holds an active, non-stale lock -> ALREADY_LOCKED_BY_OTHER
3. Capacity re-check immediately before writing -> TEAM_FULL
4. Insert the row (locked_at = now, completed = false)
5. Read the row back and verify it -> LOCK_FAILED if it does not match

Busy/locked storage errors are retried with jittered backoff; once the
ceiling is hit the result is LOCK_FAILED.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hackjudge.core.retry import RetryExhaustedError, with_retry
from hackjudge.orm.assignment import JudgeTeamAssignment
from hackjudge.services import assignment_store

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_BASE_DELAY = 0.025
DEFAULT_STALE_AFTER_SECONDS = 900


class _VerificationFailed(Exception):
    """Row read back after insert did not match what was written."""


class LockOutcome(str, Enum):
    LOCKED = "locked"
    ALREADY_LOCKED_BY_OTHER = "already_locked_by_other"
    TEAM_FULL = "team_full"
    LOCK_FAILED = "lock_failed"
    ALREADY_JUDGED = "already_judged"


@dataclass
class LockResult:
    outcome: LockOutcome
    judge_email: str
    team_name: str
    round: int
    assignment_id: Optional[int] = None
    reason: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome == LockOutcome.LOCKED

    def to_dict(self):
        return {
            "outcome": self.outcome.value,
            "judge_email": self.judge_email,
            "team_name": self.team_name,
            "round": self.round,
            "assignment_id": self.assignment_id,
            "reason": self.reason,
        }


async def _claim_in_transaction(
    db: AsyncSession,
    judge_email: str,
    team_name: str,
    round_number: int,
    required_judges_per_team: int,
    now: datetime,
    lock: bool,
    stale_after_seconds: Optional[int],
) -> LockResult:
    def result(outcome: LockOutcome, assignment_id: Optional[int] = None, reason: Optional[str] = None):
        return LockResult(outcome, judge_email, team_name, round_number, assignment_id, reason)

    # Step 0: the judge's own history with this team
    own_rows = await assignment_store.get_judge_records_for_team(db, judge_email, team_name)
    for row in own_rows:
        if row.round != round_number:
            return result(LockOutcome.ALREADY_JUDGED, reason=f"judged in round {row.round}")
    if own_rows:
        row = own_rows[0]
        if row.completed:
            return result(LockOutcome.ALREADY_JUDGED, row.id, "already completed this round")
        if lock:
            row.locked_at = now
        return result(LockOutcome.LOCKED, row.id, "existing claim")

    # Step 1: capacity
    count = await assignment_store.count_for_team_round(db, team_name, round_number)
    if count >= required_judges_per_team:
        return result(LockOutcome.TEAM_FULL, reason=f"{count}/{required_judges_per_team} judges")

    # Step 2: another judge in front of the team
    holders = await assignment_store.get_active_lock_holders(
        db,
        team_name,
        round_number,
        exclude_judge=judge_email,
        stale_after_seconds=stale_after_seconds,
        now=now,
    )
    if holders:
        return result(LockOutcome.ALREADY_LOCKED_BY_OTHER, reason=f"held by {len(holders)} judge(s)")

    # Step 3: re-check capacity right before the write
    count = await assignment_store.count_for_team_round(db, team_name, round_number)
    if count >= required_judges_per_team:
        return result(LockOutcome.TEAM_FULL, reason=f"{count}/{required_judges_per_team} judges")

    # Step 4: write
    row = await assignment_store.insert_assignment(
        db, judge_email, team_name, round_number, now=now, lock=lock
    )

    # Step 5: verify
    stored = await db.get(JudgeTeamAssignment, row.id, populate_existing=True)
    if stored is None or stored.judge_email != judge_email or (lock and stored.locked_at is None):
        logger.error(f"[LOCK] Verification failed for {judge_email} -> {team_name} round {round_number}")
        raise _VerificationFailed()

    return result(LockOutcome.LOCKED, stored.id)


async def _allocate(
    session_factory: async_sessionmaker,
    judge_email: str,
    team_name: str,
    round_number: int,
    required_judges_per_team: int,
    lock: bool,
    max_attempts: int,
    base_delay: float,
    stale_after_seconds: Optional[int],
    clock: Callable[[], datetime],
    sleep,
) -> LockResult:
    async def attempt() -> LockResult:
        async with session_factory() as db:
            async with db.begin():
                return await _claim_in_transaction(
                    db,
                    judge_email,
                    team_name,
                    round_number,
                    required_judges_per_team,
                    now=clock(),
                    lock=lock,
                    stale_after_seconds=stale_after_seconds,
                )

    try:
        # IntegrityError: a concurrent insert of the same triple won; the
        # next attempt sees it at step 0
        result = await with_retry(
            attempt,
            max_attempts=max_attempts,
            base_delay=base_delay,
            retry_on=(OperationalError, IntegrityError),
            label=f"lock {judge_email}->{team_name}",
            sleep=sleep,
        )
    except RetryExhaustedError as e:
        logger.warning(
            f"[LOCK] Contention exhausted retries for {judge_email} -> {team_name} "
            f"round {round_number}: {type(e.last_error).__name__}"
        )
        return LockResult(
            LockOutcome.LOCK_FAILED, judge_email, team_name, round_number, reason="storage busy"
        )
    except _VerificationFailed:
        return LockResult(
            LockOutcome.LOCK_FAILED, judge_email, team_name, round_number, reason="verification failed"
        )

    if result.success:
        logger.info(
            f"[LOCK] {judge_email} claimed {team_name} round {round_number} "
            f"(assignment {result.assignment_id})"
        )
    else:
        logger.info(
            f"[LOCK] {judge_email} -> {team_name} round {round_number}: "
            f"{result.outcome.value} ({result.reason})"
        )
    return result


async def lock_assignment(
    session_factory: async_sessionmaker,
    judge_email: str,
    team_name: str,
    round_number: int,
    required_judges_per_team: int,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    stale_after_seconds: Optional[int] = DEFAULT_STALE_AFTER_SECONDS,
    clock: Callable[[], datetime] = datetime.utcnow,
    sleep=asyncio.sleep,
) -> LockResult:
    """
    Claim a slot for the judge with a lock timestamp.

    `session_factory` must produce write sessions (see
    hackjudge.database.WriteSessionLocal).
    """
    return await _allocate(
        session_factory,
        judge_email,
        team_name,
        round_number,
        required_judges_per_team,
        lock=True,
        max_attempts=max_attempts,
        base_delay=base_delay,
        stale_after_seconds=stale_after_seconds,
        clock=clock,
        sleep=sleep,
    )


async def assign_immediately(
    session_factory: async_sessionmaker,
    judge_email: str,
    team_name: str,
    round_number: int,
    required_judges_per_team: int,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    stale_after_seconds: Optional[int] = DEFAULT_STALE_AFTER_SECONDS,
    clock: Callable[[], datetime] = datetime.utcnow,
    sleep=asyncio.sleep,
) -> LockResult:
    """
    Record an assignment without a lock timestamp (admin and CLI tooling).

    Runs the same checks as lock_assignment; the row does not block other
    judges from the team.
    """
    return await _allocate(
        session_factory,
        judge_email,
        team_name,
        round_number,
        required_judges_per_team,
        lock=False,
        max_attempts=max_attempts,
        base_delay=base_delay,
        stale_after_seconds=stale_after_seconds,
        clock=clock,
        sleep=sleep,
    )
