"""
Integrity Service

Read-only audit of the assignment table for a round. Used by the admin
endpoint and `python -m hackjudge.cli queue integrity`.
"""
import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from hackjudge.services import assignment_store, registry_service, scoring_service

logger = logging.getLogger(__name__)


async def verify_round_integrity(
    db: AsyncSession,
    round_number: int,
    required_judges_per_team: int,
    stale_after_seconds: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Verify assignment integrity for a round.

    Checks:
    - No duplicate (judge, team, round) rows
    - No judge assigned to the same team in more than one round
    - No team over the required judge count
    - Warnings for stale claims, unknown teams, missing scores and
      teams still short of judges

    Args:
        db: Database session
        round_number: Round to audit
        required_judges_per_team: Expected judges per team

    Returns:
        Dict with is_valid, errors, warnings and counts
    """
    now = now or datetime.utcnow()
    teams = await registry_service.list_teams(db)
    team_names = {t.name for t in teams}
    round_rows = await assignment_store.list_assignments(db, round_number)
    all_rows = await assignment_store.list_assignments(db)
    scores = await scoring_service.list_scores(db, round_number)

    errors = []
    warnings = []

    triples = Counter((a.judge_email, a.team_name, a.round) for a in round_rows)
    for (judge, team, rnd), count in sorted(triples.items()):
        if count > 1:
            errors.append(f"Duplicate assignment: {judge} -> {team} round {rnd} ({count} rows)")

    pairs = Counter((a.judge_email, a.team_name) for a in all_rows)
    round_pairs = {(a.judge_email, a.team_name) for a in round_rows}
    for (judge, team), count in sorted(pairs.items()):
        if count > 1 and (judge, team) in round_pairs:
            errors.append(f"Judge {judge} assigned to {team} in {count} rounds")

    per_team = Counter(a.team_name for a in round_rows)
    for team, count in sorted(per_team.items()):
        if count > required_judges_per_team:
            errors.append(f"Team {team} over capacity: {count} > {required_judges_per_team}")
        if team not in team_names:
            warnings.append(f"Assignments reference unknown team {team}")

    short = sorted(t.name for t in teams if per_team.get(t.name, 0) < required_judges_per_team)
    if short:
        warnings.append(f"{len(short)} team(s) below {required_judges_per_team} judges: {', '.join(short)}")

    if stale_after_seconds is not None:
        cutoff = now - timedelta(seconds=stale_after_seconds)
        stale = [a for a in round_rows if not a.completed and a.locked_at and a.locked_at <= cutoff]
        for a in stale:
            warnings.append(f"Stale claim: {a.judge_email} -> {a.team_name} locked at {a.locked_at.isoformat()}")

    scored = {(s.judge_email, s.team_name) for s in scores}
    for a in round_rows:
        if a.completed and (a.judge_email, a.team_name) not in scored:
            warnings.append(f"Completed without score: {a.judge_email} -> {a.team_name}")

    if errors:
        logger.error(f"[INTEGRITY] Round {round_number}: {len(errors)} violation(s)")
    else:
        logger.info(f"[INTEGRITY] Round {round_number}: OK ({len(warnings)} warning(s))")

    return {
        "round": round_number,
        "is_valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "assignment_count": len(round_rows),
        "completed_count": sum(1 for a in round_rows if a.completed),
        "team_count": len(teams),
    }
