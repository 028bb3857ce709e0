"""
Judge Team Assignment Model

One row per (judge, team, round) claim. This table is the audit trail of
who judged what: rows are never deleted, and a completed row never goes
back to the locked state.

Invariants:
- (judge_email, team_name, round) is unique
- a judge appears at most once per team across all rounds
- rows per (team_name, round) never exceed the required judges per team
"""
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, UniqueConstraint

from hackjudge.orm.base import Base


class JudgeTeamAssignment(Base):
    __tablename__ = "judge_team_assignments"

    id = Column(Integer, primary_key=True, index=True)

    judge_email = Column(String(255), nullable=False)
    team_name = Column(String(255), nullable=False)
    round = Column(Integer, nullable=False)

    assigned_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    # Set while the judge holds an uncompleted claim
    locked_at = Column(DateTime, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint('judge_email', 'team_name', 'round', name='uq_assignment_judge_team_round'),
        Index('idx_assignment_team_round', 'team_name', 'round'),
        Index('idx_assignment_judge', 'judge_email'),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "judge_email": self.judge_email,
            "team_name": self.team_name,
            "round": self.round,
            "assigned_at": self.assigned_at.isoformat() if self.assigned_at else None,
            "locked_at": self.locked_at.isoformat() if self.locked_at else None,
            "completed": bool(self.completed),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"<JudgeTeamAssignment judge={self.judge_email} team={self.team_name} "
            f"round={self.round} completed={self.completed}>"
        )
