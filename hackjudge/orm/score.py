"""
hackjudge/orm/score.py
Scores submitted by judges. One score per (judge, team, round); resubmitting
overwrites the previous value.
"""
from sqlalchemy import Column, Float, Index, Integer, String, Text, UniqueConstraint

from hackjudge.orm.base import BaseModel


class Score(BaseModel):
    __tablename__ = "scores"

    judge_email = Column(String(255), nullable=False)
    team_name = Column(String(255), nullable=False)
    table_name = Column(String(100), nullable=False, default="")
    round = Column(Integer, nullable=False)
    score = Column(Float, nullable=False)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint('judge_email', 'team_name', 'round', name='uq_score_judge_team_round'),
        Index('idx_score_round', 'round'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "judge_email": self.judge_email,
            "team_name": self.team_name,
            "table_name": self.table_name,
            "round": self.round,
            "score": self.score,
            "notes": self.notes,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
