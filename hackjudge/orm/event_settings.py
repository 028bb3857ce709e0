"""
hackjudge/orm/event_settings.py
Event-wide settings owned by the admin layer. The queue reads the current
round and the judging/round locks from here.
"""
from typing import List

from sqlalchemy import Boolean, Column, Integer, String, JSON

from hackjudge.orm.base import BaseModel


class EventSettings(BaseModel):
    __tablename__ = "event_settings"

    event_name = Column(String(255), nullable=False, default="Hackathon")
    current_round = Column(Integer, nullable=False, default=1)
    judging_locked = Column(Boolean, nullable=False, default=False)
    locked_rounds = Column(JSON, nullable=False, default=list)

    def locked_round_numbers(self) -> List[int]:
        return [int(r) for r in (self.locked_rounds or [])]

    def is_round_locked(self, round_number: int) -> bool:
        return round_number in self.locked_round_numbers()

    def to_dict(self):
        return {
            "event_name": self.event_name,
            "current_round": self.current_round,
            "judging_locked": bool(self.judging_locked),
            "locked_rounds": self.locked_round_numbers(),
        }
