"""
hackjudge/orm/team.py
Team model. Teams are managed by the registration layer; the judge queue
only reads them.
"""
from sqlalchemy import Column, String

from hackjudge.orm.base import BaseModel


class Team(BaseModel):
    """
    A registered hackathon team.

    `name` is the team identifier used throughout the queue; `table_name`
    is where judges find the team on the floor.
    """
    __tablename__ = "teams"

    name = Column(String(255), nullable=False, unique=True, index=True)
    table_name = Column(String(100), nullable=False, default="")
    division = Column(String(100), nullable=True, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "table_name": self.table_name,
            "division": self.division,
        }
