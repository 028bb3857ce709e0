"""
hackjudge/orm/user.py
User model. Accounts are created by the external sign-in layer; the queue
reads them to decide who may request teams.
"""
from enum import Enum

from sqlalchemy import Column, String, Enum as SQLEnum

from hackjudge.orm.base import BaseModel


class UserRole(str, Enum):
    """User roles"""
    judge = "judge"
    admin = "admin"
    participant = "participant"


# Roles allowed to pull teams from the judge queue
JUDGING_ROLES = frozenset({UserRole.judge, UserRole.admin})


class User(BaseModel):
    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.judge, index=True)

    @property
    def can_judge(self) -> bool:
        return self.role in JUDGING_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value if self.role else None,
        }
