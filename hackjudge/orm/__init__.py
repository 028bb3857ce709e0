from .base import Base

# Registry (read-only to the queue)
from .team import Team
from .user import User, UserRole
from .event_settings import EventSettings

# Judge queue
from .assignment import JudgeTeamAssignment
from .score import Score
