"""
Judge Queue API Schemas (Pydantic)
"""
from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any


class NextTeamRequest(BaseModel):
    """Request schema for pulling the next team. Round defaults to the event's current round."""
    round: Optional[int] = Field(default=None, ge=1)


class AssignedTeam(BaseModel):
    team_name: str
    table_name: str
    division: Optional[str] = None
    judge_count: int


class NextTeamResponse(BaseModel):
    """Response schema for the next-team request."""
    status: str  # assigned / all_teams_complete / no_more_for_you
    message: str
    round: int
    team: Optional[AssignedTeam] = None
    assignment_id: Optional[int] = None
    score_url: Optional[str] = None


class CompleteRequest(BaseModel):
    """Request schema for submitting a score and completing an assignment."""
    team_name: str = Field(..., min_length=1, max_length=255)
    round: Optional[int] = Field(default=None, ge=1)
    score: float
    notes: Optional[str] = Field(default=None, max_length=5000)

    @validator('team_name')
    def strip_team_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("team_name cannot be empty")
        return v

    @validator('notes')
    def strip_notes(cls, v):
        if v is None:
            return v
        return v.strip() or None


class CompleteResponse(BaseModel):
    success: bool = True
    message: str
    assignment: Dict[str, Any]
    score: Dict[str, Any]


class TeamQueueStats(BaseModel):
    team_name: str
    table_name: Optional[str] = None
    division: Optional[str] = None
    judge_count: int
    completed_count: int
    judges: List[str]


class QueueSummary(BaseModel):
    total_teams: int
    teams_needing_judges: int
    all_teams_complete: bool


class QueueStatsResponse(BaseModel):
    """Response schema for per-round queue statistics."""
    round: int
    required_judges_per_team: int
    teams: List[TeamQueueStats]
    summary: QueueSummary


class JudgedTeam(BaseModel):
    team_name: str
    round: int
    table_name: Optional[str] = None
    division: Optional[str] = None
    completed: bool


class JudgeQueueResponse(BaseModel):
    """The judge's own history and open claims."""
    judge_email: str
    current_round: int
    judged_teams: List[JudgedTeam]
    pending: List[Dict[str, Any]]


class IntegrityResponse(BaseModel):
    round: int
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    assignment_count: int
    completed_count: int
    team_count: int
