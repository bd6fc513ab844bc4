from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Dict, List, Optional
from datetime import date, datetime
import enum

from feedback360.models.employee import GroupName
from feedback360.models.review_cycle import CycleStatus
from feedback360.models.survey import ReviewerType


class RatingLabel(str, enum.Enum):
    """Qualitative label for an aggregated score, lowest band first."""
    NEEDS_IMPROVEMENT = "Not Enough Impact"
    MODERATE = "Moderate Impact"
    GOOD = "Significant Impact"
    OUTSTANDING = "Outstanding Impact"


class RatingResponse(BaseModel):
    """A single submitted rating. Immutable once built."""
    model_config = ConfigDict(frozen=True)

    reviewer_id: int
    reviewer_type: ReviewerType
    employee_id: int
    cycle_id: int
    question_id: Optional[int] = None
    competency_id: Optional[int] = None
    rating: int = Field(..., ge=1, le=4)

    @model_validator(mode="after")
    def _requires_subject(self):
        if self.question_id is None and self.competency_id is None:
            raise ValueError("A rating must reference a question or a competency")
        return self

    @property
    def item_key(self):
        """Identity of the rated item, used to drop duplicate submissions."""
        if self.question_id is not None:
            return ("question", self.question_id)
        return ("competency", self.competency_id)


class ScoreBreakdownEntry(BaseModel):
    score: Optional[float] = None
    label: RatingLabel
    response_count: Optional[int] = None
    reviewer_count: Optional[int] = None


class ScoreCard(BaseModel):
    """Aggregated result for one employee in one cycle."""
    model_config = ConfigDict(from_attributes=True)

    employee_id: int
    cycle_id: int
    colleague_score: float
    final_label: RatingLabel
    total_reviewers: int
    self_score: Optional[float] = None
    competency_scores: Dict[str, ScoreBreakdownEntry] = {}
    reviewer_category_scores: Dict[str, ScoreBreakdownEntry] = {}
    calculated_at: Optional[datetime] = None


class EmployeeSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_code: str
    full_name: str
    department: Optional[str] = None
    designation: Optional[str] = None
    group_name: GroupName


class CycleSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    cycle_name: str
    start_date: date
    end_date: date
    status: CycleStatus


class StoredScore(ScoreCard):
    """Persisted snapshot with the employee and cycle it belongs to."""
    id: int
    employee: Optional[EmployeeSummary] = None
    cycle: Optional[CycleSummary] = None


class CycleScores(BaseModel):
    cycle: CycleSummary
    scores: List[StoredScore]


class RecalculationSummary(BaseModel):
    message: Optional[str] = None
    calculated: int
    skipped: int
    errors: int


class CompetencyComparison(BaseModel):
    my_score: Optional[float] = None
    dept_avg: float
    dept_label: RatingLabel
    diff: Optional[float] = None


class DepartmentComparison(BaseModel):
    my_score: ScoreCard
    department: Optional[str] = None
    department_avg: Optional[float] = None
    department_label: Optional[RatingLabel] = None
    competency_comparison: Dict[str, CompetencyComparison] = {}


class TeamMemberScore(BaseModel):
    employee: EmployeeSummary
    score: Optional[ScoreCard] = None


class TeamSummary(BaseModel):
    total_members: int
    scored: int
    team_avg: Optional[float] = None


class TeamScores(BaseModel):
    cycle_id: int
    team: List[TeamMemberScore]
    summary: TeamSummary


# Resolve forward references for Pydantic V2
StoredScore.model_rebuild()
DepartmentComparison.model_rebuild()
TeamScores.model_rebuild()
