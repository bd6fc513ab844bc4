# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    employee, review_cycle, competency, survey,
    self_feedback, calculated_score, audit_log
)

# Explicit class exports for cleaner imports
from .employee import Employee, GroupName
from .review_cycle import ReviewCycle, CycleStatus
from .competency import Competency, Question
from .survey import SurveyAssignment, SurveyReviewer, SurveyResponse, ReviewerType, ReviewerStatus
from .self_feedback import SelfFeedback, SelfFeedbackStatus
from .calculated_score import CalculatedScore
from .audit_log import AuditLog

__all__ = [
    "Employee",
    "GroupName",
    "ReviewCycle",
    "CycleStatus",
    "Competency",
    "Question",
    "SurveyAssignment",
    "SurveyReviewer",
    "SurveyResponse",
    "ReviewerType",
    "ReviewerStatus",
    "SelfFeedback",
    "SelfFeedbackStatus",
    "CalculatedScore",
    "AuditLog",
]
