"""
Reviewer response store.

One SurveyAssignment per (employee, cycle); each assignment has reviewers,
and each reviewer submits at most one rating per question.
"""
from sqlalchemy import (
    Column, Integer, DateTime, Enum, ForeignKey, UniqueConstraint, CheckConstraint
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from feedback360.database import Base


class ReviewerType(str, enum.Enum):
    SELF = "SELF"
    PEER = "PEER"
    MANAGER = "MANAGER"
    SUBORDINATE = "SUBORDINATE"


class ReviewerStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class SurveyAssignment(Base):
    __tablename__ = "survey_assignments"
    __table_args__ = (UniqueConstraint("employee_id", "cycle_id", name="uq_assignment_employee_cycle"),)

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    cycle_id = Column(Integer, ForeignKey("review_cycles.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    employee = relationship("Employee")
    reviewers = relationship("SurveyReviewer", back_populates="assignment", cascade="all, delete-orphan")


class SurveyReviewer(Base):
    __tablename__ = "survey_reviewers"
    __table_args__ = (
        UniqueConstraint("assignment_id", "reviewer_employee_id", name="uq_reviewer_per_assignment"),
    )

    id = Column(Integer, primary_key=True, index=True)
    assignment_id = Column(Integer, ForeignKey("survey_assignments.id"), nullable=False, index=True)
    reviewer_employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    reviewer_type = Column(Enum(ReviewerType), nullable=False)
    status = Column(Enum(ReviewerStatus), default=ReviewerStatus.PENDING, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    assignment = relationship("SurveyAssignment", back_populates="reviewers")
    responses = relationship("SurveyResponse", back_populates="reviewer", cascade="all, delete-orphan")


class SurveyResponse(Base):
    __tablename__ = "survey_responses"
    __table_args__ = (
        UniqueConstraint("reviewer_id", "question_id", name="uq_response_per_question"),
        CheckConstraint("rating BETWEEN 1 AND 4", name="ck_response_rating_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    reviewer_id = Column(Integer, ForeignKey("survey_reviewers.id"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())

    reviewer = relationship("SurveyReviewer", back_populates="responses")
    question = relationship("Question")
