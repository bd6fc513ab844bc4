from sqlalchemy import Column, Integer, DateTime, Enum, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
import enum
from feedback360.database import Base


class SelfFeedbackStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"


class SelfFeedback(Base):
    __tablename__ = "self_feedback"
    __table_args__ = (UniqueConstraint("employee_id", "cycle_id", name="uq_self_feedback_employee_cycle"),)

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    cycle_id = Column(Integer, ForeignKey("review_cycles.id"), nullable=False, index=True)
    # [{"competency_id": 1, "rating": 3}, ...]
    competency_ratings = Column(JSON, default=list)
    status = Column(Enum(SelfFeedbackStatus), default=SelfFeedbackStatus.DRAFT, nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=True)

    employee = relationship("Employee")
