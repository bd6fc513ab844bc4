from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from feedback360.database import Base


class CalculatedScore(Base):
    """
    Persisted scorecard snapshot for one employee in one cycle.
    Rewritten in place on recalculation.
    """
    __tablename__ = "calculated_scores"
    __table_args__ = (UniqueConstraint("employee_id", "cycle_id", name="uq_score_employee_cycle"),)

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    cycle_id = Column(Integer, ForeignKey("review_cycles.id"), nullable=False, index=True)

    self_score = Column(Float, nullable=True)  # reference only
    colleague_score = Column(Float, nullable=False)
    final_label = Column(String, nullable=False)
    competency_scores = Column(JSON, default=dict)
    reviewer_category_scores = Column(JSON, default=dict)
    total_reviewers = Column(Integer, nullable=False, default=0)

    calculated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    employee = relationship("Employee")
    cycle = relationship("ReviewCycle")
