"""
Employee Model.
group_name drives what each viewer may see of aggregated scores.
"""
from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from feedback360.database import Base


class GroupName(str, enum.Enum):
    """
    Access groups, most to least privileged:
    - CXO: organisation-wide access
    - HOD: department-level access
    - TM: team manager, direct reports
    - IC: individual contributor, self only (label-only scores)
    """
    CXO = "CXO"
    HOD = "HOD"
    TM = "TM"
    IC = "IC"


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    employee_code = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    department = Column(String, nullable=True, index=True)
    designation = Column(String, nullable=True)
    group_name = Column(Enum(GroupName), default=GroupName.IC, nullable=False)

    reporting_manager_id = Column(Integer, ForeignKey("employees.id"), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    reporting_manager = relationship("Employee", remote_side=[id], back_populates="direct_reports")
    direct_reports = relationship("Employee", back_populates="reporting_manager")

    def __repr__(self):
        return f"<Employee {self.employee_code} ({self.group_name.value})>"

    @property
    def can_see_numeric_scores(self) -> bool:
        return self.group_name in (GroupName.TM, GroupName.HOD, GroupName.CXO)
