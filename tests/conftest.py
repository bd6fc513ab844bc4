import pytest
import os
from datetime import date, datetime, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_RECALCULATE"] = "1000/minute"

from feedback360.database import Base, get_db
from feedback360.main import app
from feedback360.models import (
    Competency, CycleStatus, Employee, GroupName, Question, ReviewCycle,
    ReviewerStatus, SurveyAssignment, SurveyResponse, SurveyReviewer
)
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def db_session():
    """Get a clean database session for each test function with rollback safety."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()

def _employee(db, code, group, department="Engineering", manager=None):
    employee = Employee(
        employee_code=code,
        full_name=f"Employee {code}",
        email=f"{code.lower()}@example.com",
        department=department,
        group_name=group,
        reporting_manager_id=manager.id if manager else None,
        is_active=True,
    )
    db.add(employee)
    db.flush()
    return employee

@pytest.fixture(scope="function")
def people(db_session):
    """A CXO, a team manager, an IC reporting to the manager, and two peers."""
    cxo = _employee(db_session, "C001", GroupName.CXO, department="Leadership")
    tm = _employee(db_session, "T001", GroupName.TM, manager=cxo)
    ic = _employee(db_session, "I001", GroupName.IC, manager=tm)
    peer_a = _employee(db_session, "I002", GroupName.IC, manager=tm)
    peer_b = _employee(db_session, "I003", GroupName.IC, manager=tm)
    db_session.commit()
    return {"cxo": cxo, "tm": tm, "ic": ic, "peer_a": peer_a, "peer_b": peer_b}

@pytest.fixture(scope="function")
def cycle(db_session):
    cycle = ReviewCycle(
        cycle_name="H1",
        start_date=date(2026, 1, 1),
        end_date=date(2026, 6, 30),
        status=CycleStatus.COMPLETED,
    )
    db_session.add(cycle)
    db_session.commit()
    return cycle

@pytest.fixture(scope="function")
def questions(db_session):
    """Two COMM questions and one TEAM question."""
    comm = Competency(code="COMM", name="Communication")
    team = Competency(code="TEAM", name="Teamwork")
    db_session.add_all([comm, team])
    db_session.flush()
    q1 = Question(competency_id=comm.id, question_text="Communicates clearly")
    q2 = Question(competency_id=comm.id, question_text="Listens well")
    q3 = Question(competency_id=team.id, question_text="Helps others")
    db_session.add_all([q1, q2, q3])
    db_session.commit()
    return [q1, q2, q3]

@pytest.fixture(scope="function")
def add_review(db_session):
    """Helper: record one reviewer's ratings for an employee in a cycle."""
    def _add_review(employee, cycle, reviewer, reviewer_type, ratings, questions,
                    status=ReviewerStatus.COMPLETED):
        assignment = db_session.query(SurveyAssignment).filter_by(
            employee_id=employee.id, cycle_id=cycle.id
        ).first()
        if assignment is None:
            assignment = SurveyAssignment(employee_id=employee.id, cycle_id=cycle.id)
            db_session.add(assignment)
            db_session.flush()
        survey_reviewer = SurveyReviewer(
            assignment_id=assignment.id,
            reviewer_employee_id=reviewer.id,
            reviewer_type=reviewer_type,
            status=status,
            completed_at=datetime.now(timezone.utc) if status == ReviewerStatus.COMPLETED else None,
        )
        db_session.add(survey_reviewer)
        db_session.flush()
        for question, rating in zip(questions, ratings):
            db_session.add(SurveyResponse(reviewer_id=survey_reviewer.id, question_id=question.id, rating=rating))
        db_session.commit()
        return survey_reviewer
    return _add_review

@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to create bearer tokens as the external auth service would."""
    from feedback360.services.auth import create_access_token

    def _get_token(employee):
        return create_access_token(data={"sub": str(employee.id), "group_name": employee.group_name.value})
    return _get_token

@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _headers(employee):
        return {"Authorization": f"Bearer {get_token(employee)}"}
    return _headers

@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
