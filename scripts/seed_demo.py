"""
Seed a small demo organisation with one completed cycle of 360 feedback.
Prints a CXO token for trying the API.
"""
from datetime import date, datetime, timezone

from feedback360.database import SessionLocal, init_db
from feedback360.models import (
    Competency, CycleStatus, Employee, GroupName, Question, ReviewCycle,
    ReviewerStatus, ReviewerType, SelfFeedback, SelfFeedbackStatus,
    SurveyAssignment, SurveyResponse, SurveyReviewer
)
from feedback360.services.auth import create_access_token

COMPETENCIES = {
    "COMM": ["Communicates clearly and on time.", "Listens and adapts to feedback."],
    "TEAM": ["Supports teammates to reach shared goals."],
    "OWN": ["Takes ownership of outcomes."],
}

# (reviewer code, reviewer type, ratings per question)
DEMO_REVIEWS = [
    ("E002", ReviewerType.MANAGER, [3, 3, 4, 3]),
    ("E003", ReviewerType.PEER, [4, 4, 4, 3]),
    ("E004", ReviewerType.PEER, [3, 2, 3, 3]),
    ("E001", ReviewerType.SELF, [4, 4, 4, 4]),
]


def seed():
    init_db()
    db = SessionLocal()
    try:
        if db.query(Employee).count() > 0:
            print("Database already seeded.")
            return

        ceo = Employee(employee_code="E000", full_name="Chief Executive", email="ceo@example.com",
                       department="Leadership", group_name=GroupName.CXO)
        db.add(ceo)
        db.flush()
        manager = Employee(employee_code="E002", full_name="Team Manager", email="tm@example.com",
                           department="Engineering", group_name=GroupName.TM, reporting_manager_id=ceo.id)
        db.add(manager)
        db.flush()
        people = {"E000": ceo, "E002": manager}
        for code, name in [("E001", "Alex Ic"), ("E003", "Sam Peer"), ("E004", "Jo Peer")]:
            person = Employee(employee_code=code, full_name=name, email=f"{code.lower()}@example.com",
                              department="Engineering", group_name=GroupName.IC,
                              reporting_manager_id=manager.id)
            db.add(person)
            people[code] = person
        db.flush()

        questions = []
        for code, texts in COMPETENCIES.items():
            competency = Competency(code=code, name=code.title())
            db.add(competency)
            db.flush()
            for text in texts:
                question = Question(competency_id=competency.id, question_text=text)
                db.add(question)
                questions.append(question)
        db.flush()

        cycle = ReviewCycle(cycle_name="H1 Review", start_date=date(2026, 1, 1),
                            end_date=date(2026, 6, 30), status=CycleStatus.COMPLETED)
        db.add(cycle)
        db.flush()

        ratee = people["E001"]
        assignment = SurveyAssignment(employee_id=ratee.id, cycle_id=cycle.id)
        db.add(assignment)
        db.flush()
        now = datetime.now(timezone.utc)
        for reviewer_code, reviewer_type, ratings in DEMO_REVIEWS:
            reviewer = SurveyReviewer(assignment_id=assignment.id,
                                      reviewer_employee_id=people[reviewer_code].id,
                                      reviewer_type=reviewer_type,
                                      status=ReviewerStatus.COMPLETED, completed_at=now)
            db.add(reviewer)
            db.flush()
            for question, rating in zip(questions, ratings):
                db.add(SurveyResponse(reviewer_id=reviewer.id, question_id=question.id, rating=rating))

        db.add(SelfFeedback(employee_id=ratee.id, cycle_id=cycle.id, status=SelfFeedbackStatus.SUBMITTED,
                            submitted_at=now,
                            competency_ratings=[{"competency_id": 1, "rating": 4}, {"competency_id": 2, "rating": 3}]))
        db.commit()

        token = create_access_token({"sub": str(ceo.id), "group_name": ceo.group_name.value})
        print(f"Seeded cycle {cycle.id} with employee {ratee.employee_code}.")
        print(f"CXO token: {token}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
