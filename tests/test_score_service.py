import pytest
from datetime import date

from feedback360.core.exceptions import ConflictError, NotFoundError
from feedback360.models import (
    AuditLog, CalculatedScore, CycleStatus, ReviewCycle, ReviewerStatus, ReviewerType,
    SelfFeedback, SelfFeedbackStatus, SurveyAssignment
)
from feedback360.schemas.score import RatingLabel
from feedback360.services.score_service import ScoreService


@pytest.fixture
def reviewed(people, cycle, questions, add_review):
    """IC reviewed by their manager (3s) and a peer (4s)."""
    add_review(people["ic"], cycle, people["tm"], ReviewerType.MANAGER, [3, 3, 3], questions)
    add_review(people["ic"], cycle, people["peer_a"], ReviewerType.PEER, [4, 4, 4], questions)
    return people["ic"]


def test_get_score_without_responses_is_none(db_session, people, cycle):
    assert ScoreService(db_session).get_score(people["ic"].id, cycle.id) is None

def test_get_score_computes_live_scorecard(db_session, reviewed, cycle, questions):
    card = ScoreService(db_session).get_score(reviewed.id, cycle.id)

    assert card.colleague_score == pytest.approx(3.5)
    assert card.final_label == RatingLabel.OUTSTANDING
    assert card.total_reviewers == 2
    assert card.self_score is None

    comm = card.competency_scores[str(questions[0].competency_id)]
    team = card.competency_scores[str(questions[2].competency_id)]
    assert comm.response_count == 4
    assert comm.score == pytest.approx(3.5)
    assert team.response_count == 2
    assert card.reviewer_category_scores["MANAGER"].score == pytest.approx(3.0)

def test_incomplete_reviewers_are_ignored(db_session, reviewed, people, cycle, questions, add_review):
    add_review(reviewed, cycle, people["peer_b"], ReviewerType.PEER, [1, 1, 1], questions,
               status=ReviewerStatus.IN_PROGRESS)
    card = ScoreService(db_session).get_score(reviewed.id, cycle.id)
    assert card.total_reviewers == 2
    assert card.colleague_score == pytest.approx(3.5)

def test_submitted_self_feedback_sets_self_score(db_session, reviewed, cycle):
    db_session.add(SelfFeedback(
        employee_id=reviewed.id,
        cycle_id=cycle.id,
        status=SelfFeedbackStatus.SUBMITTED,
        competency_ratings=[{"competency_id": 1, "rating": 4}, {"competency_id": 2, "rating": 3}],
    ))
    db_session.commit()
    card = ScoreService(db_session).get_score(reviewed.id, cycle.id)
    assert card.self_score == 3.5
    # Self ratings never move the colleague score
    assert card.colleague_score == pytest.approx(3.5)

def test_draft_self_feedback_is_ignored(db_session, reviewed, cycle):
    db_session.add(SelfFeedback(
        employee_id=reviewed.id,
        cycle_id=cycle.id,
        status=SelfFeedbackStatus.DRAFT,
        competency_ratings=[{"competency_id": 1, "rating": 1}],
    ))
    db_session.commit()
    assert ScoreService(db_session).get_score(reviewed.id, cycle.id).self_score is None

def test_calculate_scores_for_cycle(db_session, reviewed, people, cycle, questions, add_review):
    # peer_a has an assignment but nobody finished reviewing them
    add_review(people["peer_a"], cycle, people["tm"], ReviewerType.MANAGER, [2, 2, 2], questions,
               status=ReviewerStatus.PENDING)

    summary = ScoreService(db_session).calculate_scores_for_cycle(cycle.id)

    assert (summary.calculated, summary.skipped, summary.errors) == (1, 1, 0)
    row = db_session.query(CalculatedScore).filter_by(employee_id=reviewed.id, cycle_id=cycle.id).one()
    assert row.colleague_score == pytest.approx(3.5)
    assert row.final_label == RatingLabel.OUTSTANDING.value
    assert row.total_reviewers == 2

def test_recalculation_overwrites_snapshot(db_session, reviewed, people, cycle, questions, add_review):
    service = ScoreService(db_session)
    service.calculate_scores_for_cycle(cycle.id)
    add_review(reviewed, cycle, people["peer_b"], ReviewerType.PEER, [1, 1, 1], questions)
    service.calculate_scores_for_cycle(cycle.id)

    rows = db_session.query(CalculatedScore).filter_by(employee_id=reviewed.id, cycle_id=cycle.id).all()
    assert len(rows) == 1
    assert rows[0].total_reviewers == 3
    # (3 + 4 + 1) / 3
    assert rows[0].colleague_score == pytest.approx(2.6667)
    assert rows[0].final_label == RatingLabel.GOOD.value

def test_recalculate_requires_finished_cycle(db_session, reviewed, cycle):
    cycle.status = CycleStatus.ACTIVE
    db_session.commit()
    with pytest.raises(ConflictError):
        ScoreService(db_session).recalculate_scores_for_cycle(cycle.id)

def test_recalculate_unknown_cycle(db_session):
    with pytest.raises(NotFoundError):
        ScoreService(db_session).recalculate_scores_for_cycle(9999)

def test_recalculate_is_audited(db_session, reviewed, people, cycle):
    service = ScoreService(db_session, user_id=people["cxo"].id, user_role="CXO")
    summary = service.recalculate_scores_for_cycle(cycle.id)

    assert summary.calculated == 1
    assert "H1" in summary.message
    entry = db_session.query(AuditLog).filter_by(action="scores_recalculated").one()
    assert entry.entity_id == str(cycle.id)
    assert entry.user_id == people["cxo"].id
    assert entry.details["calculated"] == 1

def test_get_cycle_scores_orders_and_filters(db_session, reviewed, people, cycle, questions, add_review):
    add_review(people["peer_a"], cycle, people["tm"], ReviewerType.MANAGER, [2, 2, 2], questions)
    people["peer_a"].department = "Sales"
    db_session.commit()
    service = ScoreService(db_session)
    service.calculate_scores_for_cycle(cycle.id)

    result = service.get_cycle_scores(cycle.id)
    assert [s.employee_id for s in result.scores] == [reviewed.id, people["peer_a"].id]
    assert result.scores[0].employee.employee_code == "I001"

    sales = service.get_cycle_scores(cycle.id, department="Sales")
    assert [s.employee_id for s in sales.scores] == [people["peer_a"].id]

def test_get_my_scores_latest_cycle_first(db_session, reviewed, people, cycle, questions, add_review):
    later = ReviewCycle(cycle_name="H2", start_date=date(2026, 7, 1), end_date=date(2026, 12, 31),
                        status=CycleStatus.COMPLETED)
    db_session.add(later)
    db_session.commit()
    add_review(reviewed, later, people["tm"], ReviewerType.MANAGER, [2, 2, 2], questions)

    service = ScoreService(db_session)
    service.calculate_scores_for_cycle(cycle.id)
    service.calculate_scores_for_cycle(later.id)

    history = service.get_my_scores(reviewed.id)
    assert [h.cycle.cycle_name for h in history] == ["H2", "H1"]

def test_department_comparison(db_session, reviewed, people, cycle, questions, add_review):
    add_review(people["peer_a"], cycle, people["tm"], ReviewerType.MANAGER, [2, 2, 2], questions)
    service = ScoreService(db_session)
    service.calculate_scores_for_cycle(cycle.id)

    result = service.get_department_comparison(reviewed.id, cycle.id)
    assert result.department == "Engineering"
    # (3.5 + 2.0) / 2
    assert result.department_avg == pytest.approx(2.75)
    assert result.department_label == RatingLabel.GOOD
    comm = result.competency_comparison[str(questions[0].competency_id)]
    assert comm.my_score == pytest.approx(3.5)
    assert comm.diff == pytest.approx(0.75)
    assert comm.dept_label == RatingLabel.GOOD

def test_department_comparison_without_department(db_session, reviewed, cycle):
    reviewed.department = None
    db_session.commit()
    service = ScoreService(db_session)
    service.calculate_scores_for_cycle(cycle.id)

    result = service.get_department_comparison(reviewed.id, cycle.id)
    assert result.my_score.colleague_score == pytest.approx(3.5)
    assert result.department_avg is None
    assert result.competency_comparison == {}

def test_department_comparison_without_score(db_session, people, cycle):
    with pytest.raises(NotFoundError):
        ScoreService(db_session).get_department_comparison(people["peer_b"].id, cycle.id)

def test_department_comparison_needs_a_snapshot(db_session, reviewed, cycle):
    # Live responses exist but no recalculation has run yet
    with pytest.raises(NotFoundError):
        ScoreService(db_session).get_department_comparison(reviewed.id, cycle.id)

def test_department_comparison_reads_employee_snapshot(db_session, reviewed, people, cycle, questions, add_review):
    service = ScoreService(db_session)
    service.calculate_scores_for_cycle(cycle.id)
    add_review(reviewed, cycle, people["peer_b"], ReviewerType.PEER, [1, 1, 1], questions)

    result = service.get_department_comparison(reviewed.id, cycle.id)
    assert result.my_score.colleague_score == pytest.approx(3.5)
    assert result.my_score.total_reviewers == 2
    assert result.department_avg == pytest.approx(3.5)
    assert result.competency_comparison[str(questions[0].competency_id)].diff == pytest.approx(0.0)

def test_team_scores(db_session, reviewed, people, cycle):
    result = ScoreService(db_session).get_team_scores(people["tm"].id, cycle.id)

    assert result.summary.total_members == 3
    assert result.summary.scored == 1
    assert result.summary.team_avg == pytest.approx(3.5)
    scored = [m for m in result.team if m.score is not None]
    assert scored[0].employee.id == reviewed.id

def test_one_assignment_per_employee_cycle(db_session, reviewed, cycle):
    assert db_session.query(SurveyAssignment).filter_by(employee_id=reviewed.id, cycle_id=cycle.id).count() == 1

def test_inactive_questions_stay_out_of_competency_breakdown(db_session, reviewed, cycle, questions):
    questions[2].is_active = False
    db_session.commit()

    card = ScoreService(db_session).get_score(reviewed.id, cycle.id)
    assert str(questions[2].competency_id) not in card.competency_scores
    assert card.competency_scores[str(questions[0].competency_id)].response_count == 4

def test_recalculate_commits_snapshots_and_audit_together(db_session, reviewed, cycle, monkeypatch):
    commits = []
    real_commit = db_session.commit

    def recording_commit():
        commits.append((
            db_session.query(CalculatedScore).count(),
            db_session.query(AuditLog).filter_by(action="scores_recalculated").count(),
        ))
        real_commit()

    monkeypatch.setattr(db_session, "commit", recording_commit)
    ScoreService(db_session).recalculate_scores_for_cycle(cycle.id)

    assert commits == [(1, 1)]
