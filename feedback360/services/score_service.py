"""
Score Service Layer

Entry points:
- get_score(employee_id, cycle_id)          live scorecard computed from responses
- calculate_scores_for_cycle(cycle_id)      persist snapshots for every assignment
- recalculate_scores_for_cycle(cycle_id)    CXO-triggered, idempotent
- get_cycle_scores / get_my_scores          read persisted snapshots
- get_department_comparison                 employee vs department averages
- get_team_scores                           direct reports of a manager

Router -> Service (this module) -> Models / ScoreAggregator
"""
from collections import defaultdict
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from feedback360.core.exceptions import ConflictError, NotFoundError
from feedback360.models.calculated_score import CalculatedScore
from feedback360.models.competency import Question
from feedback360.models.employee import Employee
from feedback360.models.review_cycle import ReviewCycle, SCORABLE_STATUSES
from feedback360.models.self_feedback import SelfFeedback, SelfFeedbackStatus
from feedback360.models.survey import (
    ReviewerStatus, SurveyAssignment, SurveyResponse, SurveyReviewer
)
from feedback360.schemas.score import (
    CompetencyComparison, CycleScores, CycleSummary, DepartmentComparison,
    EmployeeSummary, RatingResponse, RecalculationSummary, ScoreCard,
    StoredScore, TeamMemberScore, TeamScores, TeamSummary
)
from feedback360.services.audit import AuditService
from feedback360.services.base import BaseService
from feedback360.services.score_calculator import ScoreAggregator


class ScoreService(BaseService):
    """Domain service for aggregated 360 feedback scores."""

    def __init__(self, db: Session, aggregator: Optional[ScoreAggregator] = None, **kwargs):
        super().__init__(db, **kwargs)
        self.aggregator = aggregator or ScoreAggregator()

    # ------------------------------------------------------------------
    # Loaders
    # ------------------------------------------------------------------

    def _question_competency_map(self) -> Dict[int, int]:
        rows = self.db.query(Question.id, Question.competency_id).filter(Question.is_active.is_(True)).all()
        return {question_id: competency_id for question_id, competency_id in rows}

    def _load_responses(self, employee_id: int, cycle_id: int) -> List[RatingResponse]:
        """All ratings from COMPLETED reviewers for one (employee, cycle)."""
        rows = (
            self.db.query(SurveyResponse, SurveyReviewer)
            .join(SurveyReviewer, SurveyResponse.reviewer_id == SurveyReviewer.id)
            .join(SurveyAssignment, SurveyReviewer.assignment_id == SurveyAssignment.id)
            .filter(
                SurveyAssignment.employee_id == employee_id,
                SurveyAssignment.cycle_id == cycle_id,
                SurveyReviewer.status == ReviewerStatus.COMPLETED,
            )
            .order_by(SurveyResponse.id)
            .all()
        )
        return [
            RatingResponse(
                reviewer_id=reviewer.reviewer_employee_id,
                reviewer_type=reviewer.reviewer_type,
                employee_id=employee_id,
                cycle_id=cycle_id,
                question_id=response.question_id,
                rating=response.rating,
            )
            for response, reviewer in rows
        ]

    def _load_self_ratings(self, employee_id: int, cycle_id: int) -> Optional[List[int]]:
        feedback = self.db.query(SelfFeedback).filter(
            SelfFeedback.employee_id == employee_id,
            SelfFeedback.cycle_id == cycle_id,
            SelfFeedback.status == SelfFeedbackStatus.SUBMITTED,
        ).first()
        if not feedback:
            return None
        return [int(item["rating"]) for item in (feedback.competency_ratings or []) if "rating" in item]

    def _get_cycle(self, cycle_id: int) -> ReviewCycle:
        cycle = self.db.get(ReviewCycle, cycle_id)
        if not cycle:
            raise NotFoundError("Cycle not found.")
        return cycle

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def compute_score(
        self,
        employee_id: int,
        cycle_id: int,
        question_competency_map: Optional[Dict[int, int]] = None,
    ) -> Optional[ScoreCard]:
        responses = self._load_responses(employee_id, cycle_id)
        if not responses:
            return None
        if question_competency_map is None:
            question_competency_map = self._question_competency_map()
        return self.aggregator.calculate(
            employee_id,
            cycle_id,
            responses,
            question_competency_map=question_competency_map,
            self_ratings=self._load_self_ratings(employee_id, cycle_id),
        )

    def get_score(self, employee_id: int, cycle_id: int) -> Optional[ScoreCard]:
        """
        Live scorecard for one employee in one cycle.
        Returns None ("no score") when no colleague has completed a review.
        """
        return self.compute_score(employee_id, cycle_id)

    def _upsert(self, card: ScoreCard) -> CalculatedScore:
        row = self.db.query(CalculatedScore).filter(
            CalculatedScore.employee_id == card.employee_id,
            CalculatedScore.cycle_id == card.cycle_id,
        ).first()
        if row is None:
            row = CalculatedScore(employee_id=card.employee_id, cycle_id=card.cycle_id)
            self.db.add(row)

        row.self_score = card.self_score
        row.colleague_score = card.colleague_score
        row.final_label = card.final_label.value
        row.competency_scores = {k: v.model_dump(mode="json") for k, v in card.competency_scores.items()}
        row.reviewer_category_scores = {
            k: v.model_dump(mode="json") for k, v in card.reviewer_category_scores.items()
        }
        row.total_reviewers = card.total_reviewers
        self.db.flush()
        return row

    def calculate_scores_for_cycle(self, cycle_id: int, commit: bool = True) -> RecalculationSummary:
        """
        Compute and persist a snapshot for every assignment in the cycle.
        A failing employee is counted and logged; the rest are still scored.
        With commit=False the snapshots are only flushed and the caller commits.
        """
        assignments = self.db.query(SurveyAssignment).filter(SurveyAssignment.cycle_id == cycle_id).all()
        question_competency_map = self._question_competency_map()

        cards = []
        skipped = errors = 0
        for assignment in assignments:
            try:
                card = self.compute_score(assignment.employee_id, cycle_id, question_competency_map)
            except Exception as e:
                errors += 1
                self.log_error(
                    f"Score calculation failed for employee {assignment.employee_id}: {e}",
                    cycle_id=cycle_id,
                )
                continue
            if card is None:
                skipped += 1
            else:
                cards.append(card)

        try:
            for card in cards:
                self._upsert(card)
            if commit:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        calculated = len(cards)
        self.log_info(
            f"Cycle {cycle_id} scored: {calculated} calculated, {skipped} skipped, {errors} errors"
        )
        return RecalculationSummary(calculated=calculated, skipped=skipped, errors=errors)

    def recalculate_scores_for_cycle(self, cycle_id: int) -> RecalculationSummary:
        cycle = self._get_cycle(cycle_id)
        if cycle.status not in SCORABLE_STATUSES:
            raise ConflictError(
                "Scores can only be recalculated for COMPLETED or PUBLISHED cycles. "
                f"Current status: {cycle.status.value}"
            )

        summary = self.calculate_scores_for_cycle(cycle_id, commit=False)
        try:
            AuditService(self.db, user_id=self.user_id, user_role=self.user_role).log_action(
                action="scores_recalculated",
                entity_type="review_cycle",
                entity_id=cycle_id,
                details=summary,
            )
            # Snapshots and audit entry land in one transaction
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        summary.message = f'Recalculation complete for cycle "{cycle.cycle_name}".'
        return summary

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_cycle_scores(self, cycle_id: int, department: Optional[str] = None) -> CycleScores:
        cycle = self._get_cycle(cycle_id)
        query = (
            self.db.query(CalculatedScore)
            .join(Employee, CalculatedScore.employee_id == Employee.id)
            .options(joinedload(CalculatedScore.employee))
            .filter(CalculatedScore.cycle_id == cycle_id)
        )
        if department:
            query = query.filter(Employee.department == department)
        rows = query.order_by(CalculatedScore.colleague_score.desc()).all()
        return CycleScores(
            cycle=CycleSummary.model_validate(cycle),
            scores=[StoredScore.model_validate(row) for row in rows],
        )

    def get_my_scores(self, employee_id: int) -> List[StoredScore]:
        """Historical snapshots for one employee, latest cycle first."""
        rows = (
            self.db.query(CalculatedScore)
            .join(ReviewCycle, CalculatedScore.cycle_id == ReviewCycle.id)
            .options(joinedload(CalculatedScore.cycle))
            .filter(CalculatedScore.employee_id == employee_id)
            .order_by(ReviewCycle.start_date.desc())
            .all()
        )
        return [StoredScore.model_validate(row) for row in rows]

    def get_department_comparison(self, employee_id: int, cycle_id: int) -> DepartmentComparison:
        """
        Employee snapshot vs department snapshots for the same cycle, so both
        sides come from the same recalculation.
        """
        employee = self.db.get(Employee, employee_id)
        if not employee:
            raise NotFoundError("Employee not found.")

        row = self.db.query(CalculatedScore).filter(
            CalculatedScore.employee_id == employee_id,
            CalculatedScore.cycle_id == cycle_id,
        ).first()
        if row is None:
            raise NotFoundError("Score not found for this employee and cycle.")
        my_score = ScoreCard.model_validate(row)
        classify = self.aggregator.classifier.classify

        dept_rows = (
            self.db.query(CalculatedScore)
            .join(Employee, CalculatedScore.employee_id == Employee.id)
            .filter(
                CalculatedScore.cycle_id == cycle_id,
                Employee.department == employee.department,
            )
            .all()
        ) if employee.department else []

        if not dept_rows:
            return DepartmentComparison(my_score=my_score, department=employee.department)

        dept_avg = sum(r.colleague_score for r in dept_rows) / len(dept_rows)

        totals: Dict[str, List[float]] = defaultdict(list)
        for row in dept_rows:
            for competency_id, entry in (row.competency_scores or {}).items():
                value = entry.get("score") if isinstance(entry, dict) else entry
                if value is not None:
                    totals[competency_id].append(value)

        comparison = {}
        for competency_id, values in totals.items():
            competency_avg = sum(values) / len(values)
            mine = my_score.competency_scores.get(competency_id)
            my_value = mine.score if mine else None
            comparison[competency_id] = CompetencyComparison(
                my_score=my_value,
                dept_avg=round(competency_avg, 2),
                dept_label=classify(competency_avg),
                diff=round(my_value - competency_avg, 2) if my_value is not None else None,
            )

        return DepartmentComparison(
            my_score=my_score,
            department=employee.department,
            department_avg=round(dept_avg, 2),
            department_label=classify(dept_avg),
            competency_comparison=comparison,
        )

    def get_team_scores(self, manager_id: int, cycle_id: int) -> TeamScores:
        self._get_cycle(cycle_id)
        reports = self.db.query(Employee).filter(
            Employee.reporting_manager_id == manager_id,
            Employee.is_active.is_(True),
        ).order_by(Employee.full_name).all()

        question_competency_map = self._question_competency_map()
        team = [
            TeamMemberScore(
                employee=EmployeeSummary.model_validate(member),
                score=self.compute_score(member.id, cycle_id, question_competency_map),
            )
            for member in reports
        ]

        scored = [m.score.colleague_score for m in team if m.score is not None]
        team_avg = round(sum(scored) / len(scored), 2) if scored else None
        return TeamScores(
            cycle_id=cycle_id,
            team=team,
            summary=TeamSummary(total_members=len(team), scored=len(scored), team_avg=team_avg),
        )

    def summary_metadata(self) -> Dict[str, Any]:
        return {
            "weights": self.aggregator.weights,
            "include_self": self.aggregator.include_self,
            "label_thresholds": self.aggregator.classifier.thresholds,
        }
