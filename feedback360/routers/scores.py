"""
Scores endpoints, mounted at /api/v1/scores.

    GET  /my                                              own history
    GET  /cycle/{cycle_id}                                all snapshots (CXO)
    POST /cycle/{cycle_id}/recalculate                    force recalculation (CXO)
    GET  /team/cycle/{cycle_id}                           direct reports (TM/HOD/CXO)
    GET  /employee/{employee_id}/cycle/{cycle_id}         scorecard (own | TM/HOD/CXO)
    GET  /employee/{employee_id}/cycle/{cycle_id}/comparison
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from feedback360.core.config import settings
from feedback360.core.exceptions import NotFoundError
from feedback360.core.limiter import limiter
from feedback360.core.schemas import ApiResponse
from feedback360.database import get_db
from feedback360.models.employee import Employee
from feedback360.routers.auth_deps import (
    MANAGER_GROUPS, get_current_user, require_cxo, require_manager, require_self_or_groups
)
from feedback360.services.score_service import ScoreService
from feedback360.services.visibility import shape_comparison_for_viewer, shape_score_for_viewer

router = APIRouter(prefix="/scores", tags=["scores"])


def _service(db: Session, user: Employee) -> ScoreService:
    return ScoreService(db, user_id=user.id, user_role=user.group_name.value)


@router.get("/my")
def get_my_scores(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Historical scores for the caller; label-only for individual contributors."""
    scores = _service(db, current_user).get_my_scores(current_user.id)
    shaped = [
        shape_score_for_viewer(s.model_dump(mode="json"), current_user, current_user.id)
        for s in scores
    ]
    return ApiResponse.ok(shaped).to_dict()


@router.get("/cycle/{cycle_id}")
def get_cycle_scores(
    cycle_id: int,
    department: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_cxo),
):
    service = _service(db, current_user)
    data = service.get_cycle_scores(cycle_id, department=department)
    return ApiResponse.ok(data.model_dump(mode="json"), metadata=service.summary_metadata()).to_dict()


@router.post("/cycle/{cycle_id}/recalculate")
@limiter.limit(settings.rate_limit_recalculate)
def recalculate_cycle_scores(
    request: Request,
    cycle_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_cxo),
):
    summary = _service(db, current_user).recalculate_scores_for_cycle(cycle_id)
    return ApiResponse.ok(summary.model_dump(mode="json")).to_dict()


@router.get("/team/cycle/{cycle_id}")
def get_team_scores(
    cycle_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_manager),
):
    data = _service(db, current_user).get_team_scores(current_user.id, cycle_id)
    return ApiResponse.ok(data.model_dump(mode="json")).to_dict()


@router.get("/employee/{employee_id}/cycle/{cycle_id}")
def get_employee_score(
    employee_id: int,
    cycle_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_self_or_groups(MANAGER_GROUPS)),
):
    score = _service(db, current_user).get_score(employee_id, cycle_id)
    if score is None:
        raise NotFoundError("Score not found. No completed reviews exist for this employee and cycle yet.")
    shaped = shape_score_for_viewer(score.model_dump(mode="json"), current_user, employee_id)
    return ApiResponse.ok(shaped).to_dict()


@router.get("/employee/{employee_id}/cycle/{cycle_id}/comparison")
def get_department_comparison(
    employee_id: int,
    cycle_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_self_or_groups(MANAGER_GROUPS)),
):
    data = _service(db, current_user).get_department_comparison(employee_id, cycle_id)
    shaped = shape_comparison_for_viewer(data.model_dump(mode="json"), current_user, employee_id)
    return ApiResponse.ok(shaped).to_dict()
