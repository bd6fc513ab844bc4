"""
Viewer-dependent shaping of scorecards.

An individual contributor looking at their own results sees labels only;
TM / HOD / CXO viewers, and anyone looking at someone else's results
(which the router already restricts to those groups), see numbers too.
"""
from typing import Any, Dict

from feedback360.models.employee import Employee

NUMERIC_FIELDS = ("colleague_score", "self_score")


def can_see_numeric(viewer: Employee, target_employee_id: int) -> bool:
    is_own_score = viewer.id == target_employee_id
    return not is_own_score or viewer.can_see_numeric_scores


def shape_score_for_viewer(score: Dict[str, Any], viewer: Employee, target_employee_id: int) -> Dict[str, Any]:
    """Strip numeric values from a serialized scorecard when the viewer may only see labels."""
    if can_see_numeric(viewer, target_employee_id):
        return score

    shaped = {k: v for k, v in score.items() if k not in NUMERIC_FIELDS}
    shaped["competency_scores"] = {
        key: {"label": entry["label"]}
        for key, entry in (score.get("competency_scores") or {}).items()
    }
    shaped["reviewer_category_scores"] = {
        key: {"label": entry["label"], "reviewer_count": entry.get("reviewer_count")}
        for key, entry in (score.get("reviewer_category_scores") or {}).items()
    }
    return shaped


def shape_comparison_for_viewer(comparison: Dict[str, Any], viewer: Employee, target_employee_id: int) -> Dict[str, Any]:
    """
    Department averages include the viewer's own snapshot, so a label-only
    viewer gets labels in place of every average and difference.
    """
    shaped = dict(comparison)
    shaped["my_score"] = shape_score_for_viewer(comparison["my_score"], viewer, target_employee_id)
    if can_see_numeric(viewer, target_employee_id):
        return shaped

    shaped.pop("department_avg", None)
    shaped["competency_comparison"] = {
        key: {"dept_label": entry["dept_label"]}
        for key, entry in (comparison.get("competency_comparison") or {}).items()
    }
    return shaped
