"""
Access-control dependencies.
Identity comes from a bearer token issued by the external auth service.
"""
import logging
from typing import Callable, List, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from feedback360.core.exceptions import AccessDeniedError, AuthenticationError
from feedback360.database import get_db
from feedback360.models.employee import Employee, GroupName
from feedback360.services import auth as auth_service

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Employee:
    """
    Extracts and validates the current employee from the bearer token.
    """
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = auth_service.decode_access_token(credentials.credentials)
    if payload is None:
        logger.warning("Authentication failed: Invalid token")
        raise AuthenticationError("Could not validate credentials")

    if payload.get("error") == "TOKEN_EXPIRED":
        logger.info("Authentication failed: Token expired")
        raise AuthenticationError("TOKEN_EXPIRED")

    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        logger.warning("Authentication failed: Missing or malformed subject in token")
        raise AuthenticationError("Missing subject in token")

    employee = db.get(Employee, int(subject))
    if employee is None:
        logger.warning(f"Authentication failed: Employee {subject} not found")
        raise AuthenticationError("User not found")
    if not employee.is_active:
        logger.warning(f"Authentication failed: Employee {subject} is inactive")
        raise AccessDeniedError("User is inactive")
    return employee


def require_groups(allowed_groups: List[GroupName]) -> Callable:
    """
    Dependency factory that checks the caller belongs to one of the allowed groups.

    Usage:
        @router.get("/cycle/{cycle_id}")
        def cycle_scores(user: Employee = Depends(require_groups([GroupName.CXO]))):
            ...
    """
    def group_checker(current_user: Employee = Depends(get_current_user)) -> Employee:
        if current_user.group_name not in allowed_groups:
            logger.warning(
                "Unauthorized group access attempt",
                extra={"employee_id": current_user.id, "group_name": current_user.group_name.value},
            )
            raise AccessDeniedError(f"Access denied. Required groups: {[g.value for g in allowed_groups]}")
        return current_user
    return group_checker


def require_self_or_groups(allowed_groups: List[GroupName]) -> Callable:
    """Own records are always readable; other employees' need one of the allowed groups."""
    def checker(employee_id: int, current_user: Employee = Depends(get_current_user)) -> Employee:
        if current_user.id == employee_id:
            return current_user
        if current_user.group_name not in allowed_groups:
            raise AccessDeniedError(f"Access denied. Required groups: {[g.value for g in allowed_groups]}")
        return current_user
    return checker


MANAGER_GROUPS = [GroupName.TM, GroupName.HOD, GroupName.CXO]
require_cxo = require_groups([GroupName.CXO])
require_manager = require_groups(MANAGER_GROUPS)
