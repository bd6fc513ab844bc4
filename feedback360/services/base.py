import logging
from typing import Optional
from sqlalchemy.orm import Session


class BaseService:
    """Common plumbing for DB-backed domain services."""

    def __init__(self, db: Session, user_id: Optional[int] = None, user_role: Optional[str] = None):
        self.db = db
        self.user_id = user_id
        self.user_role = user_role
        self._logger = logging.getLogger(self.__class__.__module__)

    def log_info(self, message: str, **extra):
        self._logger.info(message, extra=extra or None)

    def log_warning(self, message: str, **extra):
        self._logger.warning(message, extra=extra or None)

    def log_error(self, message: str, **extra):
        self._logger.error(message, extra=extra or None)
