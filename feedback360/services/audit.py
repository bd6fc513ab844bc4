from feedback360.services.base import BaseService
from feedback360.models.audit_log import AuditLog
from typing import Any, Optional

class AuditService(BaseService):
    def log_action(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[Any],
        details: Optional[dict] = None,
        user_id: Optional[int] = None,
        user_role: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """
        Create an append-only audit log entry in the caller's transaction.
        Flushes but does not commit; the calling service owns the commit.
        """
        try:
            def sanitize(obj):
                if hasattr(obj, "model_dump"):
                    return obj.model_dump(mode="json")
                if isinstance(obj, dict):
                    return {k: sanitize(v) for k, v in obj.items()}
                if isinstance(obj, list):
                    return [sanitize(i) for i in obj]
                return obj

            db_log = AuditLog(
                action=action,
                entity_type=entity_type,
                entity_id=str(entity_id) if entity_id is not None else None,
                user_id=user_id if user_id is not None else self.user_id,
                user_role=user_role or self.user_role,
                details=sanitize(details or {}),
            )
            self.db.add(db_log)
            self.db.flush()
            return db_log
        except Exception as e:
            # An audit failure must not break the audited action
            self._logger.error(f"FAILED TO AUDIT LOG: {e}", exc_info=True)
            return None
