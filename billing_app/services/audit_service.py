from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from billing_app.core.logging import get_logger
from billing_app.models.audit_log import AuditLog


logger = get_logger("audit")


def log_action(
    db: Session,
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    details: Optional[str] = None
):
    try:
        log = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details
        )

        db.add(log)
        db.commit()
    except SQLAlchemyError:
        # Audit logging must never block primary application flows.
        db.rollback()
        logger.warning(
            "Audit log write failed for %s %s #%s", action, entity_type, entity_id,
            exc_info=True,
        )
