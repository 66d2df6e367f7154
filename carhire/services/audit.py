import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carhire.db.models import AuditLog

logger = logging.getLogger(__name__)


#Persist a single audit log entry without interrupting the main request flow
def log_action(
    db: Session,
    actor_type: str,
    action: str,
    details: str | None = None,
):
    try:
        log = AuditLog(
            actor_type=actor_type,
            action=action,
            details=details,
        )
        db.add(log)
        db.commit()

    except SQLAlchemyError:
        #Audit failures must not break booking writes
        logger.warning("Audit log write failed for %s", action, exc_info=True)
        db.rollback()
