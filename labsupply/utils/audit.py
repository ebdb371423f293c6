# labsupply/utils/audit.py
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from labsupply.models.audit import AuditEvent

logger = logging.getLogger(__name__)


def write_audit(db: Session, *, action, entity_type=None, entity_id=None, actor_id=None,
                merchant_id=None, status="SUCCESS", ip=None, meta=None) -> AuditEvent:
    """Append an audit event and commit it. Database errors propagate."""
    entry = AuditEvent(
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        actor_id=actor_id,
        merchant_id=merchant_id,
        status=status,
        ip=ip,
        meta=meta or {},
    )
    db.add(entry)
    db.commit()
    return entry


def write_audit_best_effort(db: Session, **kwargs) -> bool:
    """Fire-and-forget variant of :func:`write_audit`.

    A failed write is rolled back, logged as a warning and discarded, so the
    caller's response never depends on the audit table. Returns whether the
    event was stored.
    """
    try:
        write_audit(db, **kwargs)
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Non-critical audit write failed (action=%s): %s", kwargs.get("action"), e)
        return False
