# attendify/services/audit.py
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from attendify.models.audit import AuditLog

logger = logging.getLogger(__name__)


def record(
    db: Session,
    action: str,
    *,
    actor_id: Optional[str] = None,
    target_id: Optional[str] = None,
    details: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> Optional[AuditLog]:
    # falha de auditoria não derruba a operação principal
    entry = AuditLog(action=action, actor_id=actor_id, target_id=target_id, details=details, ip_address=ip_address)
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("failed to write audit log %s actor=%s target=%s", action, actor_id, target_id)
        return None
    return entry


def list_logs(db: Session, *, action: Optional[str] = None, actor_id: Optional[str] = None, limit: int = 100) -> List[AuditLog]:
    stmt = select(AuditLog)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    if actor_id:
        stmt = stmt.where(AuditLog.actor_id == actor_id)
    stmt = stmt.order_by(AuditLog.id.desc()).limit(limit)
    return list(db.scalars(stmt).all())
