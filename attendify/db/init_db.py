# attendify/db/init_db.py
import logging
from sqlalchemy import select
from sqlalchemy.orm import Session

from attendify.core.config import settings
from attendify.core.security_password import hash_password
from attendify.core.timeutil import utcnow
from attendify.models.user import Role, User
from attendify.services.qr import QR_TYPE_STUDENT, encode_qr, student_payload

logger = logging.getLogger(__name__)

def init_db(db: Session, encoder=encode_qr) -> None:
    existing = db.scalar(select(User).where(User.role == Role.superadmin.value).limit(1))
    if existing:
        return

    sid = settings.SUPERADMIN_STUDENT_ID
    now = utcnow()
    admin = User(
        student_id=sid,
        email=settings.SUPERADMIN_EMAIL.lower(),
        username=sid,
        password_hash=hash_password(settings.SUPERADMIN_PASSWORD),
        role=Role.superadmin.value,
        is_verified=True,
        verified_at=now,
        first_name="Super",
        last_name="Admin",
        qr_code_data=encoder(student_payload(sid)),
        qr_type=QR_TYPE_STUDENT,
        qr_generated_at=now,
    )
    db.add(admin)
    db.commit()
    logger.info("superadmin %s seeded", sid)
