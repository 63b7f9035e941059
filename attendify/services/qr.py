# attendify/services/qr.py
from __future__ import annotations

import io
import base64
import logging
from typing import Callable, Iterable, Optional

import qrcode  # type: ignore
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from attendify.core.timeutil import utcnow
from attendify.models.event import normalize_course
from attendify.models.user import Role, User

logger = logging.getLogger(__name__)

QR_TYPE_STUDENT = "student_id"

QREncoder = Callable[[str], str]


def encode_qr(content: str) -> str:
    """PNG do QR em data URI (data:image/png;base64,...)."""
    qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=8, border=2)
    qr.add_data(content)
    qr.make(fit=True)
    img = qr.make_image()
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    b64 = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/png;base64,{b64}"


def student_payload(student_id: str) -> str:
    return f"student:{student_id}"


def event_student_payload(event_id: int, student_id: str) -> str:
    return f"event:{event_id}:student:{student_id}"


def event_payload(created_at_unix: int, created_by: str) -> str:
    return f"event:{created_at_unix}:{created_by}"


def event_qr_type(event_id: int) -> str:
    return f"event:{event_id}"


class QRRotationManager:
    """Troca o QR dos alunos de um evento e restaura depois.

    Cada aluno é atualizado com um UPDATE condicional (active_event_id IS NULL
    para ativar, == event_id para reverter), então ativações concorrentes de
    eventos diferentes nunca sobrescrevem uma à outra. Falhas individuais são
    logadas e puladas.
    """

    def __init__(self, session_factory: sessionmaker, encoder: Optional[QREncoder] = None):
        self.session_factory = session_factory
        self.encoder = encoder or encode_qr

    def activate_for_event(
        self,
        event_id: int,
        courses: Iterable[str],
        year_level: Optional[str] = None,
        section: Optional[str] = None,
    ) -> int:
        wanted = sorted({normalize_course(c) for c in courses or [] if normalize_course(c)})
        if not wanted:
            return 0

        rotated = 0
        with self.session_factory() as db:
            stmt = select(User.student_id).where(
                User.role == Role.student.value,
                User.active_event_id.is_(None),
                func.upper(func.trim(User.course)).in_(wanted),
            )
            if (year_level or "").strip():
                stmt = stmt.where(func.upper(func.trim(User.year_level)) == normalize_course(year_level))
            if (section or "").strip():
                stmt = stmt.where(func.upper(func.trim(User.section)) == normalize_course(section))
            candidates = list(db.scalars(stmt).all())

            for sid in candidates:
                if self._activate_one(db, event_id, sid):
                    rotated += 1

        logger.info("event %s: rotated QR for %d/%d students", event_id, rotated, len(candidates))
        return rotated

    def _activate_one(self, db: Session, event_id: int, student_id: str) -> bool:
        try:
            payload = self.encoder(event_student_payload(event_id, student_id))
            result = db.execute(
                update(User)
                .where(User.student_id == student_id, User.active_event_id.is_(None))
                .values(
                    original_qr_code_data=User.qr_code_data,
                    original_qr_type=User.qr_type,
                    qr_code_data=payload,
                    qr_type=event_qr_type(event_id),
                    active_event_id=event_id,
                    qr_generated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            db.commit()
            return result.rowcount == 1
        except (SQLAlchemyError, ValueError):
            db.rollback()
            logger.exception("event %s: failed to rotate QR for student %s", event_id, student_id)
            return False

    def revert_for_event(self, event_id: int) -> int:
        restored = 0
        with self.session_factory() as db:
            rows = db.execute(
                select(User.student_id, User.original_qr_code_data, User.original_qr_type)
                .where(User.active_event_id == event_id)
            ).all()
            for sid, original_data, original_type in rows:
                if self._revert_one(db, event_id, sid, original_data, original_type):
                    restored += 1

        if restored:
            logger.info("event %s: restored QR for %d students", event_id, restored)
        return restored

    def _revert_one(self, db: Session, event_id: int, student_id: str,
                    original_data: Optional[str], original_type: Optional[str]) -> bool:
        try:
            data = original_data or self.encoder(student_payload(student_id))
            result = db.execute(
                update(User)
                .where(User.student_id == student_id, User.active_event_id == event_id)
                .values(
                    qr_code_data=data,
                    qr_type=original_type or QR_TYPE_STUDENT,
                    active_event_id=None,
                    original_qr_code_data=None,
                    original_qr_type=None,
                    qr_generated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            db.commit()
            return result.rowcount == 1
        except (SQLAlchemyError, ValueError):
            db.rollback()
            logger.exception("event %s: failed to restore QR for student %s", event_id, student_id)
            return False

    def reactivate_for_event(self, event_id: int, courses: Iterable[str],
                             year_level: Optional[str] = None, section: Optional[str] = None) -> int:
        """Revert seguido de ativação, em sequência na mesma tarefa."""
        self.revert_for_event(event_id)
        return self.activate_for_event(event_id, courses, year_level, section)
